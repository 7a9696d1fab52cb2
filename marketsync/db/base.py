"""SQLAlchemy Declarative Base — shared base class for all ORM models.

Invariants:
    - Base.metadata is the single source of truth for table definitions
      (alembic autogenerate and test create_all both read it)
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all marketsync ORM models."""
    pass
