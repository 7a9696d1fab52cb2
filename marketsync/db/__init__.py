"""Database Infrastructure — SQLAlchemy declarative Base.

Invariants:
    - All ORM models inherit from marketsync.db.base.Base
"""
