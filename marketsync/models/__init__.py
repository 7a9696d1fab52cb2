"""ORM Models — SQLAlchemy declarative models for owners, assets, listings, cursors.

Invariants:
    - All models inherit from Base (db/base.py)
    - Asset/Owner written only by the synchronizer; Listing only by the listing
      engine, redemption coordinator and synchronizer (deactivation)

Design Decisions:
    - One file per entity
    - All models imported here so string-based relationship() references
      resolve before any query runs
"""

from marketsync.models.owner import Owner  # noqa: F401
from marketsync.models.asset import Asset  # noqa: F401
from marketsync.models.listing import Listing  # noqa: F401
from marketsync.models.sync_cursor import SyncCursor  # noqa: F401
