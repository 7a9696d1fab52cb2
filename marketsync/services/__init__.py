"""Services Layer — repositories, synchronizer, listing engine, redemption coordinator.

Invariants:
    - Repositories take an AsyncSession and never commit; the calling service
      decides the transaction boundary
    - Ledger and signature access only through core/repository_protocols.py

Design Decisions:
    - One file per component, stores separate from the workflows that use them
"""
