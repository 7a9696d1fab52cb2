"""Infrastructure Layer — database, logging, ledger RPC, signatures, fetch executor.

Invariants:
    - Infrastructure never imports services/ or api/
    - External failures mapped to core/errors.py types at this boundary
"""
