"""marketsync — ledger synchronizer and resale authorization broker for an NFT marketplace."""

__version__ = "1.0.0"
