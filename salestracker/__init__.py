"""Multi-channel sales tracker: settlement, ledger and analytics."""

__version__ = "1.0.0"
