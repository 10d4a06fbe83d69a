from .ledger import LedgerAccount, LedgerTransaction

__all__ = [
    "LedgerAccount",
    "LedgerTransaction",
]
