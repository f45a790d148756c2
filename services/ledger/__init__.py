from .ledger import TransactionLedger

__all__ = ["TransactionLedger"]
