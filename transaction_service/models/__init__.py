"""ORM models package."""
from .account import Account, AccountType, CheckingAccount, SavingsAccount
from .audit import AuditLog
from .base import Base
from .merchant import Merchant
from .transaction import (
    Lifecycle,
    Transaction,
    TransactionMethod,
    TransactionState,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "Account",
    "AccountType",
    "AuditLog",
    "Base",
    "CheckingAccount",
    "Lifecycle",
    "Merchant",
    "SavingsAccount",
    "Transaction",
    "TransactionMethod",
    "TransactionState",
    "TransactionStatus",
    "TransactionType",
]
