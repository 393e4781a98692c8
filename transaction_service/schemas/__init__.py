"""Pydantic schemas."""
from .merchant import MerchantResponse
from .transaction import CreateTransaction, Receipt, TransactionRead

__all__ = ["CreateTransaction", "MerchantResponse", "Receipt", "TransactionRead"]
