"""Transaction schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from transaction_service.models.transaction import (
    TransactionMethod,
    TransactionState,
    TransactionStatus,
    TransactionType,
)
from transaction_service.schemas.merchant import MerchantResponse
from transaction_service.utils.masking import mask_account_number


class CreateTransaction(BaseModel):
    """Request to open a transaction against an account.

    Exactly one of ``account_number`` or ``card_number`` identifies the
    account; card-based requests are refused by the service.
    """

    type: TransactionType
    method: TransactionMethod
    amount: int = Field(ge=0)
    account_number: str | None = None
    card_number: str | None = None
    merchant_code: str | None = None
    merchant_name: str | None = None
    description: str | None = Field(default=None, max_length=255)

    @field_validator("type", "method", mode="before")
    @classmethod
    def _normalize_enum(cls, value: object) -> object:
        """Allow case-insensitive enum values from clients."""

        if isinstance(value, str):
            return value.upper()
        return value


class _MaskedAccountModel(BaseModel):
    account_number: str | None = None

    @field_validator("account_number")
    @classmethod
    def _mask(cls, value: str | None) -> str | None:
        return mask_account_number(value)


class TransactionRead(_MaskedAccountModel):
    id: int
    type: TransactionType
    method: TransactionMethod
    amount: int
    description: str | None = None
    status: TransactionStatus
    state: TransactionState
    initial_balance: int
    posted_balance: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Receipt(TransactionRead):
    """Read-only outcome of processing a transaction."""

    merchant_response: MerchantResponse | None = None
