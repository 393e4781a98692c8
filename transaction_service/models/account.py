"""Account models.

Accounts are owned by the account service; this core only reads them and
moves their balances. Single-table inheritance keeps every account kind in
``accounts`` while ``has_available_balance`` tells callers whether the kind
tracks a provisional available balance next to the ledger balance.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from sqlalchemy import CheckConstraint, Enum as SqlEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .transaction import Transaction


class AccountType(str, Enum):
    """Kinds of deposit account."""

    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class Account(Base):
    """A bank account holding a ledger balance in the smallest currency unit."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "account_type != 'CHECKING' OR available_balance IS NOT NULL",
            name="ck_account_checking_available_balance",
        ),
    )

    account_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    account_type: Mapped[AccountType] = mapped_column(SqlEnum(AccountType), nullable=False)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    transactions: Mapped[list["Transaction"]] = relationship(back_populates="account")

    has_available_balance: ClassVar[bool] = False

    __mapper_args__ = {
        "polymorphic_on": "account_type",
        "polymorphic_abstract": True,
    }


class SavingsAccount(Account):
    """Account with a ledger balance only."""

    __mapper_args__ = {"polymorphic_identity": AccountType.SAVINGS}


class CheckingAccount(Account):
    """Account tracking an available balance alongside the ledger balance."""

    available_balance: Mapped[int] = mapped_column(Integer, nullable=True, default=0)

    has_available_balance: ClassVar[bool] = True

    __mapper_args__ = {"polymorphic_identity": AccountType.CHECKING}


__all__ = ["AccountType", "Account", "SavingsAccount", "CheckingAccount"]
