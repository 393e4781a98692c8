"""Transaction model and its lifecycle.

A transaction's progress is the pair ``(state, status)``. The two columns are
never assigned independently: ``Transaction.advance`` checks every move
against ``LIFECYCLE_TRANSITIONS`` so pairs such as POSTED + PENDING cannot be
produced by application code, and a check constraint rejects them in the
database as well. Once POSTED a row can no longer be updated or deleted
through the ORM.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import NamedTuple

from sqlalchemy import CheckConstraint, Enum as SqlEnum, ForeignKey, Index, Integer, String, event
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship
from sqlalchemy.orm.attributes import get_history

from transaction_service.utils.errors import TransactionPostedError, UnprocessableError

from .account import Account
from .base import Base
from .merchant import Merchant

logger = logging.getLogger(__name__)


class TransactionType(str, Enum):
    """What the transaction does to the account."""

    PURCHASE = "PURCHASE"
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    VOID = "VOID"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


class TransactionMethod(str, Enum):
    """Channel the transaction came through."""

    ACH = "ACH"
    ATM = "ATM"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    CHECK = "CHECK"
    APP = "APP"


class TransactionStatus(str, Enum):
    """Approval decision."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"


class TransactionState(str, Enum):
    """Processing progress."""

    CREATED = "CREATED"
    PROCESSING = "PROCESSING"
    POSTED = "POSTED"


INCREASING_TYPES = frozenset(
    {
        TransactionType.DEPOSIT,
        TransactionType.REFUND,
        TransactionType.VOID,
        TransactionType.TRANSFER_IN,
    }
)
DECREASING_TYPES = frozenset(
    {
        TransactionType.PURCHASE,
        TransactionType.PAYMENT,
        TransactionType.WITHDRAWAL,
        TransactionType.TRANSFER_OUT,
    }
)
MERCHANT_TYPES = frozenset(
    {
        TransactionType.PURCHASE,
        TransactionType.PAYMENT,
        TransactionType.REFUND,
        TransactionType.VOID,
        TransactionType.DEPOSIT,
    }
)


class Lifecycle(NamedTuple):
    state: TransactionState
    status: TransactionStatus

    def __str__(self) -> str:
        return f"{self.state.value}/{self.status.value}"


CREATED = Lifecycle(TransactionState.CREATED, TransactionStatus.PENDING)
PROCESSING = Lifecycle(TransactionState.PROCESSING, TransactionStatus.PENDING)
PROCESSING_APPROVED = Lifecycle(TransactionState.PROCESSING, TransactionStatus.APPROVED)
PROCESSING_DENIED = Lifecycle(TransactionState.PROCESSING, TransactionStatus.DENIED)
POSTED_APPROVED = Lifecycle(TransactionState.POSTED, TransactionStatus.APPROVED)
POSTED_DENIED = Lifecycle(TransactionState.POSTED, TransactionStatus.DENIED)

LIFECYCLE_TRANSITIONS: dict[Lifecycle, frozenset[Lifecycle]] = {
    CREATED: frozenset({PROCESSING}),
    PROCESSING: frozenset({PROCESSING_APPROVED, PROCESSING_DENIED}),
    PROCESSING_APPROVED: frozenset({POSTED_APPROVED}),
    PROCESSING_DENIED: frozenset({POSTED_DENIED}),
    POSTED_APPROVED: frozenset(),
    POSTED_DENIED: frozenset(),
}
VALID_LIFECYCLES = frozenset(LIFECYCLE_TRANSITIONS)


def is_merchant_type(transaction_type: TransactionType) -> bool:
    """Return True if a merchant can perform this kind of transaction."""

    return transaction_type in MERCHANT_TYPES


class Transaction(Base):
    """A single-account transaction moving through create, process and post."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transaction_non_negative_amount"),
        CheckConstraint(
            "(state = 'CREATED' AND status = 'PENDING') OR "
            "(state = 'PROCESSING') OR "
            "(state = 'POSTED' AND status IN ('APPROVED', 'DENIED'))",
            name="ck_transaction_lifecycle",
        ),
        Index("ix_transactions_created_at", "created_at"),
        Index("ix_transactions_state_status", "state", "status"),
    )

    type: Mapped[TransactionType] = mapped_column(SqlEnum(TransactionType), nullable=False)
    method: Mapped[TransactionMethod] = mapped_column(SqlEnum(TransactionMethod), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[TransactionStatus] = mapped_column(
        SqlEnum(TransactionStatus), nullable=False, default=TransactionStatus.PENDING
    )
    state: Mapped[TransactionState] = mapped_column(
        SqlEnum(TransactionState), nullable=False, default=TransactionState.CREATED
    )
    initial_balance: Mapped[int] = mapped_column(Integer, nullable=False)
    posted_balance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False, index=True)
    merchant_id: Mapped[int | None] = mapped_column(ForeignKey("merchants.id"), nullable=True, index=True)

    account: Mapped[Account] = relationship(back_populates="transactions")
    merchant: Mapped[Merchant | None] = relationship(back_populates="transactions")

    @property
    def is_increasing(self) -> bool:
        return self.type in INCREASING_TYPES

    @property
    def is_decreasing(self) -> bool:
        return self.type in DECREASING_TYPES

    @property
    def is_merchant_transaction(self) -> bool:
        return is_merchant_type(self.type)

    @property
    def account_number(self) -> str | None:
        return self.account.account_number if self.account is not None else None

    @property
    def lifecycle(self) -> Lifecycle:
        return Lifecycle(self.state, self.status)

    @property
    def is_posted(self) -> bool:
        return self.state == TransactionState.POSTED

    def advance(
        self,
        *,
        state: TransactionState | None = None,
        status: TransactionStatus | None = None,
    ) -> None:
        """Move to a new (state, status) pair allowed by the lifecycle table.

        Omitted components keep their current value; moving to the current
        pair is a no-op.
        """

        current = self.lifecycle
        target = Lifecycle(state or current.state, status or current.status)
        if target == current:
            return
        if target not in LIFECYCLE_TRANSITIONS.get(current, frozenset()):
            raise UnprocessableError(f"Transaction cannot move from {current} to {target}.")
        self.state, self.status = target


def _committed_state(transaction: Transaction) -> TransactionState | None:
    history = get_history(transaction, "state")
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


@event.listens_for(Session, "before_flush")
def _protect_posted_transactions(session: Session, flush_context, instances) -> None:
    """Refuse to flush an update or delete of a transaction that was already posted.

    Posting itself is allowed: the committed state is still CREATED or PROCESSING when the
    row is first written as POSTED.
    """

    for obj in list(session.deleted):
        if isinstance(obj, Transaction) and _committed_state(obj) == TransactionState.POSTED:
            logger.error("Blocked delete of posted transaction", extra={"transaction_id": obj.id})
            raise TransactionPostedError()

    for obj in list(session.dirty):
        if not isinstance(obj, Transaction) or _committed_state(obj) != TransactionState.POSTED:
            continue
        if session.is_modified(obj, include_collections=False):
            logger.error("Blocked update of posted transaction", extra={"transaction_id": obj.id})
            raise TransactionPostedError()


__all__ = [
    "TransactionType",
    "TransactionMethod",
    "TransactionStatus",
    "TransactionState",
    "Lifecycle",
    "LIFECYCLE_TRANSITIONS",
    "VALID_LIFECYCLES",
    "INCREASING_TYPES",
    "DECREASING_TYPES",
    "MERCHANT_TYPES",
    "is_merchant_type",
    "Transaction",
]
