"""Transaction processing core.

A transaction is created PENDING/CREATED, then ``process_transaction`` moves
it to PROCESSING, projects its effect on the account balance, approves or
denies it, and posts it. Only posting touches account balances. Every public
entry point runs inside ``unit_of_work`` so a failure leaves neither a
half-advanced transaction nor a half-applied balance behind.
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from transaction_service.config import get_settings
from transaction_service.models.account import Account
from transaction_service.models.transaction import (
    Transaction,
    TransactionState,
    TransactionStatus,
    is_merchant_type,
)
from transaction_service.schemas.merchant import MerchantResponse
from transaction_service.schemas.transaction import CreateTransaction, Receipt, TransactionRead
from transaction_service.services import accounts as account_service
from transaction_service.services import merchants as merchant_service
from transaction_service.services.unit_of_work import unit_of_work
from transaction_service.utils.audit import log_audit
from transaction_service.utils.errors import (
    BadRequestError,
    TransactionNotFoundError,
    TransactionPostedError,
    UnprocessableError,
)

logger = logging.getLogger(__name__)

CARD_SERVICES_UNAVAILABLE = "Card services are currently unavailable. Please try again later."


def _log_context(transaction: Transaction) -> dict[str, object]:
    return {
        "transaction_id": transaction.id,
        "account_id": transaction.account_id,
        "type": transaction.type.value,
        "amount": transaction.amount,
        "state": transaction.state.value,
        "status": transaction.status.value,
    }


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def create_transaction(
    db: Session, payload: CreateTransaction, *, actor: str | None = None
) -> Transaction:
    """Create a PENDING transaction against the account named in ``payload``."""

    if payload.card_number is not None:
        raise BadRequestError(CARD_SERVICES_UNAVAILABLE)
    if not payload.account_number:
        raise BadRequestError("An account number is required to create a transaction.")

    with unit_of_work(db, operation="create_transaction"):
        account = account_service.get_account_by_account_number(db, payload.account_number)

        merchant = None
        if is_merchant_type(payload.type):
            merchant = merchant_service.check_merchant(db, payload.merchant_code, payload.merchant_name)

        transaction = Transaction(
            type=payload.type,
            method=payload.method,
            amount=payload.amount,
            description=payload.description,
            account=account,
            merchant=merchant,
            initial_balance=account.balance,
            state=TransactionState.CREATED,
            status=TransactionStatus.PENDING,
        )
        db.add(transaction)
        db.flush()

        log_audit(
            db,
            actor=actor or "system",
            action="TRANSACTION_CREATED",
            entity="Transaction",
            entity_id=transaction.id,
            data=payload.model_dump(mode="json"),
        )

    logger.info("Transaction created", extra=_log_context(transaction))
    return transaction


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


def _project(transaction: Transaction, base_balance: int) -> int:
    if transaction.is_increasing and not transaction.is_decreasing:
        return base_balance + transaction.amount
    if transaction.is_decreasing and not transaction.is_increasing:
        return base_balance - transaction.amount
    return base_balance


def _pending_ledger_projection(transaction: Transaction, account: Account) -> int:
    """Projection for a pending transaction on an account without an available balance.

    By default the ledger balance is returned untouched, so validation judges
    the account as it stands rather than after the transaction.
    ``PROJECT_PENDING_ON_LEDGER_BALANCE`` applies the amount instead.
    """

    if get_settings().PROJECT_PENDING_ON_LEDGER_BALANCE:
        return _project(transaction, account.balance)
    return account.balance


def perform_transaction(transaction: Transaction) -> int:
    """Compute and store the candidate ``posted_balance`` without touching the account."""

    account = transaction.account

    if transaction.status == TransactionStatus.APPROVED:
        posted_balance = _project(transaction, account.balance)
    elif transaction.status == TransactionStatus.PENDING and account.has_available_balance:
        posted_balance = _project(transaction, account.available_balance)
    elif transaction.status == TransactionStatus.PENDING:
        posted_balance = _pending_ledger_projection(transaction, account)
    else:
        posted_balance = account.balance

    transaction.posted_balance = posted_balance
    return posted_balance


def approve_transaction(transaction: Transaction) -> None:
    transaction.advance(status=TransactionStatus.APPROVED)
    perform_transaction(transaction)


def deny_transaction(transaction: Transaction) -> None:
    transaction.advance(status=TransactionStatus.DENIED)
    perform_transaction(transaction)


def validate_transaction(transaction: Transaction) -> None:
    """Approve the transaction unless its projected balance is negative."""

    if transaction.state != TransactionState.PROCESSING:
        raise UnprocessableError("Transaction is in an invalid state.")
    if transaction.status != TransactionStatus.PENDING:
        raise UnprocessableError("Transaction already validated.")

    if transaction.posted_balance is not None and transaction.posted_balance < 0:
        deny_transaction(transaction)
        logger.info("Transaction denied: insufficient balance", extra=_log_context(transaction))

    if transaction.status == TransactionStatus.PENDING:
        approve_transaction(transaction)


def post_transaction(db: Session, transaction: Transaction, *, actor: str | None = None) -> None:
    """Mark the transaction POSTED and apply an approved amount to the account."""

    if transaction.state == TransactionState.POSTED:
        raise UnprocessableError("Transaction is already posted.")
    if transaction.state != TransactionState.PROCESSING:
        raise UnprocessableError("Transaction needs to be processed before it is posted.")
    if transaction.status == TransactionStatus.PENDING:
        raise UnprocessableError("Cannot post a transaction that is pending.")

    transaction.advance(state=TransactionState.POSTED)

    if transaction.status == TransactionStatus.APPROVED:
        account = transaction.account
        delta = _project(transaction, 0)
        if delta:
            account_service.adjust_balance(db, account, delta)
            if account.has_available_balance:
                account_service.adjust_available_balance(db, account, delta)
        logger.info("Transaction approved.", extra=_log_context(transaction))
    else:
        logger.info("Transaction denied.", extra=_log_context(transaction))

    db.add(transaction)
    db.flush()
    log_audit(
        db,
        actor=actor or "system",
        action="TRANSACTION_POSTED",
        entity="Transaction",
        entity_id=transaction.id,
        data={
            "status": transaction.status.value,
            "amount": transaction.amount,
            "posted_balance": transaction.posted_balance,
            "account_number": transaction.account_number,
        },
    )


def to_receipt(transaction: Transaction) -> Receipt:
    receipt = Receipt.model_validate(transaction)
    if transaction.is_merchant_transaction and transaction.merchant is not None:
        receipt.merchant_response = MerchantResponse.model_validate(transaction.merchant)
    return receipt


def process_transaction(db: Session, transaction: Transaction, *, actor: str | None = None) -> Receipt:
    """Run a created transaction through projection, validation and posting."""

    with unit_of_work(db, operation="process_transaction"):
        if transaction.state == TransactionState.POSTED:
            raise UnprocessableError("Transaction is already posted. Unable to process a transaction.")

        if get_settings().ACCOUNT_ROW_LOCKING:
            account_service.lock_account(db, transaction.account)

        transaction.advance(state=TransactionState.PROCESSING)

        perform_transaction(transaction)
        validate_transaction(transaction)
        post_transaction(db, transaction, actor=actor)

    return to_receipt(transaction)


def process_transaction_by_id(
    db: Session, transaction_id: int, *, actor: str | None = None
) -> Receipt:
    return process_transaction(db, get_transaction(db, transaction_id), actor=actor)


# ---------------------------------------------------------------------------
# Queries and deletion
# ---------------------------------------------------------------------------


def get_transaction(db: Session, transaction_id: int) -> Transaction:
    transaction = db.get(Transaction, transaction_id)
    if transaction is None:
        raise TransactionNotFoundError()
    return transaction


def list_transactions_for_account(db: Session, account_id: int) -> list[Transaction]:
    """Return the account's transactions, newest first."""

    account_service.get_account_by_id(db, account_id)
    stmt = (
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    return list(db.scalars(stmt))


def list_transactions_for_account_number(db: Session, account_number: str) -> list[Transaction]:
    account = account_service.get_account_by_account_number(db, account_number)
    return list_transactions_for_account(db, account.id)


def to_read_model(transaction: Transaction) -> TransactionRead:
    return TransactionRead.model_validate(transaction)


def delete_transaction_by_id(db: Session, transaction_id: int, *, actor: str | None = None) -> None:
    """Delete a transaction that has not been posted yet."""

    with unit_of_work(db, operation="delete_transaction"):
        transaction = get_transaction(db, transaction_id)
        if transaction.state == TransactionState.POSTED:
            raise TransactionPostedError()

        db.delete(transaction)
        log_audit(
            db,
            actor=actor or "system",
            action="TRANSACTION_DELETED",
            entity="Transaction",
            entity_id=transaction_id,
            data={"state": transaction.state.value, "amount": transaction.amount},
        )

    logger.info("Transaction deleted", extra={"transaction_id": transaction_id})


__all__ = [
    "CARD_SERVICES_UNAVAILABLE",
    "create_transaction",
    "perform_transaction",
    "approve_transaction",
    "deny_transaction",
    "validate_transaction",
    "post_transaction",
    "process_transaction",
    "process_transaction_by_id",
    "to_receipt",
    "get_transaction",
    "list_transactions_for_account",
    "list_transactions_for_account_number",
    "to_read_model",
    "delete_transaction_by_id",
]
