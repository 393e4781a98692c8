"""Account lookup and balance mutation used by the transaction core."""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from transaction_service.models.account import Account, CheckingAccount
from transaction_service.utils.errors import AccountNotFoundError, BalanceConflictError
from transaction_service.utils.time import utcnow

logger = logging.getLogger(__name__)


def get_account_by_account_number(db: Session, account_number: str) -> Account:
    """Return the account with ``account_number`` or raise ``AccountNotFoundError``."""

    stmt = select(Account).where(Account.account_number == account_number)
    account = db.scalars(stmt).one_or_none()
    if account is None:
        raise AccountNotFoundError(f"Account with account number {account_number} does not exist.")
    return account


def get_account_by_id(db: Session, account_id: int) -> Account:
    account = db.get(Account, account_id)
    if account is None:
        raise AccountNotFoundError(f"Account with id {account_id} does not exist.")
    return account


def lock_account(db: Session, account: Account) -> Account:
    """Reload ``account`` with ``SELECT ... FOR UPDATE`` so concurrent posts queue behind us."""

    db.refresh(account, with_for_update=True)
    return account


def adjust_balance(db: Session, account: Account, delta: int) -> int:
    """Move the ledger balance by ``delta`` if it still holds the value we read.

    The update is a compare-and-swap on ``balance``: when another writer has
    changed it since ``account`` was loaded no row matches and
    ``BalanceConflictError`` is raised.
    """

    expected = account.balance
    stmt = (
        update(Account)
        .where(Account.id == account.id, Account.balance == expected)
        .values(balance=Account.balance + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "Balance compare-and-swap failed",
            extra={"account_id": account.id, "expected_balance": expected, "delta": delta},
        )
        raise BalanceConflictError()
    db.refresh(account, attribute_names=["balance", "updated_at"])
    return account.balance


def adjust_available_balance(db: Session, account: Account, delta: int) -> int:
    """Compare-and-swap counterpart of ``adjust_balance`` for the available balance."""

    if not account.has_available_balance:
        raise ValueError(f"Account {account.id} does not track an available balance.")

    expected = account.available_balance
    stmt = (
        update(CheckingAccount)
        .where(CheckingAccount.id == account.id, CheckingAccount.available_balance == expected)
        .values(available_balance=CheckingAccount.available_balance + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        logger.warning(
            "Available balance compare-and-swap failed",
            extra={"account_id": account.id, "expected_available_balance": expected, "delta": delta},
        )
        raise BalanceConflictError()
    db.refresh(account, attribute_names=["available_balance", "updated_at"])
    return account.available_balance


__all__ = [
    "get_account_by_account_number",
    "get_account_by_id",
    "lock_account",
    "adjust_balance",
    "adjust_available_balance",
]
