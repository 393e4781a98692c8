import pytest
from sqlalchemy import select

from transaction_service.models import AuditLog, TransactionState, TransactionStatus, TransactionType
from transaction_service.services import transactions as transaction_service
from transaction_service.utils.errors import UnprocessableError


def test_posting_approved_deposit_moves_both_checking_balances(db_session, make_account, make_transaction):
    account = make_account(kind="checking", balance=1000, available_balance=900)
    transaction = make_transaction(
        account,
        type=TransactionType.DEPOSIT,
        amount=250,
        state=TransactionState.PROCESSING,
        status=TransactionStatus.APPROVED,
        posted_balance=1250,
    )

    transaction_service.post_transaction(db_session, transaction, actor="apikey:test")
    db_session.commit()

    db_session.expire_all()
    assert account.balance == 1250
    assert account.available_balance == 1150
    assert transaction.state == TransactionState.POSTED
    assert transaction.status == TransactionStatus.APPROVED


def test_posting_approved_withdrawal_on_savings_moves_ledger_balance(db_session, make_account, make_transaction):
    account = make_account(kind="savings", balance=500)
    transaction = make_transaction(
        account,
        type=TransactionType.WITHDRAWAL,
        amount=200,
        state=TransactionState.PROCESSING,
        status=TransactionStatus.APPROVED,
    )

    transaction_service.post_transaction(db_session, transaction)
    db_session.commit()

    db_session.expire_all()
    assert account.balance == 300


def test_posting_denied_transaction_leaves_balances(db_session, make_account, make_transaction):
    account = make_account(kind="checking", balance=1000, available_balance=1000)
    transaction = make_transaction(
        account,
        type=TransactionType.PURCHASE,
        amount=5000,
        state=TransactionState.PROCESSING,
        status=TransactionStatus.DENIED,
    )

    transaction_service.post_transaction(db_session, transaction)
    db_session.commit()

    db_session.expire_all()
    assert transaction.state == TransactionState.POSTED
    assert account.balance == 1000
    assert account.available_balance == 1000
    audit = db_session.scalars(
        select(AuditLog).where(AuditLog.action == "TRANSACTION_POSTED", AuditLog.entity_id == transaction.id)
    ).one()
    assert audit.data_json["status"] == "DENIED"


@pytest.mark.parametrize(
    ("state", "status", "message"),
    [
        (TransactionState.POSTED, TransactionStatus.APPROVED, "already posted"),
        (TransactionState.CREATED, TransactionStatus.PENDING, "processed before it is posted"),
        (TransactionState.PROCESSING, TransactionStatus.PENDING, "pending"),
    ],
)
def test_posting_guards(db_session, make_account, make_transaction, state, status, message):
    account = make_account(balance=1000)
    transaction = make_transaction(account, amount=10, state=state, status=status)

    with pytest.raises(UnprocessableError, match=message):
        transaction_service.post_transaction(db_session, transaction)

    assert account.balance == 1000
