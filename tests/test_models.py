import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from transaction_service.models import (
    Account,
    CheckingAccount,
    SavingsAccount,
    Transaction,
    TransactionState,
    TransactionStatus,
    TransactionType,
)
from transaction_service.models.transaction import (
    LIFECYCLE_TRANSITIONS,
    MERCHANT_TYPES,
    VALID_LIFECYCLES,
    Lifecycle,
)
from transaction_service.utils.errors import UnprocessableError


def _transaction(state: TransactionState, status: TransactionStatus) -> Transaction:
    return Transaction(type=TransactionType.DEPOSIT, amount=10, state=state, status=status)


@pytest.mark.parametrize("transaction_type", list(TransactionType))
def test_direction_is_never_both_increasing_and_decreasing(transaction_type):
    transaction = Transaction(type=transaction_type, amount=1)

    assert not (transaction.is_increasing and transaction.is_decreasing)
    assert transaction.is_increasing or transaction.is_decreasing


def test_merchant_capable_types():
    assert MERCHANT_TYPES == {
        TransactionType.PURCHASE,
        TransactionType.PAYMENT,
        TransactionType.REFUND,
        TransactionType.VOID,
        TransactionType.DEPOSIT,
    }
    assert Transaction(type=TransactionType.PURCHASE).is_merchant_transaction
    assert not Transaction(type=TransactionType.WITHDRAWAL).is_merchant_transaction
    assert not Transaction(type=TransactionType.TRANSFER_OUT).is_merchant_transaction


def test_lifecycle_walks_created_to_posted():
    transaction = _transaction(TransactionState.CREATED, TransactionStatus.PENDING)

    transaction.advance(state=TransactionState.PROCESSING)
    transaction.advance(status=TransactionStatus.APPROVED)
    transaction.advance(state=TransactionState.POSTED)

    assert transaction.lifecycle == Lifecycle(TransactionState.POSTED, TransactionStatus.APPROVED)


def test_lifecycle_self_transition_is_noop():
    transaction = _transaction(TransactionState.PROCESSING, TransactionStatus.PENDING)

    transaction.advance(state=TransactionState.PROCESSING)

    assert transaction.lifecycle == Lifecycle(TransactionState.PROCESSING, TransactionStatus.PENDING)


@pytest.mark.parametrize(
    ("start", "move"),
    [
        ((TransactionState.CREATED, TransactionStatus.PENDING), {"state": TransactionState.POSTED}),
        ((TransactionState.CREATED, TransactionStatus.PENDING), {"status": TransactionStatus.APPROVED}),
        ((TransactionState.PROCESSING, TransactionStatus.PENDING), {"state": TransactionState.POSTED}),
        ((TransactionState.PROCESSING, TransactionStatus.APPROVED), {"status": TransactionStatus.DENIED}),
        ((TransactionState.POSTED, TransactionStatus.APPROVED), {"state": TransactionState.PROCESSING}),
        ((TransactionState.POSTED, TransactionStatus.DENIED), {"status": TransactionStatus.APPROVED}),
    ],
)
def test_lifecycle_rejects_illegal_moves(start, move):
    transaction = _transaction(*start)

    with pytest.raises(UnprocessableError):
        transaction.advance(**move)

    assert transaction.lifecycle == Lifecycle(*start)


def test_lifecycle_table_never_reaches_posted_pending():
    reachable = {target for targets in LIFECYCLE_TRANSITIONS.values() for target in targets}

    assert Lifecycle(TransactionState.POSTED, TransactionStatus.PENDING) not in VALID_LIFECYCLES
    assert reachable <= VALID_LIFECYCLES
    for lifecycle in VALID_LIFECYCLES:
        if lifecycle.state == TransactionState.POSTED:
            assert LIFECYCLE_TRANSITIONS[lifecycle] == frozenset()


def test_available_balance_capability_by_account_kind(db_session, make_account):
    checking = make_account(kind="checking", balance=500, available_balance=400)
    savings = make_account(kind="savings", balance=200)

    db_session.expunge_all()
    loaded = {a.account_number: a for a in db_session.scalars(select(Account))}

    assert isinstance(loaded[checking.account_number], CheckingAccount)
    assert isinstance(loaded[savings.account_number], SavingsAccount)
    assert loaded[checking.account_number].has_available_balance is True
    assert loaded[checking.account_number].available_balance == 400
    assert loaded[savings.account_number].has_available_balance is False


def test_database_rejects_posted_pending_pair(db_session, make_account, make_transaction):
    account = make_account()

    with pytest.raises(IntegrityError):
        make_transaction(account, state=TransactionState.POSTED, status=TransactionStatus.PENDING)
    db_session.rollback()


def test_database_rejects_negative_amount(db_session, make_account, make_transaction):
    account = make_account()

    with pytest.raises(IntegrityError):
        make_transaction(account, amount=-1)
    db_session.rollback()
