"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

# --- Default test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///./transactions_test.db")
os.environ.setdefault("TXN_ENV", "test")

from transaction_service.main import app  # noqa: E402
from transaction_service.models import (  # noqa: E402
    Account,
    Base,
    CheckingAccount,
    Merchant,
    SavingsAccount,
    Transaction,
    TransactionMethod,
    TransactionState,
    TransactionStatus,
    TransactionType,
)


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'transactions.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_account(db_session: Session) -> Callable[..., Account]:
    """Factory persisting a checking or savings account."""

    def _factory(
        *,
        kind: str = "checking",
        balance: int = 1000,
        available_balance: int | None = None,
        account_number: str | None = None,
    ) -> Account:
        number = account_number or f"00{uuid4().int % 10**8:08d}"
        if kind == "checking":
            account: Account = CheckingAccount(
                account_number=number,
                balance=balance,
                available_balance=balance if available_balance is None else available_balance,
            )
        else:
            account = SavingsAccount(account_number=number, balance=balance)
        db_session.add(account)
        db_session.commit()
        return account

    return _factory


@pytest.fixture
def make_merchant(db_session: Session) -> Callable[..., Merchant]:
    def _factory(*, code: str | None = None, name: str = "Corner Store") -> Merchant:
        merchant = Merchant(code=code or f"M-{uuid4().hex[:8]}", name=name)
        db_session.add(merchant)
        db_session.commit()
        return merchant

    return _factory


@pytest.fixture
def make_transaction(db_session: Session) -> Callable[..., Transaction]:
    """Factory persisting a transaction directly, bypassing the create flow."""

    def _factory(
        account: Account,
        *,
        type: TransactionType = TransactionType.DEPOSIT,
        amount: int = 100,
        state: TransactionState = TransactionState.CREATED,
        status: TransactionStatus = TransactionStatus.PENDING,
        merchant: Merchant | None = None,
        posted_balance: int | None = None,
    ) -> Transaction:
        transaction = Transaction(
            type=type,
            method=TransactionMethod.ACH,
            amount=amount,
            account=account,
            merchant=merchant,
            initial_balance=account.balance,
            state=state,
            status=status,
            posted_balance=posted_balance,
        )
        db_session.add(transaction)
        db_session.commit()
        return transaction

    return _factory
