"""
pytest shared fixtures.
Every test runs against its own temporary SQLite database.
"""

import pytest
from sqlmodel import Session

import config
from config import reload_settings
from db_engine import get_engine, init_db, reset_engine
from models import AccountBalance
from services import TradingService


@pytest.fixture(autouse=True)
def ledger_db(tmp_path, monkeypatch):
    """Point the engine at a fresh database file for the duration of a test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test_ledger.db'}")
    monkeypatch.setenv("PASSWORD_HASH_ITERATIONS", "1000")
    reload_settings()
    reset_engine()
    init_db()
    yield
    reset_engine()
    config._settings = None


@pytest.fixture
def funded_user() -> str:
    """A provisioned user with 100.0 invested."""
    result = TradingService.submit(
        "alice", {"date": "2024-01-01", "action": "invest", "amount": 100}
    )
    assert result.ok
    return "alice"


def tamper_balance(username: str, balance: float) -> None:
    """Overwrite a cached balance behind the ledger's back."""
    with Session(get_engine()) as session:
        record = session.get(AccountBalance, username)
        record.balance = balance
        session.add(record)
        session.commit()
