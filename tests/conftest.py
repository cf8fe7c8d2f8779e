import sqlite3

import pytest
from fastapi.testclient import TestClient

from p2p_exchange.core.config import Settings
from p2p_exchange.db.dal import Database
from p2p_exchange.db.migrate import apply_migrations
from p2p_exchange.main import create_app
from p2p_exchange.services.wallet_ledger import WalletLedger


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        data_dir=tmp_path,
        db_filename="test.sqlite3",
        exchange_rate_provider="static",
        db_connect_attempts=2,
        db_connect_retry_delay_seconds=0,
    )
    values.update(overrides)
    settings = Settings(**values)
    settings.init_post_load()
    return settings


def reject_wallet_updates(db_path):
    """Make every UPDATE of an existing wallet row fail with a constraint error."""
    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "CREATE TRIGGER wallets_reject_update BEFORE UPDATE ON wallets "
            "BEGIN SELECT RAISE(ABORT, 'wallet row changed underneath'); END"
        )
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def db(settings):
    apply_migrations(settings.db_path)
    return Database(settings.db_path)


@pytest.fixture
def ledger(db):
    return WalletLedger(db)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings_override=settings)) as c:
        yield c


@pytest.fixture
def offline_client(tmp_path):
    """App whose database directory does not exist, so storage never opens."""
    settings = make_settings(
        tmp_path, db_path=tmp_path / "missing" / "nowhere.sqlite3"
    )
    with TestClient(create_app(settings_override=settings)) as c:
        yield c
