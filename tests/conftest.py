"""Shared fixtures: configuration, a local ledger and a scripted remote ledger."""

import pytest

from ofx_ledger_sync.config import SyncConfig
from ofx_ledger_sync.models.transaction import LedgerAccount, RemoteAccount, RemoteBudget
from ofx_ledger_sync.storage.ledger_store import LedgerStore

from .helpers import ACCOUNT_ID, BUDGET_ID, SAMPLE_OFX, FakeLedgerClient


@pytest.fixture
def sync_config(tmp_path) -> SyncConfig:
    config = SyncConfig()
    config.storage.database_url = f"sqlite:///{tmp_path / 'ledger.sqlite3'}"
    config.input.transaction_dir = tmp_path / "transactions"
    return config


@pytest.fixture
def remote_budget() -> RemoteBudget:
    return RemoteBudget(
        id=BUDGET_ID,
        name="Household",
        accounts=[
            RemoteAccount(id=ACCOUNT_ID, name="Credit Card"),
            RemoteAccount(id="a0000000-0000-0000-0000-000000000002", name="Old Card", closed=True),
        ],
    )


@pytest.fixture
def store(sync_config, remote_budget) -> LedgerStore:
    ledger_store = LedgerStore(sync_config.storage.database_url)
    ledger_store.register_budget(remote_budget)
    yield ledger_store
    ledger_store.close()


@pytest.fixture
def account(store) -> LedgerAccount:
    found = store.find_account("Household", "Credit Card")
    assert found is not None
    return found


@pytest.fixture
def fake_client(remote_budget) -> FakeLedgerClient:
    return FakeLedgerClient(budgets=[remote_budget])


@pytest.fixture
def sample_ofx() -> str:
    return SAMPLE_OFX
