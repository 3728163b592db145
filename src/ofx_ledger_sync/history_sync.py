"""
Bulk historical sync.

Seeds the local ledger with what the remote already holds so that the first
file import does not resubmit transactions entered through other channels.
"""

from typing import Optional, Sequence
import logging

from .client.base import RemoteLedgerClient
from .models.transaction import LedgerAccount
from .storage.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def register_remote_budgets(client: RemoteLedgerClient, store: LedgerStore) -> list[LedgerAccount]:
    """
    Store every remote budget and its open accounts locally.

    Returns:
        All registered accounts after the update
    """
    budgets = client.list_budgets()
    for budget in budgets:
        store.register_budget(budget)
    accounts = store.list_accounts()
    logger.info(f"Registered {len(budgets)} budgets, {len(accounts)} accounts")
    return accounts


def sync_account_history(
    client: RemoteLedgerClient,
    store: LedgerStore,
    accounts: Optional[Sequence[LedgerAccount]] = None,
) -> dict[str, int]:
    """
    Copy remote transactions into the local dedup table.

    Args:
        client: Remote ledger client
        store: Local ledger store
        accounts: Accounts to sync (all registered accounts when omitted)

    Returns:
        Mapping of account label to the number of newly recorded transactions
    """
    if accounts is None:
        accounts = store.list_accounts()

    counts: dict[str, int] = {}
    for account in accounts:
        remote = client.list_by_account(account.budget_id, account.account_id)
        live = [t for t in remote if not t.deleted]
        inserted = store.insert_many_if_absent(
            account.account_id, ((t.amount, t.date) for t in live)
        )
        counts[account.label] = inserted
        logger.info(
            f"Storing {len(live)} transactions for account {account.label} ({inserted} new)"
        )
    return counts
