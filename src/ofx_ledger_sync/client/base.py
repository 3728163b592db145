"""Interface of the remote budgeting ledger consumed by the sync engine."""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models.transaction import NewTransaction, RemoteBudget, RemoteTransaction, SubmitResult


class RemoteLedgerClient(ABC):
    """Abstract base class for remote ledger clients."""

    @abstractmethod
    def submit(
        self,
        budget_id: str,
        account_id: str,
        transactions: Sequence[NewTransaction],
    ) -> SubmitResult:
        """
        Create transactions in one bulk request.

        Args:
            budget_id: Remote budget id
            account_id: Remote account id the transactions belong to
            transactions: Transactions, each tagged with its import id

        Returns:
            Ids created and import ids rejected as duplicates

        Raises:
            TransientNetworkError: If the request may be retried
            RemoteLedgerError: If the remote rejected the request
        """
        pass

    @abstractmethod
    def list_by_account(self, budget_id: str, account_id: str) -> list[RemoteTransaction]:
        """List every transaction the remote holds for an account."""
        pass

    @abstractmethod
    def list_budgets(self) -> list[RemoteBudget]:
        """List budgets with their accounts."""
        pass
