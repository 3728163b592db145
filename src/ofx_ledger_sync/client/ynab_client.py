"""
YNAB REST API client.

Only the three operations the sync needs are implemented: bulk transaction
creation, listing an account's transactions and listing budgets with their
accounts.
"""

from datetime import date
from typing import Any, Optional, Sequence
import logging

import requests

from ..config import LedgerSettings
from ..models.transaction import (
    NewTransaction,
    RemoteAccount,
    RemoteBudget,
    RemoteTransaction,
    SubmitResult,
)
from ..utils.exceptions import RemoteLedgerError, TransientNetworkError
from .base import RemoteLedgerClient

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def extract_error(response: requests.Response) -> str:
    """Extract error detail from an API response."""
    try:
        return response.json().get("error", {}).get("detail", response.text)
    except (ValueError, AttributeError):
        return response.text


class YNABClient(RemoteLedgerClient):
    """Client for the YNAB v1 API authenticated with a personal access token."""

    def __init__(self, settings: LedgerSettings, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            settings: Base URL, access token and timeout
            session: Optional pre-configured requests session
        """
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {settings.require_token()}",
                "Content-Type": "application/json",
            }
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientNetworkError(f"{method} {path} failed: {e}") from e
        except requests.RequestException as e:
            raise RemoteLedgerError(f"{method} {path} failed: {e}") from e

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransientNetworkError(
                f"{method} {path} returned {response.status_code}: {extract_error(response)}",
                status_code=response.status_code,
            )
        if not response.ok:
            raise RemoteLedgerError(
                f"{method} {path} returned {response.status_code}: {extract_error(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteLedgerError(f"Malformed response from {method} {path}") from e

    def submit(
        self,
        budget_id: str,
        account_id: str,
        transactions: Sequence[NewTransaction],
    ) -> SubmitResult:
        if not transactions:
            return SubmitResult()

        payload = {"transactions": [t.to_payload() for t in transactions]}
        for item in payload["transactions"]:
            item["account_id"] = account_id

        data = self._request("POST", f"/budgets/{budget_id}/transactions", json=payload)

        created = data.get("transactions") or []
        result = SubmitResult(
            transaction_ids=list(data.get("transaction_ids") or [t["id"] for t in created]),
            created_import_ids=[t["import_id"] for t in created if t.get("import_id")],
            duplicate_import_ids=list(data.get("duplicate_import_ids") or []),
        )
        logger.debug(
            f"Submitted {len(transactions)} transactions: {len(result.created_import_ids)} created, "
            f"{len(result.duplicate_import_ids)} duplicates"
        )
        return result

    def list_by_account(self, budget_id: str, account_id: str) -> list[RemoteTransaction]:
        data = self._request("GET", f"/budgets/{budget_id}/accounts/{account_id}/transactions")
        return [
            RemoteTransaction(
                id=t["id"],
                date=date.fromisoformat(t["date"]),
                amount=int(t["amount"]),
                import_id=t.get("import_id"),
                deleted=bool(t.get("deleted", False)),
            )
            for t in data.get("transactions", [])
        ]

    def list_budgets(self) -> list[RemoteBudget]:
        data = self._request("GET", "/budgets", params={"include_accounts": "true"})
        return [
            RemoteBudget(
                id=b["id"],
                name=b["name"],
                accounts=[
                    RemoteAccount(
                        id=a["id"],
                        name=a["name"],
                        closed=bool(a.get("closed", False)),
                        deleted=bool(a.get("deleted", False)),
                    )
                    for a in b.get("accounts") or []
                ],
            )
            for b in data.get("budgets", [])
        ]
