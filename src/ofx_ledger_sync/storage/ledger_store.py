"""
Local ledger store.

Records which (account, amount, date) triples are already present in the
remote ledger, plus the registered budgets/accounts and an import log. The
conditional insert on ``transaction_import`` is the only synchronization
point between concurrent imports.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional
import logging

from sqlalchemy import create_engine, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.transaction import LedgerAccount, RemoteBudget
from ..utils.exceptions import PersistenceError
from .schema import AccountRow, Base, BudgetRow, ImportLogRow, TransactionImportRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportLogEntry:
    """One row of the import log."""

    budget_name: str
    account_name: str
    file_name: Optional[str]
    status: str
    import_ids: list[str]
    inserted_at: datetime


class LedgerStore:
    """SQLAlchemy-backed local ledger."""

    def __init__(self, database_url: str, *, create_schema: bool = True):
        """
        Open the local ledger database.

        Args:
            database_url: SQLAlchemy URL, e.g. ``sqlite:///ofx_ledger_sync.sqlite3``
            create_schema: Create missing tables on open
        """
        self.database_url = database_url
        self.engine = _create_engine(database_url)
        self._session_maker: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, class_=Session
        )
        if create_schema:
            self.create_schema()

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to initialize local ledger: {e}") from e

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope; database errors become PersistenceError."""
        session = self._session_maker()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Local ledger operation failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Dedup records
    # ------------------------------------------------------------------

    def exists(self, account_id: str, amount_minor_units: int, posted: date) -> bool:
        """Return True when the transaction is already recorded as delivered."""
        stmt = select(TransactionImportRow.id).where(
            TransactionImportRow.account_id == account_id,
            TransactionImportRow.amount == amount_minor_units,
            TransactionImportRow.date_posted == posted,
        )
        with self.session_scope() as session:
            return session.execute(stmt.limit(1)).first() is not None

    def insert_if_absent(self, account_id: str, amount_minor_units: int, posted: date) -> bool:
        """
        Atomically record a delivered transaction.

        Returns:
            True if a row was inserted, False if it was already present
        """
        with self.session_scope() as session:
            return self._insert_if_absent(session, account_id, amount_minor_units, posted)

    def insert_many_if_absent(
        self, account_id: str, rows: Iterable[tuple[int, date]]
    ) -> int:
        """Record many (amount, date) pairs in one transaction; returns the insert count."""
        inserted = 0
        with self.session_scope() as session:
            for amount_minor_units, posted in rows:
                if self._insert_if_absent(session, account_id, amount_minor_units, posted):
                    inserted += 1
        return inserted

    def _insert_if_absent(
        self, session: Session, account_id: str, amount_minor_units: int, posted: date
    ) -> bool:
        insert = pg_insert if self.engine.dialect.name == "postgresql" else sqlite_insert
        stmt = (
            insert(TransactionImportRow)
            .values(account_id=account_id, amount=amount_minor_units, date_posted=posted)
            .on_conflict_do_nothing(index_elements=["account_id", "amount", "date_posted"])
        )
        return session.execute(stmt).rowcount == 1

    # ------------------------------------------------------------------
    # Budgets and accounts
    # ------------------------------------------------------------------

    def register_budget(self, budget: RemoteBudget) -> int:
        """
        Insert or rename a budget and its open accounts.

        Returns:
            Number of accounts registered
        """
        registered = 0
        with self.session_scope() as session:
            row = session.get(BudgetRow, budget.id)
            if row is None:
                session.add(BudgetRow(id=budget.id, name=budget.name))
            else:
                row.name = budget.name
            session.flush()

            for account in budget.accounts:
                if account.deleted or account.closed:
                    continue
                account_row = session.get(AccountRow, account.id)
                if account_row is None:
                    session.add(AccountRow(id=account.id, budget_id=budget.id, name=account.name))
                else:
                    account_row.name = account.name
                registered += 1

        logger.info(f"Registered budget {budget.name} with {registered} accounts")
        return registered

    def find_account(self, budget_name: str, account_name: str) -> Optional[LedgerAccount]:
        stmt = (
            select(AccountRow, BudgetRow)
            .join(BudgetRow, AccountRow.budget_id == BudgetRow.id)
            .where(BudgetRow.name == budget_name, AccountRow.name == account_name)
        )
        with self.session_scope() as session:
            row = session.execute(stmt).first()
            if row is None:
                return None
            return _to_ledger_account(row[0], row[1])

    def list_accounts(self) -> list[LedgerAccount]:
        stmt = (
            select(AccountRow, BudgetRow)
            .join(BudgetRow, AccountRow.budget_id == BudgetRow.id)
            .order_by(BudgetRow.name, AccountRow.name)
        )
        with self.session_scope() as session:
            return [_to_ledger_account(account, budget) for account, budget in session.execute(stmt)]

    # ------------------------------------------------------------------
    # Import log
    # ------------------------------------------------------------------

    def log_import(
        self,
        account: LedgerAccount,
        file_name: Optional[str],
        import_ids: Iterable[str],
        status: str = "done",
    ) -> None:
        with self.session_scope() as session:
            session.add(
                ImportLogRow(
                    budget_id=account.budget_id,
                    account_id=account.account_id,
                    file_name=file_name,
                    status=status,
                    transaction_ids=",".join(import_ids),
                )
            )

    def import_history(self, limit: int = 20) -> list[ImportLogEntry]:
        """Return the most recent import log rows, newest first."""
        stmt = (
            select(ImportLogRow, AccountRow.name, BudgetRow.name)
            .join(AccountRow, ImportLogRow.account_id == AccountRow.id)
            .join(BudgetRow, ImportLogRow.budget_id == BudgetRow.id)
            .order_by(ImportLogRow.id.desc())
            .limit(limit)
        )
        with self.session_scope() as session:
            return [
                ImportLogEntry(
                    budget_name=budget_name,
                    account_name=account_name,
                    file_name=log.file_name,
                    status=log.status,
                    import_ids=[i for i in log.transaction_ids.split(",") if i],
                    inserted_at=log.insert_datetime,
                )
                for log, account_name, budget_name in session.execute(stmt)
            ]


def _create_engine(database_url: str) -> Engine:
    try:
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(database_url, pool_pre_ping=True)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Cannot open local ledger {database_url}: {e}") from e


def _to_ledger_account(account: AccountRow, budget: BudgetRow) -> LedgerAccount:
    return LedgerAccount(
        account_id=account.id,
        name=account.name,
        budget_id=budget.id,
        budget_name=budget.name,
    )
