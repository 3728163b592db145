"""SQLAlchemy models for the local ledger database."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class BudgetRow(Base):
    __tablename__ = "budget"

    # Remote budget uuid
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class AccountRow(Base):
    __tablename__ = "account"
    __table_args__ = (UniqueConstraint("budget_id", "name", name="uq_account_budget_name"),)

    # Remote account uuid
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    budget_id: Mapped[str] = mapped_column(String(36), ForeignKey("budget.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)


class TransactionImportRow(Base):
    """A transaction known to exist remotely; the dedup ground truth."""

    __tablename__ = "transaction_import"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "amount", "date_posted", name="uq_transaction_import_identity"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # Thousandths of the major currency unit
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date_posted: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.current_timestamp()
    )


class ImportLogRow(Base):
    __tablename__ = "import_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    budget_id: Mapped[str] = mapped_column(String(36), ForeignKey("budget.id"), nullable=False)
    account_id: Mapped[str] = mapped_column(String(36), ForeignKey("account.id"), nullable=False)
    file_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    # Comma separated import ids
    transaction_ids: Mapped[str] = mapped_column(Text, nullable=False, default="")
    insert_datetime: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.current_timestamp()
    )
