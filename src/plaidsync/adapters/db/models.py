from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, Integer, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class LastPoll(Base):
    """Per-account sync watermark: the point up to which Plaid has been read."""

    __tablename__ = "last_poll"

    plaid_account_id: Mapped[str] = mapped_column(String, primary_key=True)
    polled_at: Mapped[datetime] = mapped_column(TIMESTAMP, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


class ImportedTransaction(Base):
    """Dedup tombstone for a Plaid transaction.

    firefly_id is NULL when the transaction was dropped on purpose (its account
    is not configured for sync). Rows are never updated or deleted.
    """

    __tablename__ = "imported_transactions"

    imported_transaction_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    plaid_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    firefly_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
