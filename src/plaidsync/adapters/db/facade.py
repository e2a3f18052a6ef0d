from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from plaidsync.adapters.db.models import Base, ImportedTransaction, LastPoll


class DuplicateRecordError(Exception):
    """Raised when a Plaid transaction id is recorded a second time."""


class DB:
    """Database service layer for sync watermarks and dedup records."""

    def __init__(self, url: str) -> None:
        """Initialize database connection.

        Args:
            url: Database URL (e.g., "sqlite:///import-db.sqlite3")
        """
        self._url = url
        engine_kwargs: dict[str, Any] = {"echo": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, so every session sees the same database.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self._engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self._engine, class_=Session)

    @property
    def url(self) -> str:
        return self._url

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager for database sessions."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(self._engine)

    # Watermarks ----------------------------------------------------------

    def get_last_poll(self, plaid_account_id: str) -> datetime | None:
        with self.session() as session:  # type: Session
            row = session.get(LastPoll, plaid_account_id)
            return row.polled_at if row else None

    def save_last_polls(self, polls: Mapping[str, datetime]) -> None:
        """Upsert several watermarks in a single transaction."""
        if not polls:
            return
        with self.session() as session:  # type: Session
            for plaid_account_id, polled_at in polls.items():
                row = session.get(LastPoll, plaid_account_id)
                if row is None:
                    session.add(
                        LastPoll(plaid_account_id=plaid_account_id, polled_at=polled_at)
                    )
                else:
                    row.polled_at = polled_at
                    row.updated_at = datetime.now()

    # Dedup records -------------------------------------------------------

    def get_imported_transaction(self, plaid_id: str) -> ImportedTransaction | None:
        with self.session() as session:  # type: Session
            row = session.scalars(
                select(ImportedTransaction).where(ImportedTransaction.plaid_id == plaid_id)
            ).first()
            if row:
                session.expunge(row)
            return row

    def imported_plaid_ids(self, plaid_ids: list[str]) -> set[str]:
        """Return the subset of plaid_ids that already have a dedup record."""
        if not plaid_ids:
            return set()
        with self.session() as session:  # type: Session
            rows = session.scalars(
                select(ImportedTransaction.plaid_id).where(
                    ImportedTransaction.plaid_id.in_(plaid_ids)
                )
            )
            return set(rows)

    def insert_imported_transactions(
        self, records: Mapping[str, str | None]
    ) -> None:
        """Insert dedup records (plaid_id -> firefly_id) in one transaction.

        Raises:
            DuplicateRecordError: If any plaid_id is already recorded
        """
        try:
            with self.session() as session:  # type: Session
                session.add_all(
                    ImportedTransaction(plaid_id=plaid_id, firefly_id=firefly_id)
                    for plaid_id, firefly_id in records.items()
                )
                session.flush()
        except IntegrityError as e:
            raise DuplicateRecordError(
                f"Transaction already recorded: {', '.join(records)}"
            ) from e
