from __future__ import annotations

from collections.abc import Iterable

from plaidsync.adapters.db.facade import DB
from plaidsync.adapters.db.models import ImportedTransaction


class DedupLedger:
    """Permanent record of which Plaid transactions have been handled.

    Every write commits immediately so a crash mid-pass never loses the record
    of a posting that already reached Firefly.
    """

    def __init__(self, db: DB) -> None:
        self._db = db

    def has(self, plaid_id: str) -> bool:
        return self._db.get_imported_transaction(plaid_id) is not None

    def get(self, plaid_id: str) -> ImportedTransaction | None:
        return self._db.get_imported_transaction(plaid_id)

    def processed(self, plaid_ids: Iterable[str]) -> set[str]:
        return self._db.imported_plaid_ids(list(plaid_ids))

    def record_processed(self, plaid_id: str, firefly_id: str | None) -> None:
        """Record one transaction; firefly_id None marks an intentional drop."""
        self._db.insert_imported_transactions({plaid_id: firefly_id})

    def record_transfer(self, source_id: str, dest_id: str, firefly_id: str) -> None:
        """Record both legs of a transfer against the same Firefly id."""
        self._db.insert_imported_transactions(
            {source_id: firefly_id, dest_id: firefly_id}
        )
