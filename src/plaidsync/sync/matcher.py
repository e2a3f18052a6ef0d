"""Pair up the two sides of transfers between tracked accounts."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta

from plaidsync.adapters.clients.plaid import PlaidTransaction

TRANSFER_CREDIT = "21005000"
TRANSFER_DEBIT = "21006000"
CREDIT_CARD_PAYMENT = "16001000"
# Some Amex payments arrive categorized as a payroll transfer.
TRANSFER_PAYROLL = "21009000"

COMPLEMENTARY_CATEGORIES: frozenset[tuple[str, str]] = frozenset(
    {
        (TRANSFER_CREDIT, TRANSFER_DEBIT),
        (TRANSFER_DEBIT, TRANSFER_CREDIT),
        (CREDIT_CARD_PAYMENT, TRANSFER_PAYROLL),
        (TRANSFER_PAYROLL, CREDIT_CARD_PAYMENT),
    }
)
TRANSFER_CATEGORIES: frozenset[str] = frozenset(
    code for pair in COMPLEMENTARY_CATEGORIES for code in pair
)

MAX_TRANSFER_GAP = timedelta(days=7)


@dataclass(frozen=True)
class TransferPair:
    """Two transactions forming one transfer. `first` precedes `second` in the pool."""

    first: PlaidTransaction
    second: PlaidTransaction

    @property
    def source(self) -> PlaidTransaction:
        """The leg money leaves from (positive Plaid amount)."""
        return self.first if self.first.amount > 0 else self.second

    @property
    def destination(self) -> PlaidTransaction:
        return self.second if self.first.amount > 0 else self.first


@dataclass
class MatchResult:
    """Partition of a transaction pool, in pool order.

    `items` interleaves pairs and singles at the position of their first
    member, which is the order they should be posted in.
    """

    items: list[TransferPair | PlaidTransaction] = field(default_factory=list)

    @property
    def pairs(self) -> list[TransferPair]:
        return [item for item in self.items if isinstance(item, TransferPair)]

    @property
    def singles(self) -> list[PlaidTransaction]:
        return [item for item in self.items if not isinstance(item, TransferPair)]


def is_transfer_pair(a: PlaidTransaction, b: PlaidTransaction) -> bool:
    if a.category_id is None or b.category_id is None:
        return False
    return (
        a.amount == -b.amount
        and a.iso_currency_code == b.iso_currency_code
        and abs(a.date - b.date) < MAX_TRANSFER_GAP
        and (a.category_id, b.category_id) in COMPLEMENTARY_CATEGORIES
    )


class TransferMatcher:
    """Greedy, order-dependent pairing.

    Each transaction in pool order takes the first unconsumed candidate that
    satisfies is_transfer_pair. This is not an optimal assignment: with more
    than two eligible transactions, which pairs form depends on pool order.
    """

    def match(self, pool: Sequence[PlaidTransaction]) -> MatchResult:
        consumed: set[int] = set()
        result = MatchResult()

        for i, txn in enumerate(pool):
            if i in consumed:
                continue
            consumed.add(i)

            partner_index = self._find_partner(pool, i, consumed)
            if partner_index is None:
                result.items.append(txn)
                continue

            consumed.add(partner_index)
            result.items.append(TransferPair(first=txn, second=pool[partner_index]))

        return result

    def _find_partner(
        self, pool: Sequence[PlaidTransaction], index: int, consumed: set[int]
    ) -> int | None:
        txn = pool[index]
        if txn.category_id not in TRANSFER_CATEGORIES:
            return None
        for j, candidate in enumerate(pool):
            if j in consumed:
                continue
            if is_transfer_pair(txn, candidate):
                return j
        return None
