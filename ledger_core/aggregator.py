"""Period summaries derived from the ledger on every request."""

from __future__ import annotations

from datetime import tzinfo
from decimal import Decimal
from typing import Callable, Dict

from .ledger import TransactionLedger
from .models import BudgetSummary, CategoryTotal, Period

ZERO = Decimal("0.00")


class BudgetAggregator:
    """Groups a period's entries by category and computes totals.

    Holds no state of its own: every call reads the ledger afresh, so a
    summary always reflects the latest committed writes.
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        zone_for: Callable[[str], tzinfo],
    ) -> None:
        self._ledger = ledger
        self._zone_for = zone_for

    def summarize(self, owner_id: str, period: Period) -> BudgetSummary:
        window = period.localize(self._zone_for(owner_id))

        by_category: Dict[str, Decimal] = {}
        total_income = ZERO
        total_expense = ZERO
        count = 0
        for entry in self._ledger.list(owner_id, window):
            by_category[entry.category] = by_category.get(entry.category, ZERO) + entry.amount
            if entry.amount > 0:
                total_income += entry.amount
            else:
                total_expense += -entry.amount
            count += 1

        # Largest contributors first; equal magnitudes fall back to the name.
        categories = sorted(
            (CategoryTotal(category, amount) for category, amount in by_category.items()),
            key=lambda item: (-item.magnitude, item.category),
        )
        return BudgetSummary(
            period=window,
            total_income=total_income,
            total_expense=total_expense,
            categories=tuple(categories),
            entry_count=count,
        )
