"""Chart datasets derived from the full in-memory transaction set.

Three independent aggregations:
  daily_series        every day of the last N days, income vs expense
  category_totals     top-N expense categories by summed magnitude
  monthly_comparison  most recent N observed YYYY-MM buckets

All totals are sums of magnitudes and never negative. Nothing here is
incremental: callers recompute from a fresh fetch after any mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from smartbudget.api.models import EXPENSE, INCOME, Category, Transaction

ZERO = Decimal("0")


@dataclass(frozen=True)
class SeriesPoint:
    """One bucket of an income/expense series."""
    key: str
    label: str
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    total: Decimal
    count: int
    percentage: float = 0.0


def _add(buckets: dict[str, list[Decimal]], key: str, txn: Transaction) -> None:
    slot = buckets[key]
    if txn.type == INCOME:
        slot[0] += txn.magnitude
    else:
        slot[1] += txn.magnitude


def daily_series(
    transactions: Iterable[Transaction],
    today: date | None = None,
    days: int = 30,
) -> list[SeriesPoint]:
    """Dense per-day series from today-(days-1) to today, ascending.

    Days with no activity are present with zero totals. Labels are DD.MM.
    """
    today = today or date.today()
    start = today - timedelta(days=days - 1)
    buckets: dict[str, list[Decimal]] = {}
    for offset in range(days):
        day = start + timedelta(days=offset)
        buckets[day.isoformat()] = [ZERO, ZERO]

    for txn in transactions:
        if start <= txn.transaction_date <= today:
            _add(buckets, txn.transaction_date.isoformat(), txn)

    return [
        SeriesPoint(
            key=key,
            label=f"{key[8:10]}.{key[5:7]}",
            income=income,
            expense=expense,
        )
        for key, (income, expense) in buckets.items()
    ]


def category_totals(
    transactions: Iterable[Transaction],
    categories: Iterable[Category] = (),
    top_n: int = 5,
    other_label: str = "Other",
    include_uncategorized: bool = False,
) -> list[CategoryTotal]:
    """Top expense categories by summed magnitude, descending.

    Names come from the transaction's embedded category, then the
    categories list, then other_label. Uncategorized expenses only count
    (as other_label) when include_uncategorized is set. Ties keep the
    order in which categories were first encountered.
    """
    names_by_id = {c.id: c.name for c in categories}
    totals: dict[str, list] = {}
    grand_total = ZERO

    for txn in transactions:
        if txn.type != EXPENSE:
            continue
        if txn.category_id is None:
            if not include_uncategorized:
                continue
            name = other_label
        else:
            name = txn.category_name or names_by_id.get(txn.category_id) or other_label
        slot = totals.setdefault(name, [ZERO, 0])
        slot[0] += txn.magnitude
        slot[1] += 1
        grand_total += txn.magnitude

    # reverse=True keeps the sort stable for equal totals
    ranked = sorted(totals.items(), key=lambda item: item[1][0], reverse=True)
    return [
        CategoryTotal(
            name=name,
            total=total,
            count=count,
            percentage=float(total / grand_total * 100) if grand_total else 0.0,
        )
        for name, (total, count) in ranked[:top_n]
    ]


def monthly_comparison(
    transactions: Iterable[Transaction],
    months: int = 6,
) -> list[SeriesPoint]:
    """Income vs expense per observed YYYY-MM, most recent `months` buckets.

    Only months with at least one transaction become buckets, so the result
    is not necessarily the last N calendar months.
    """
    buckets: dict[str, list[Decimal]] = {}
    for txn in transactions:
        key = txn.transaction_date.strftime("%Y-%m")
        buckets.setdefault(key, [ZERO, ZERO])
        _add(buckets, key, txn)

    keys = sorted(buckets)[-months:] if months > 0 else []
    return [
        SeriesPoint(key=key, label=key, income=buckets[key][0], expense=buckets[key][1])
        for key in keys
    ]
