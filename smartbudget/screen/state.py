"""Screen state as an explicit value replaced only through transitions.

Transitions: fetch_started, fetch_succeeded, fetch_failed, mutation_applied.
Each returns a new ScreenState; nothing mutates one in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date

from smartbudget.api.models import Category, Summary, Transaction
from smartbudget.reports.aggregate import (
    CategoryTotal,
    SeriesPoint,
    category_totals,
    daily_series,
    monthly_comparison,
)

IDLE = "idle"
LOADING = "loading"
READY = "ready"
FAILED = "failed"

RECENT_COUNT = 5


@dataclass(frozen=True)
class AggregationSettings:
    daily_days: int = 30
    monthly_buckets: int = 6
    top_categories: int = 5
    other_label: str = "Other"
    include_uncategorized: bool = False

    @classmethod
    def from_config(cls, config) -> AggregationSettings:
        return cls(
            daily_days=config.daily_days,
            monthly_buckets=config.monthly_buckets,
            top_categories=config.top_categories,
            other_label=config.other_label,
            include_uncategorized=config.include_uncategorized,
        )


@dataclass(frozen=True)
class ScreenState:
    status: str = IDLE
    seq: int = 0
    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = ()
    summary: Summary = field(default_factory=Summary)
    daily: tuple[SeriesPoint, ...] = ()
    monthly: tuple[SeriesPoint, ...] = ()
    top_categories: tuple[CategoryTotal, ...] = ()
    error: str | None = None
    last_mutation: str | None = None

    @property
    def recent(self) -> tuple[Transaction, ...]:
        return self.transactions[:RECENT_COUNT]


def fetch_started(state: ScreenState, seq: int) -> ScreenState:
    return replace(state, status=LOADING, seq=seq, error=None)


def fetch_succeeded(
    state: ScreenState,
    transactions: list[Transaction],
    categories: list[Category],
    summary: Summary,
    settings: AggregationSettings,
    today: date | None = None,
) -> ScreenState:
    """Store the fresh set and recompute every derived dataset from it."""
    today = today or date.today()
    return replace(
        state,
        status=READY,
        transactions=tuple(transactions),
        categories=tuple(categories),
        summary=summary,
        daily=tuple(daily_series(transactions, today=today, days=settings.daily_days)),
        monthly=tuple(monthly_comparison(transactions, months=settings.monthly_buckets)),
        top_categories=tuple(category_totals(
            transactions,
            categories,
            top_n=settings.top_categories,
            other_label=settings.other_label,
            include_uncategorized=settings.include_uncategorized,
        )),
        error=None,
    )


def fetch_failed(state: ScreenState, message: str) -> ScreenState:
    """Reset every derived value; no stale partial view survives a failure."""
    return ScreenState(status=FAILED, seq=state.seq, error=message,
                       last_mutation=state.last_mutation)


def mutation_applied(state: ScreenState, description: str) -> ScreenState:
    return replace(state, last_mutation=description)


class FetchSequence:
    """Monotonic tags so only the latest-issued fetch of a view is applied."""

    def __init__(self):
        self._latest = 0

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_latest(self, tag: int) -> bool:
        return tag == self._latest
