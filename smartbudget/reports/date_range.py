"""Named report ranges resolved into concrete (from, to) date windows.

The range state is a small state machine: picking a named range overwrites
both boundaries, and typing a boundary switches the selector to custom.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum


class RangeSelector(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL = "all"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive date window. Both bounds None means unbounded."""
    date_from: date | None = None
    date_to: date | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.date_from is None and self.date_to is None

    def serialize(self) -> tuple[str, str]:
        """Return ('YYYY-MM-DD' or '', 'YYYY-MM-DD' or '')."""
        return (
            self.date_from.isoformat() if self.date_from else "",
            self.date_to.isoformat() if self.date_to else "",
        )

    def query_params(self) -> dict[str, str]:
        params = {}
        if self.date_from:
            params["date_from"] = self.date_from.isoformat()
        if self.date_to:
            params["date_to"] = self.date_to.isoformat()
        return params


def _last_day(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def resolve_window(selector: RangeSelector | str, today: date | None = None) -> ReportWindow:
    """Compute the window for a non-custom selector relative to today."""
    selector = RangeSelector(selector)
    today = today or date.today()

    if selector is RangeSelector.WEEK:
        return ReportWindow(today - timedelta(days=7), today)
    if selector is RangeSelector.MONTH:
        return ReportWindow(today.replace(day=1), _last_day(today.year, today.month))
    if selector is RangeSelector.QUARTER:
        quarter_index = (today.month - 1) // 3
        start_month = quarter_index * 3 + 1
        end_month = start_month + 2
        return ReportWindow(date(today.year, start_month, 1), _last_day(today.year, end_month))
    if selector is RangeSelector.YEAR:
        return ReportWindow(date(today.year, 1, 1), date(today.year, 12, 31))
    if selector is RangeSelector.ALL:
        return ReportWindow()
    raise ValueError("custom ranges have no computed window")


def _parse_boundary(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValueError(f"Date must be YYYY-MM-DD: {value!r}") from e


class DateRangeState:
    """Selector plus the two boundary fields shown to the user."""

    def __init__(self, selector: RangeSelector | str = RangeSelector.ALL, today: date | None = None):
        self.selector = RangeSelector.CUSTOM
        self.window = ReportWindow()
        if RangeSelector(selector) is not RangeSelector.CUSTOM:
            self.select(selector, today=today)

    def select(self, selector: RangeSelector | str, today: date | None = None) -> ReportWindow:
        """Pick a range. Non-custom selections overwrite both boundaries."""
        selector = RangeSelector(selector)
        self.selector = selector
        if selector is not RangeSelector.CUSTOM:
            self.window = resolve_window(selector, today)
        return self.window

    def set_date_from(self, value: str | date | None) -> ReportWindow:
        """Edit the lower bound; switches to custom."""
        parsed = _parse_boundary(value)
        self.window = ReportWindow(parsed, self.window.date_to)
        self.selector = RangeSelector.CUSTOM
        return self.window

    def set_date_to(self, value: str | date | None) -> ReportWindow:
        """Edit the upper bound; switches to custom."""
        parsed = _parse_boundary(value)
        self.window = ReportWindow(self.window.date_from, parsed)
        self.selector = RangeSelector.CUSTOM
        return self.window

    def query_params(self) -> dict[str, str]:
        return self.window.query_params()
