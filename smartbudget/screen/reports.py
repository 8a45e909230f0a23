"""Controller for the reports screen.

Holds the date-range state and fetches the server-computed spending,
products and monthly reports for the resolved window. A report that fails
is stored as None; the screen itself never fails.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date

from smartbudget.api.client import ApiClient, ApiError
from smartbudget.reports.date_range import DateRangeState, RangeSelector, ReportWindow
from smartbudget.screen.state import FetchSequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportsSnapshot:
    seq: int
    window: ReportWindow
    spending: dict | None = None
    products: dict | None = None
    monthly: dict | None = None


class ReportsController:
    def __init__(self, client: ApiClient, selector=RangeSelector.MONTH, today_fn=date.today):
        self.client = client
        self.today_fn = today_fn
        self.range = DateRangeState(selector, today=today_fn())
        self.search = ""
        self.snapshot: ReportsSnapshot | None = None
        self._sequence = FetchSequence()

    def select_range(self, selector) -> ReportWindow:
        return self.range.select(selector, today=self.today_fn())

    def set_date_from(self, value) -> ReportWindow:
        return self.range.set_date_from(value)

    def set_date_to(self, value) -> ReportWindow:
        return self.range.set_date_to(value)

    async def _fetch(self, kind: str, params: dict) -> dict | None:
        try:
            return await self.client.get_report(kind, params)
        except ApiError as e:
            logger.warning("%s report unavailable: %s", kind, e)
            return None

    async def fetch(self) -> ReportsSnapshot | None:
        """Fetch all three reports for the current window.

        Returns the applied snapshot, or None when a newer fetch was
        issued while this one was in flight.
        """
        seq = self._sequence.issue()
        window = self.range.window
        params = window.query_params()
        if self.search.strip():
            params["search"] = self.search.strip()
        today = self.today_fn()
        monthly_params = {"year": today.year, "month": today.month}

        spending, products, monthly = await asyncio.gather(
            self._fetch("spending", params),
            self._fetch("products", params),
            self._fetch("monthly", monthly_params),
        )

        if not self._sequence.is_latest(seq):
            logger.debug("Discarding stale report fetch #%d", seq)
            return None

        self.snapshot = ReportsSnapshot(
            seq=seq, window=window, spending=spending, products=products, monthly=monthly,
        )
        return self.snapshot
