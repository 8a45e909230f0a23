"""Controller for the transactions/dashboard screen.

Owns the single ScreenState. Every mutation (create, delete, category
reassignment, bulk import) is followed by a full refresh; there is no
local patching of the transaction set.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import Path

from smartbudget.api.client import ApiClient, ApiError
from smartbudget.api.models import Category, Summary, TransactionDraft
from smartbudget.categorize.reconcile import CategoryReconciler, ReassignResult
from smartbudget.imports.report import (
    MAX_LISTED_ERRORS,
    ImportReport,
    build_csv_report,
    build_receipt_report,
)
from smartbudget.screen.state import (
    AggregationSettings,
    FetchSequence,
    ScreenState,
    fetch_failed,
    fetch_started,
    fetch_succeeded,
    mutation_applied,
)
from smartbudget.transactions.pager import PAGE_SIZE, fetch_all_transactions

logger = logging.getLogger(__name__)


class TransactionsController:
    """Fetch, aggregate and mutate transactions for one screen.

    Args:
        client: API client.
        settings: Aggregation window sizes and labels.
        page_size: Page size for the paged fetch.
        max_import_errors: Error records listed in import reports.
        today_fn: Returns "today"; injectable for tests.
    """

    def __init__(
        self,
        client: ApiClient,
        settings: AggregationSettings | None = None,
        page_size: int = PAGE_SIZE,
        max_import_errors: int = MAX_LISTED_ERRORS,
        today_fn=date.today,
    ):
        self.client = client
        self.settings = settings or AggregationSettings()
        self.page_size = page_size
        self.max_import_errors = max_import_errors
        self.today_fn = today_fn
        self.state = ScreenState()
        self._sequence = FetchSequence()

    @classmethod
    def from_config(cls, client: ApiClient, config) -> TransactionsController:
        return cls(
            client,
            settings=AggregationSettings.from_config(config),
            page_size=config.page_size,
            max_import_errors=config.max_import_errors,
        )

    # ── Fetch ────────────────────────────────────────────

    async def _load_summary(self) -> Summary:
        try:
            return Summary.from_api(await self.client.get_summary())
        except ApiError as e:
            logger.warning("Summary unavailable: %s", e)
            return Summary()

    async def refresh(self) -> ScreenState:
        """Re-fetch everything and recompute derived datasets.

        Categories, summary and the page loop run concurrently. A failed
        transaction or category fetch resets the screen to empty. A result
        that is no longer the latest issued fetch is discarded.
        """
        seq = self._sequence.issue()
        self.state = fetch_started(self.state, seq)

        try:
            # All three settle before any error propagates
            results = await asyncio.gather(
                fetch_all_transactions(self.client, page_size=self.page_size),
                self.client.list_categories(),
                self._load_summary(),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    raise result
            pager_result, raw_categories, summary = results
            categories = [Category.from_api(c) for c in raw_categories]
        except (ApiError, KeyError, TypeError) as e:
            if not self._sequence.is_latest(seq):
                logger.debug("Discarding stale failed fetch #%d", seq)
                return self.state
            logger.warning("Transaction fetch failed: %s", e)
            self.state = fetch_failed(self.state, str(e))
            return self.state

        if not self._sequence.is_latest(seq):
            logger.debug("Discarding stale fetch #%d", seq)
            return self.state

        self.state = fetch_succeeded(
            self.state,
            pager_result.transactions,
            categories,
            summary,
            self.settings,
            today=self.today_fn(),
        )
        return self.state

    # ── Mutations ────────────────────────────────────────

    def _find_transaction(self, transaction_id):
        for txn in self.state.transactions:
            if str(txn.id) == str(transaction_id):
                return txn
        return None

    async def reassign_category(
        self,
        transaction_id,
        category_name: str,
        remember_category: bool = True,
        apply_to_existing: bool = True,
    ) -> ReassignResult | None:
        """Apply a category by name, then refresh.

        Raises:
            KeyError: transaction_id is not in the current set.
            ApiError: category create or transaction update failed.
        """
        txn = self._find_transaction(transaction_id)
        if txn is None:
            raise KeyError(f"Transaction not found: {transaction_id}")

        reconciler = CategoryReconciler(self.client, self.state.categories)
        result = await reconciler.reassign(
            txn,
            category_name,
            remember_category=remember_category,
            apply_to_existing=apply_to_existing,
        )
        if result is None:
            return None

        self.state = mutation_applied(
            self.state, f"category:{txn.id}:{result.category.id}",
        )
        await self.refresh()
        return result

    async def create_transaction(self, draft: TransactionDraft) -> dict:
        """Validate locally, create, refresh.

        Raises:
            ValidationError: before any network call.
            ApiError: the create call failed.
        """
        body = draft.validate()
        created = await self.client.create_transaction(body)
        self.state = mutation_applied(self.state, "create")
        await self.refresh()
        return created

    async def delete_transaction(self, transaction_id) -> None:
        await self.client.delete_transaction(transaction_id)
        self.state = mutation_applied(self.state, f"delete:{transaction_id}")
        await self.refresh()

    async def import_csv(self, file_path: Path) -> ImportReport:
        """Upload a statement. Partial failures come back in the report."""
        data = await self.client.import_csv(file_path)
        report = build_csv_report(data, max_errors=self.max_import_errors)
        self.state = mutation_applied(self.state, f"import-csv:{Path(file_path).name}")
        await self.refresh()
        return report

    async def scan_receipt(
        self, text: str | None = None, file_path: Path | None = None,
    ) -> ImportReport:
        data = await self.client.scan_receipt(text=text, file_path=file_path)
        report = build_receipt_report(data, max_errors=self.max_import_errors)
        self.state = mutation_applied(self.state, "scan-receipt")
        await self.refresh()
        return report
