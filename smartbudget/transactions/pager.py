"""Fetch every transaction page and merge into one deduplicated list.

Termination (first match wins):
1. Pagination metadata says this was the last page (page >= pages)
2. The page came back shorter than the page size (no metadata fallback)

A transaction whose id was already seen on an earlier page is dropped;
overlap happens when rows are inserted or deleted between page requests.
Pages are requested strictly one after another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from smartbudget.api.client import ApiClient, ServerError
from smartbudget.api.models import Transaction

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


@dataclass
class PagerResult:
    """Outcome of a full paged fetch."""
    transactions: list[Transaction] = field(default_factory=list)
    pages: int = 0
    duplicate_count: int = 0


def parse_page(data) -> tuple[list[dict], int | None]:
    """Split a page payload into (rows, total_pages).

    Accepts {transactions, pagination: {pages}} or a bare list of rows,
    in which case total_pages is None.
    """
    if data is None:
        return [], None
    if isinstance(data, list):
        return data, None
    if not isinstance(data, dict):
        raise ServerError(f"Unexpected transactions payload: {type(data).__name__}")
    rows = data.get("transactions") or []
    pagination = data.get("pagination") or {}
    pages = pagination.get("pages")
    if pages is None:
        return rows, None
    try:
        return rows, int(pages)
    except (TypeError, ValueError) as e:
        raise ServerError(f"Bad pagination metadata: {pages!r}") from e


async def fetch_all_transactions(
    client: ApiClient, page_size: int = PAGE_SIZE,
) -> PagerResult:
    """Fetch all pages, drop repeated ids, sort by date descending.

    Raises:
        ApiError: Any page failed. No partial result is returned.
    """
    seen_ids: set = set()
    merged: list[Transaction] = []
    duplicates = 0
    page = 1

    while True:
        data = await client.list_transactions(page=page, limit=page_size)
        rows, total_pages = parse_page(data)
        logger.debug(
            "Transactions page %d: %d rows (pages=%s)", page, len(rows), total_pages,
        )

        for row in rows:
            try:
                txn = Transaction.from_api(row)
            except (KeyError, TypeError, ValueError) as e:
                raise ServerError(f"Malformed transaction on page {page}: {e}") from e
            if txn.id in seen_ids:
                duplicates += 1
                continue
            seen_ids.add(txn.id)
            merged.append(txn)

        if total_pages is not None and page >= total_pages:
            break
        if len(rows) < page_size:
            break
        page += 1

    # sorted() is stable: same-date transactions keep server order
    merged = sorted(merged, key=lambda t: t.transaction_date, reverse=True)
    logger.info(
        "Fetched %d transactions over %d page(s), %d duplicate(s) dropped",
        len(merged), page, duplicates,
    )
    return PagerResult(transactions=merged, pages=page, duplicate_count=duplicates)
