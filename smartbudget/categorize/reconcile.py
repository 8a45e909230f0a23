"""Reassign a transaction's category by name, creating the category if needed.

Two explicit steps:
1. resolve: find a category with that name and the transaction's type,
   or create one. A failed create raises; nothing is updated.
2. apply: PUT the category id onto the transaction, with the
   remember_category and apply_to_existing flags. The server
   handles the retroactive reassignment.

A blank name is a no-op. Callers re-fetch the transaction set after a
successful apply instead of patching it locally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from smartbudget.api.client import ApiClient, ServerError
from smartbudget.api.models import Category, Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryHandle:
    """A resolved category and whether this call created it."""
    category: Category
    created: bool = False


@dataclass(frozen=True)
class ReassignResult:
    """Outcome of applying a category to one transaction."""
    transaction_id: object
    category: Category
    created_category: bool
    remember_category: bool
    apply_to_existing: bool


class CategoryReconciler:
    """Resolve category names to ids against a cached category list.

    Args:
        client: API client.
        categories: Categories already known (from GET /financial/categories).
            Categories created here are appended to this cache.
    """

    def __init__(self, client: ApiClient, categories: Iterable[Category] = ()):
        self.client = client
        self.categories: list[Category] = list(categories)

    def find(self, name: str, txn_type: str) -> Category | None:
        for category in self.categories:
            if category.matches(name, txn_type):
                return category
        return None

    async def resolve(self, name: str, txn_type: str) -> CategoryHandle:
        """Return the existing category for (name, type) or create it.

        Raises:
            ValueError: name is blank.
            ApiError: creation failed.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name is required")

        existing = self.find(name, txn_type)
        if existing is not None:
            return CategoryHandle(category=existing)

        data = await self.client.create_category(name, txn_type)
        if not isinstance(data, dict) or data.get("id") is None:
            raise ServerError(f"Category create for '{name}' returned no id")
        created = Category(
            id=data["id"],
            name=data.get("name") or name,
            type=data.get("type") or txn_type,
        )
        self.categories.append(created)
        logger.info("Created %s category '%s' (%s)", txn_type, created.name, created.id)
        return CategoryHandle(category=created, created=True)

    async def reassign(
        self,
        txn: Transaction,
        name: str,
        remember_category: bool = True,
        apply_to_existing: bool = True,
    ) -> ReassignResult | None:
        """Resolve `name` and apply it to `txn`.

        Returns None without any API call when name is blank.
        """
        if not (name or "").strip():
            logger.debug("Blank category name for %s, nothing to do", txn.id)
            return None

        handle = await self.resolve(name, txn.type)
        await self.client.update_transaction(
            txn.id,
            handle.category.id,
            remember_category=remember_category,
            apply_to_existing=apply_to_existing,
        )
        logger.info(
            "Transaction %s -> '%s' (remember=%s, apply_to_existing=%s)",
            txn.id, handle.category.name, remember_category, apply_to_existing,
        )
        return ReassignResult(
            transaction_id=txn.id,
            category=handle.category,
            created_category=handle.created,
            remember_category=remember_category,
            apply_to_existing=apply_to_existing,
        )
