"""Dataclass models for API payloads.

Amounts are Decimal. A transaction's amount is always read as a magnitude;
the sign comes from its type, never from the stored value (receipt scans
store negative amounts).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)


class ValidationError(ValueError):
    """Raised when a draft fails local validation, before any network call."""


def to_decimal(value) -> Decimal:
    """Parse an API amount (number or numeric string) into a Decimal."""
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def parse_date(value) -> date:
    """Parse 'YYYY-MM-DD' or an ISO timestamp down to a calendar date."""
    if isinstance(value, date):
        return value
    if not value:
        raise ValueError("Missing transaction date")
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class Category:
    id: int | str
    name: str
    type: str

    @classmethod
    def from_api(cls, raw: dict) -> Category:
        return cls(id=raw["id"], name=raw.get("name") or "", type=raw.get("type") or EXPENSE)

    def matches(self, name: str, txn_type: str) -> bool:
        """Names are compared trimmed and case-insensitively within a type."""
        return self.type == txn_type and self.name.strip().casefold() == name.strip().casefold()


@dataclass
class Transaction:
    id: int | str
    description: str
    amount: Decimal
    type: str
    transaction_date: date
    category_id: int | str | None = None
    category_name: str | None = None

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    @property
    def signed_amount(self) -> Decimal:
        return self.magnitude if self.type == INCOME else -self.magnitude

    @classmethod
    def from_api(cls, raw: dict) -> Transaction:
        txn_type = raw.get("type")
        if txn_type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {txn_type!r}")
        category = raw.get("category") or {}
        category_id = raw.get("category_id")
        if category_id is None:
            category_id = category.get("id")
        return cls(
            id=raw["id"],
            description=raw.get("description") or "",
            amount=to_decimal(raw.get("amount")),
            type=txn_type,
            transaction_date=parse_date(raw.get("transaction_date")),
            category_id=category_id,
            category_name=category.get("name"),
        )


@dataclass(frozen=True)
class Summary:
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    count: int = 0

    @classmethod
    def from_api(cls, raw: dict | None) -> Summary:
        """Accept both camelCase and snake_case total keys."""
        raw = raw or {}

        def first(*keys):
            for key in keys:
                if raw.get(key) is not None:
                    return raw[key]
            return None

        income = to_decimal(first("totalIncome", "total_income"))
        expense = to_decimal(first("totalExpense", "total_expense", "total_spent"))
        balance = first("balance")
        count = first("transactionCount", "transaction_count", "count") or 0
        return cls(
            income=income,
            expense=expense,
            balance=to_decimal(balance) if balance is not None else income - expense,
            count=int(count),
        )


@dataclass
class TransactionDraft:
    """Form fields for a new transaction."""
    description: str = ""
    amount: str = ""
    category_id: int | str | None = None
    transaction_date: str = field(default_factory=lambda: date.today().isoformat())
    type: str = EXPENSE

    def validate(self) -> dict:
        """Return the request body, or raise ValidationError naming the bad field."""
        if self.type not in TRANSACTION_TYPES:
            raise ValidationError(f"type must be one of {', '.join(TRANSACTION_TYPES)}")
        description = (self.description or "").strip()
        if not description:
            raise ValidationError("description is required")
        try:
            amount = to_decimal(self.amount)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if amount <= 0:
            raise ValidationError("amount must be a positive number")
        if self.category_id in (None, ""):
            raise ValidationError("category_id is required")
        try:
            txn_date = date.fromisoformat(str(self.transaction_date))
        except ValueError as e:
            raise ValidationError(f"transaction_date must be YYYY-MM-DD: {self.transaction_date!r}") from e
        return {
            "description": description,
            "amount": str(amount),
            "category_id": self.category_id,
            "transaction_date": txn_date.isoformat(),
            "type": self.type,
        }
