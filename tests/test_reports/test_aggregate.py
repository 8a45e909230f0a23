"""Tests for chart aggregations over the in-memory transaction set."""

from datetime import date, timedelta
from decimal import Decimal

from smartbudget.api.models import Category, Transaction
from smartbudget.reports.aggregate import (
    category_totals,
    daily_series,
    monthly_comparison,
)


def _txn(txn_id, day, amount, txn_type="expense", category_id=1, category_name=None):
    return Transaction(
        id=txn_id,
        description=f"txn {txn_id}",
        amount=Decimal(amount),
        type=txn_type,
        transaction_date=day,
        category_id=category_id,
        category_name=category_name,
    )


TODAY = date(2024, 3, 31)


# ── daily_series ─────────────────────────────────────────


class TestDailySeries:
    def test_dense_thirty_days(self):
        series = daily_series([], today=TODAY, days=30)
        assert len(series) == 30
        assert series[0].key == "2024-03-02"
        assert series[-1].key == "2024-03-31"
        assert series[-1].label == "31.03"
        assert all(p.income == 0 and p.expense == 0 for p in series)

    def test_sums_match_window(self):
        txns = [
            _txn(1, TODAY, "12.50"),
            _txn(2, TODAY - timedelta(days=3), "7.50"),
            _txn(3, TODAY - timedelta(days=3), "100", txn_type="income"),
            _txn(4, TODAY - timedelta(days=45), "999"),
            _txn(5, TODAY + timedelta(days=1), "999"),
        ]
        series = daily_series(txns, today=TODAY, days=30)
        assert sum(p.expense for p in series) == Decimal("20.00")
        assert sum(p.income for p in series) == Decimal("100")
        by_key = {p.key: p for p in series}
        assert by_key["2024-03-28"].net == Decimal("92.50")

    def test_negative_stored_amount_counts_as_magnitude(self):
        series = daily_series([_txn(1, TODAY, "-4.20")], today=TODAY, days=7)
        assert series[-1].expense == Decimal("4.20")


# ── category_totals ──────────────────────────────────────


class TestCategoryTotals:
    CATEGORIES = [
        Category(1, "Groceries", "expense"),
        Category(2, "Transport", "expense"),
        Category(3, "Rent", "expense"),
        Category(4, "Fun", "expense"),
        Category(5, "Health", "expense"),
        Category(6, "Gifts", "expense"),
        Category(9, "Salary", "income"),
    ]

    def test_top_five_non_increasing(self):
        txns = [
            _txn(i, TODAY, str(amount), category_id=cat)
            for i, (cat, amount) in enumerate(
                [(1, 50), (2, 30), (3, 500), (4, 20), (5, 10), (6, 5), (1, 60)],
            )
        ]
        totals = category_totals(txns, self.CATEGORIES, top_n=5)
        assert len(totals) == 5
        assert [t.name for t in totals] == ["Rent", "Groceries", "Transport", "Fun", "Health"]
        amounts = [t.total for t in totals]
        assert amounts == sorted(amounts, reverse=True)
        assert totals[1].count == 2

    def test_income_ignored(self):
        txns = [_txn(1, TODAY, "1000", txn_type="income", category_id=9)]
        assert category_totals(txns, self.CATEGORIES) == []

    def test_embedded_name_wins(self):
        txns = [_txn(1, TODAY, "10", category_id=1, category_name="Food")]
        assert category_totals(txns, self.CATEGORIES)[0].name == "Food"

    def test_unknown_category_id_uses_other_label(self):
        txns = [_txn(1, TODAY, "10", category_id=77)]
        totals = category_totals(txns, self.CATEGORIES, other_label="Other expenses")
        assert totals[0].name == "Other expenses"

    def test_uncategorized_excluded_by_default(self):
        txns = [_txn(1, TODAY, "10", category_id=None), _txn(2, TODAY, "5")]
        totals = category_totals(txns, self.CATEGORIES)
        assert [t.name for t in totals] == ["Groceries"]

    def test_uncategorized_included_when_enabled(self):
        txns = [_txn(1, TODAY, "10", category_id=None), _txn(2, TODAY, "5")]
        totals = category_totals(txns, self.CATEGORIES, include_uncategorized=True)
        assert [t.name for t in totals] == ["Other", "Groceries"]

    def test_ties_keep_first_seen_order(self):
        txns = [
            _txn(1, TODAY, "10", category_id=2),
            _txn(2, TODAY, "10", category_id=1),
        ]
        totals = category_totals(txns, self.CATEGORIES)
        assert [t.name for t in totals] == ["Transport", "Groceries"]

    def test_percentages(self):
        txns = [_txn(1, TODAY, "75", category_id=1), _txn(2, TODAY, "25", category_id=2)]
        totals = category_totals(txns, self.CATEGORIES)
        assert [t.percentage for t in totals] == [75.0, 25.0]


# ── monthly_comparison ───────────────────────────────────


class TestMonthlyComparison:
    def test_only_observed_months(self):
        txns = [
            _txn(1, date(2024, 1, 5), "10"),
            _txn(2, date(2024, 3, 5), "20"),
            _txn(3, date(2024, 3, 6), "500", txn_type="income"),
        ]
        buckets = monthly_comparison(txns, months=6)
        assert [b.key for b in buckets] == ["2024-01", "2024-03"]
        assert buckets[1].income == Decimal("500")
        assert buckets[1].expense == Decimal("20")

    def test_keeps_most_recent_buckets_ascending(self):
        txns = [_txn(m, date(2023, m, 1), "1") for m in range(1, 13)]
        buckets = monthly_comparison(txns, months=6)
        assert [b.key for b in buckets] == [
            "2023-07", "2023-08", "2023-09", "2023-10", "2023-11", "2023-12",
        ]

    def test_year_boundary_orders_correctly(self):
        txns = [_txn(1, date(2024, 1, 2), "1"), _txn(2, date(2023, 12, 30), "1")]
        assert [b.key for b in monthly_comparison(txns)] == ["2023-12", "2024-01"]
