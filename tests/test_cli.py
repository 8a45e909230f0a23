"""Tests for smartbudget.cli: argument parsing and command handlers.

Tests use main(argv=[...]) with the config and API client patched, so
no live server is needed and the watch loop never starts.
"""

from __future__ import annotations

import subprocess
import sys
from unittest.mock import MagicMock, patch

import httpx
import pytest

from smartbudget.cli import main
from smartbudget.config import Config
from tests.conftest import FIXTURE_CONFIG_DIR, envelope, json_body, make_client, txn_row


# ── Helpers ──────────────────────────────────────────────


class FakeServer:
    """Minimal in-memory API covering the endpoints the CLI touches."""

    def __init__(self, rows=None, categories=None):
        self.rows = rows if rows is not None else [
            txn_row(1, day="2024-03-30", amount="40", category_id=1),
            txn_row(2, day="2024-03-29", amount="2500", txn_type="income", category_id=2),
        ]
        self.categories = categories if categories is not None else [
            {"id": 1, "name": "Groceries", "type": "expense"},
            {"id": 2, "name": "Salary", "type": "income"},
        ]
        self.requests: list[tuple[str, str]] = []
        self.bodies: dict[tuple[str, str], dict] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path.removeprefix("/api")
        self.requests.append((method, path))
        if request.headers.get("Content-Type") == "application/json":
            self.bodies[(method, path)] = json_body(request)

        if path == "/financial/transactions" and method == "GET":
            data = {"transactions": self.rows, "pagination": {"pages": 1}}
            return httpx.Response(200, json=envelope(data))
        if path == "/financial/transactions/summary":
            return httpx.Response(200, json=envelope({"totalIncome": 2500, "totalExpense": 40}))
        if path == "/financial/categories" and method == "GET":
            return httpx.Response(200, json=envelope(self.categories))
        if path == "/financial/categories" and method == "POST":
            created = {"id": 50, **json_body(request)}
            self.categories.append(created)
            return httpx.Response(201, json=envelope(created))
        if path == "/financial/transactions/import-csv":
            return httpx.Response(200, json=envelope({
                "total": 7, "imported": 3, "failed": 2, "skipped": 2,
                "errors": [{"row": 2, "error": "Invalid date"}, {"row": 5, "error": "Invalid amount"}],
            }))
        if path.startswith("/financial/reports/"):
            return httpx.Response(200, json=envelope({"report": path.rsplit("/", 1)[-1]}))
        if method in ("POST", "PUT", "DELETE"):
            return httpx.Response(200, json=envelope({"id": 1}))
        return httpx.Response(404, json=envelope(status="error", message="Not found"))


def _run_main(argv, server):
    """Run main() against a FakeServer and return the exit code."""
    with patch("smartbudget.cli._setup_logging"), \
         patch("smartbudget.cli._get_config", return_value=Config(FIXTURE_CONFIG_DIR)), \
         patch("smartbudget.cli._get_client", side_effect=lambda config: make_client(server)):
        with pytest.raises(SystemExit) as exc:
            main(argv)
    return exc.value.code


# ── Argument parsing tests (subprocess) ──────────────────


class TestCliHelp:
    def test_help_exits_zero(self):
        result = subprocess.run(
            [sys.executable, "-m", "smartbudget.cli", "--help"],
            capture_output=True, text=True,
        )
        assert result.returncode == 0
        assert "SmartBudget personal finance client" in result.stdout

    def test_all_subcommands_listed_in_help(self):
        result = subprocess.run(
            [sys.executable, "-m", "smartbudget.cli", "--help"],
            capture_output=True, text=True,
        )
        for cmd in ["transactions", "dashboard", "range", "report", "categorize",
                    "add", "delete", "import-csv", "scan-receipt", "watch"]:
            assert cmd in result.stdout, f"Subcommand '{cmd}' not in help output"

    def test_categorize_requires_name(self):
        result = subprocess.run(
            [sys.executable, "-m", "smartbudget.cli", "categorize", "12"],
            capture_output=True, text=True,
        )
        assert result.returncode != 0  # argparse error, missing required arg


# ── main() dispatch tests ────────────────────────────────


class TestMainDispatch:
    def test_main_dispatches_to_handler(self):
        """main() dispatches to the correct command handler."""
        with patch("smartbudget.cli._COMMANDS", {"dashboard": MagicMock(return_value=0)}):
            with patch("smartbudget.cli._setup_logging"):
                with pytest.raises(SystemExit) as exc:
                    main(["dashboard"])
                assert exc.value.code == 0

    def test_main_no_command_shows_help(self, capsys):
        """main() with no command prints help and exits 0."""
        with patch("smartbudget.cli._setup_logging"):
            with pytest.raises(SystemExit) as exc:
                main([])
            assert exc.value.code == 0
        assert "usage:" in capsys.readouterr().out.lower()


# ── Command tests ────────────────────────────────────────


class TestRangeCommand:
    def test_named_range(self, capsys):
        with patch("smartbudget.cli._setup_logging"):
            with pytest.raises(SystemExit) as exc:
                main(["range", "all"])
        assert exc.value.code == 0
        assert capsys.readouterr().out.strip() == "all: - .. -"

    def test_boundary_switches_to_custom(self, capsys):
        with patch("smartbudget.cli._setup_logging"):
            with pytest.raises(SystemExit) as exc:
                main(["range", "all", "--from", "2024-01-01", "--to", "2024-01-31"])
        assert exc.value.code == 0
        assert capsys.readouterr().out.strip() == "custom: 2024-01-01 .. 2024-01-31"

    def test_bad_date(self, capsys):
        with patch("smartbudget.cli._setup_logging"):
            with pytest.raises(SystemExit) as exc:
                main(["range", "custom", "--from", "01/02/2024"])
        assert exc.value.code == 1
        assert "YYYY-MM-DD" in capsys.readouterr().out


class TestTransactionsCommand:
    def test_lists_transactions(self, capsys):
        assert _run_main(["transactions"], FakeServer()) == 0
        out = capsys.readouterr().out
        assert "Groceries" in out
        assert "2 transactions" in out

    def test_fetch_failure(self, capsys):
        server = FakeServer()

        def broken(request):
            if request.url.path.endswith("/categories"):
                return httpx.Response(500, json=envelope(status="error", message="DB down"))
            return server(request)

        assert _run_main(["transactions"], broken) == 1
        assert "DB down" in capsys.readouterr().out


class TestDashboardCommand:
    def test_prints_summary_and_categories(self, capsys):
        assert _run_main(["dashboard"], FakeServer()) == 0
        out = capsys.readouterr().out
        assert "Balance:  2460.00" in out
        assert "Groceries" in out
        assert "Monthly:" in out


class TestCategorizeCommand:
    def test_creates_category_and_applies(self, capsys):
        server = FakeServer()
        code = _run_main(["categorize", "1", "Pets", "--no-apply-existing"], server)

        assert code == 0
        assert ("POST", "/financial/categories") in server.requests
        assert server.bodies[("PUT", "/financial/transactions/1")] == {
            "category_id": 50,
            "remember_category": True,
            "apply_to_existing": False,
        }
        assert "(new category)" in capsys.readouterr().out

    def test_unknown_transaction(self, capsys):
        assert _run_main(["categorize", "999", "Pets"], FakeServer()) == 1
        assert "not found" in capsys.readouterr().out


class TestAddCommand:
    def test_invalid_amount_makes_no_request(self, capsys):
        server = FakeServer()
        code = _run_main(
            ["add", "--description", "Lunch", "--amount", "0", "--category-id", "1"], server,
        )
        assert code == 1
        assert server.requests == []
        assert "Invalid transaction" in capsys.readouterr().out

    def test_creates_and_refreshes(self, capsys):
        server = FakeServer()
        code = _run_main(
            ["add", "--description", "Lunch", "--amount", "12.50",
             "--category-id", "1", "--date", "2024-03-30"],
            server,
        )
        assert code == 0
        assert server.bodies[("POST", "/financial/transactions")]["amount"] == "12.50"
        assert server.bodies[("POST", "/financial/transactions")]["category_id"] == 1
        assert ("GET", "/financial/transactions") in server.requests


class TestImportCsvCommand:
    def test_partial_import_report(self, tmp_path, capsys):
        statement = tmp_path / "bank.csv"
        statement.write_text("date,amount\n")

        code = _run_main(["import-csv", str(statement)], FakeServer())

        out = capsys.readouterr().out
        assert code == 1
        assert "Imported 3 of 7 rows." in out
        assert "2 failed." in out

    def test_missing_file(self, tmp_path, capsys):
        code = _run_main(["import-csv", str(tmp_path / "missing.csv")], FakeServer())
        assert code == 1
        assert "File not found" in capsys.readouterr().out


class TestReportCommand:
    def test_fetches_all_kinds(self, capsys):
        server = FakeServer()
        assert _run_main(["report", "--range", "all"], server) == 0
        paths = {path for _, path in server.requests}
        assert {
            "/financial/reports/spending",
            "/financial/reports/products",
            "/financial/reports/monthly",
        } <= paths
        assert "Window: - .. -" in capsys.readouterr().out
