"""YAML configuration loader for the SmartBudget client.

Loads client.yaml from the config/ directory. The API token is never
read from YAML; it comes from SMARTBUDGET_API_TOKEN.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml

DEFAULT_TIMEOUT = 30.0
DEFAULT_IMPORT_TIMEOUT = 180.0
DEFAULT_PAGE_SIZE = 100


class Config:
    """Loads and provides access to the client configuration."""

    def __init__(self, config_dir: Path | str = "config"):
        self.config_dir = Path(config_dir)
        if not self.config_dir.is_dir():
            raise FileNotFoundError(f"Config directory not found: {self.config_dir}")

        self._client: dict | None = None

    def _load(self, filename: str) -> dict:
        path = self.config_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            raise ValueError(f"Empty config file: {path}")
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping at top level of {path}")
        return data

    @property
    def client(self) -> dict:
        if self._client is None:
            self._client = self._load("client.yaml")
        return self._client

    def _section(self, name: str) -> dict:
        section = self.client.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Section '{name}' in client.yaml must be a mapping")
        return section

    # ── API ──────────────────────────────────────────────

    @property
    def base_url(self) -> str:
        """API base URL. SMARTBUDGET_API_URL overrides the YAML value."""
        url = os.environ.get("SMARTBUDGET_API_URL") or self._section("api").get("base_url")
        if not url:
            raise ValueError("api.base_url is not configured")
        return url.rstrip("/")

    @property
    def api_token(self) -> str | None:
        return os.environ.get("SMARTBUDGET_API_TOKEN") or None

    @property
    def timeout(self) -> float:
        return float(self._section("api").get("timeout", DEFAULT_TIMEOUT))

    @property
    def import_timeout(self) -> float:
        """Timeout for CSV import and receipt scan (server-side OCR/parsing)."""
        return float(self._section("api").get("import_timeout", DEFAULT_IMPORT_TIMEOUT))

    # ── Transactions / reports ───────────────────────────

    @property
    def page_size(self) -> int:
        return int(self._section("transactions").get("page_size", DEFAULT_PAGE_SIZE))

    @property
    def daily_days(self) -> int:
        return int(self._section("reports").get("daily_days", 30))

    @property
    def monthly_buckets(self) -> int:
        return int(self._section("reports").get("monthly_buckets", 6))

    @property
    def top_categories(self) -> int:
        return int(self._section("reports").get("top_categories", 5))

    @property
    def other_label(self) -> str:
        """Label for expenses whose category name cannot be resolved."""
        return self._section("reports").get("other_label", "Other")

    @property
    def include_uncategorized(self) -> bool:
        return bool(self._section("reports").get("include_uncategorized", False))

    @property
    def max_import_errors(self) -> int:
        return int(self._section("reports").get("max_import_errors", 10))

    # ── Watcher ──────────────────────────────────────────

    @property
    def watch_dir(self) -> Path:
        env = os.environ.get("SMARTBUDGET_WATCH_DIR")
        if env:
            return Path(env)
        return Path(self._section("watcher").get("watch_dir", "import"))

    @property
    def stability_seconds(self) -> int:
        return int(self._section("watcher").get("stability_seconds", 10))

    @property
    def poll_interval(self) -> int:
        return int(self._section("watcher").get("poll_interval", 30))
