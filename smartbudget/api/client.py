"""Async REST client for the SmartBudget API.

Every request carries the bearer token. Responses use the envelope
{status: 'success'|'error', message?, data}; the client unwraps `data`
and raises an ApiError subclass for anything else.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from smartbudget.api.models import ValidationError

logger = logging.getLogger(__name__)

TRANSACTIONS_PATH = "/financial/transactions"
CATEGORIES_PATH = "/financial/categories"
REPORT_KINDS = ("spending", "products", "monthly")

_CONTENT_TYPES = {
    ".csv": "text/csv",
    ".txt": "text/plain",
    ".text": "text/plain",
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}


class ApiError(Exception):
    """Base class for failures talking to the API."""


class TransportError(ApiError):
    """Network-level failure: connection refused, timeout, TLS error."""


class ServerError(ApiError):
    """The server answered but not with a success envelope."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ApiClient:
    """Thin async wrapper over the REST API.

    Args:
        base_url: API root, e.g. "http://localhost:5000/api".
        token: Bearer token. Requests are sent unauthenticated if None.
        timeout: Default request timeout in seconds.
        import_timeout: Timeout for CSV import and receipt scan.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        import_timeout: float = 180.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.import_timeout = import_timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config) -> ApiClient:
        return cls(
            base_url=config.base_url,
            token=config.api_token,
            timeout=config.timeout,
            import_timeout=config.import_timeout,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        """Lazy-initialize the underlying httpx client."""
        if self._http is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs):
        """Send a request and return the unwrapped `data` member.

        Raises:
            TransportError: The request never got an HTTP response.
            ServerError: Non-2xx status, non-JSON body, or status != 'success'.
        """
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise ServerError(
                f"{method} {path}: unexpected response (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        if response.is_error or body.get("status") != "success":
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning("%s %s rejected: %s", method, path, message)
            raise ServerError(message, status_code=response.status_code)
        return body.get("data")

    # ── Transactions ─────────────────────────────────────

    async def list_transactions(self, page: int = 1, limit: int = 100) -> dict | list:
        """Fetch one page. Returns {transactions, pagination} (or a bare list)."""
        return await self._request(
            "GET", TRANSACTIONS_PATH, params={"limit": limit, "page": page},
        )

    async def get_summary(self, date_from: str | None = None, date_to: str | None = None):
        params = {k: v for k, v in (("date_from", date_from), ("date_to", date_to)) if v}
        return await self._request("GET", f"{TRANSACTIONS_PATH}/summary", params=params)

    async def create_transaction(self, body: dict) -> dict:
        return await self._request("POST", TRANSACTIONS_PATH, json=body)

    async def update_transaction(
        self,
        transaction_id,
        category_id,
        remember_category: bool = True,
        apply_to_existing: bool = True,
    ) -> dict:
        """Reassign a transaction's category.

        `apply_to_existing` asks the server to retroactively recategorize
        other transactions matching the same rule.
        """
        return await self._request(
            "PUT",
            f"{TRANSACTIONS_PATH}/{transaction_id}",
            json={
                "category_id": category_id,
                "remember_category": remember_category,
                "apply_to_existing": apply_to_existing,
            },
        )

    async def delete_transaction(self, transaction_id) -> None:
        await self._request("DELETE", f"{TRANSACTIONS_PATH}/{transaction_id}")

    # ── Categories ───────────────────────────────────────

    async def list_categories(self) -> list[dict]:
        data = await self._request("GET", CATEGORIES_PATH)
        return data or []

    async def create_category(self, name: str, category_type: str) -> dict:
        return await self._request(
            "POST", CATEGORIES_PATH, json={"name": name, "type": category_type},
        )

    # ── Bulk import ──────────────────────────────────────

    async def import_csv(self, file_path: Path) -> dict:
        """Upload a statement file for server-side parsing.

        Uses the extended import timeout.
        """
        file_path = Path(file_path)
        files = {"csvFile": _file_part(file_path)}
        return await self._request(
            "POST", f"{TRANSACTIONS_PATH}/import-csv",
            files=files, timeout=self.import_timeout,
        )

    async def scan_receipt(
        self, text: str | None = None, file_path: Path | None = None,
    ) -> dict:
        """Send receipt text and/or an image for OCR and import.

        Always multipart; a (None, value) part is a plain form field.
        """
        if not (text and text.strip()) and file_path is None:
            raise ValidationError("Receipt text or file is required")
        files = {}
        if text and text.strip():
            files["receipt_text"] = (None, text)
        if file_path is not None:
            files["receiptFile"] = _file_part(Path(file_path))
        return await self._request(
            "POST", "/financial/receipts/scan",
            files=files, timeout=self.import_timeout,
        )

    # ── Reports ──────────────────────────────────────────

    async def get_report(self, kind: str, params: dict | None = None):
        """Fetch a server-computed report (spending, products or monthly)."""
        if kind not in REPORT_KINDS:
            raise ValueError(f"Unknown report kind: {kind}")
        return await self._request(
            "GET", f"/financial/reports/{kind}", params=params or {},
        )


def _file_part(path: Path) -> tuple[str, bytes, str]:
    content_type = _CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")
    return path.name, path.read_bytes(), content_type
