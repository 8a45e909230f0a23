"""Turn bulk-import responses into a structured, human-readable report.

Two payload shapes:
  CSV import    {total, imported, failed, skipped, errors: [{row, error, ...}]}
  Receipt scan  {imported, total, results: [{description, amount, category,
                 status, error?}]}

Successfully imported rows stay persisted on the server whatever the
outcome here; this module only builds the message.
"""

from __future__ import annotations

from dataclasses import dataclass, field

MAX_LISTED_ERRORS = 10


@dataclass(frozen=True)
class ImportErrorRecord:
    row: int | str | None
    error: str
    description: str | None = None
    date: str | None = None
    amount: str | None = None

    @classmethod
    def from_api(cls, raw: dict, fallback_row: int | None = None) -> ImportErrorRecord:
        amount = raw.get("amount")
        return cls(
            row=raw.get("row", fallback_row),
            error=str(raw.get("error") or "Unknown error"),
            description=raw.get("description") or None,
            date=raw.get("date") or None,
            amount=str(amount) if amount not in (None, "") else None,
        )

    def format(self) -> str:
        line = f"Row {self.row}: {self.error}"
        extras = [
            f"{label}: {value}"
            for label, value in (
                ("description", self.description),
                ("date", self.date),
                ("amount", self.amount),
            )
            if value
        ]
        if extras:
            line += f" ({', '.join(extras)})"
        return line


@dataclass
class ImportReport:
    """Counts plus per-row errors from one bulk import."""
    kind: str  # "csv" or "receipt"
    imported: int = 0
    total: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[ImportErrorRecord] = field(default_factory=list)
    max_errors: int = MAX_LISTED_ERRORS

    @property
    def success(self) -> bool:
        """Clean success: no failures and no error records."""
        return self.failed == 0 and not self.errors

    @property
    def text(self) -> str:
        return format_report(self, self.max_errors)


def _int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def build_csv_report(payload: dict | None, max_errors: int = MAX_LISTED_ERRORS) -> ImportReport:
    """Build a report from the `data.results` (or `data`) of an import-csv call."""
    payload = payload or {}
    results = payload.get("results") or payload
    if not isinstance(results, dict):
        results = {}
    errors = [
        ImportErrorRecord.from_api(raw, fallback_row=i + 1)
        for i, raw in enumerate(results.get("errors") or [])
        if isinstance(raw, dict)
    ]
    imported = _int(results.get("imported"))
    failed = max(_int(results.get("failed")), len(errors))
    return ImportReport(
        kind="csv",
        imported=imported,
        total=_int(results.get("total")) or imported + failed,
        failed=failed,
        skipped=_int(results.get("skipped")),
        errors=errors,
        max_errors=max_errors,
    )


def build_receipt_report(payload: dict | None, max_errors: int = MAX_LISTED_ERRORS) -> ImportReport:
    """Build a report from a receipt-scan response.

    Failed items have no row number; their 1-based position is used.
    """
    payload = payload or {}
    results = payload.get("results") or []
    errors = []
    for i, item in enumerate(results):
        if not isinstance(item, dict) or item.get("status") != "failed":
            continue
        errors.append(ImportErrorRecord.from_api(
            {
                "row": i + 1,
                "error": item.get("error") or "Failed to import item",
                "description": item.get("description"),
                "amount": item.get("amount"),
            },
        ))
    total = _int(payload.get("total")) or len(results)
    imported = _int(payload.get("imported"))
    return ImportReport(
        kind="receipt",
        imported=imported,
        total=total,
        failed=max(len(errors), total - imported, 0),
        errors=errors,
        max_errors=max_errors,
    )


def format_report(report: ImportReport, max_errors: int = MAX_LISTED_ERRORS) -> str:
    """Render the multi-line report text handed to the view layer."""
    noun = "rows" if report.kind == "csv" else "items"
    lines = [f"Imported {report.imported} of {report.total} {noun}."]
    if report.skipped:
        lines.append(f"Skipped {report.skipped} empty {noun}.")
    if report.success:
        return "\n".join(lines)

    lines.append(f"{report.failed} failed.")
    if report.errors:
        lines.append("Errors:")
        for record in report.errors[:max_errors]:
            lines.append(f"  {record.format()}")
        hidden = len(report.errors) - max_errors
        if hidden > 0:
            lines.append(f"...and {hidden} more error(s) not shown.")
    return "\n".join(lines)
