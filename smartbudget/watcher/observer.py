"""Drop-folder watcher: upload statements and receipts as they appear.

Watches a folder with PollingObserver. Each new file waits for stability
(size+mtime unchanged), passes a completeness check, then goes to:
  .csv .txt .pdf                      → POST /financial/transactions/import-csv
  .jpg .jpeg .png .gif .bmp .webp     → POST /financial/receipts/scan

Files are processed one at a time; the import report is logged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler

from smartbudget.api.client import ApiError
from smartbudget.imports.report import (
    MAX_LISTED_ERRORS,
    ImportReport,
    build_csv_report,
    build_receipt_report,
)

logger = logging.getLogger(__name__)

STATEMENT_EXTENSIONS = {".csv", ".txt", ".pdf"}
RECEIPT_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"}
SUPPORTED_EXTENSIONS = STATEMENT_EXTENSIONS | RECEIPT_EXTENSIONS

DEFAULT_STABILITY_SECONDS = 10
DEFAULT_CHECK_INTERVAL = 2.0
DEFAULT_POLL_INTERVAL = 30


class FileStabilityError(Exception):
    """Raised when a file fails post-stability validation."""


def wait_for_stable(
    filepath: Path,
    stability_seconds: int = DEFAULT_STABILITY_SECONDS,
    check_interval: float = DEFAULT_CHECK_INTERVAL,
    max_wait: float = 300.0,
) -> None:
    """Wait until file size and mtime are unchanged for stability_seconds.

    Raises:
        TimeoutError: If the file doesn't stabilize within max_wait.
    """
    prev = None
    stable_since: float | None = None
    start = time.monotonic()

    while True:
        if time.monotonic() - start > max_wait:
            raise TimeoutError(f"File did not stabilize within {max_wait}s: {filepath}")

        stat = filepath.stat()
        current = (stat.st_size, stat.st_mtime)
        if current == prev:
            if stable_since is None:
                stable_since = time.monotonic()
            if time.monotonic() - stable_since >= stability_seconds:
                return
        else:
            stable_since = None

        prev = current
        time.sleep(check_interval)


def validate_file_completeness(filepath: Path) -> None:
    """Reject empty files, CSVs without a trailing newline, truncated PDFs.

    Raises:
        FileStabilityError: If the file looks incomplete.
    """
    data = filepath.read_bytes()
    if not data:
        raise FileStabilityError(f"Empty file: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix == ".csv" and data[-1:] not in (b"\n", b"\r"):
        raise FileStabilityError(f"CSV file does not end with newline: {filepath}")
    if suffix == ".pdf" and b"%%EOF" not in data[-1024:]:
        raise FileStabilityError(f"PDF file missing %%EOF marker: {filepath}")


class UploadPipeline:
    """Send one dropped file to the right import endpoint.

    Args:
        client_factory: Returns a fresh ApiClient. Each file runs in its own
            event loop, so clients are not shared across files.
        max_errors: Error records listed in each report.
    """

    def __init__(self, client_factory, max_errors: int = MAX_LISTED_ERRORS):
        self.client_factory = client_factory
        self.max_errors = max_errors

    async def _upload(self, filepath: Path) -> ImportReport:
        async with self.client_factory() as client:
            if filepath.suffix.lower() in RECEIPT_EXTENSIONS:
                data = await client.scan_receipt(file_path=filepath)
                return build_receipt_report(data, max_errors=self.max_errors)
            data = await client.import_csv(filepath)
            return build_csv_report(data, max_errors=self.max_errors)

    def process_file(self, filepath: Path) -> ImportReport | None:
        """Upload a file. Returns None if the API rejected it outright."""
        if filepath.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file extension: {filepath.suffix}")
        try:
            return asyncio.run(self._upload(filepath))
        except ApiError as e:
            logger.error("Upload failed for %s: %s", filepath.name, e)
            return None


class FileWatcher(FileSystemEventHandler):
    """Watch a drop folder with PollingObserver and upload new files.

    Args:
        watch_dir: Directory to watch.
        pipeline: UploadPipeline that sends each file.
        stability_seconds: Seconds of stability before uploading.
        check_interval: Seconds between stability checks.
        poll_interval: PollingObserver interval.
    """

    def __init__(
        self,
        watch_dir: Path,
        pipeline: UploadPipeline,
        stability_seconds: int = DEFAULT_STABILITY_SECONDS,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        poll_interval: int = DEFAULT_POLL_INTERVAL,
    ):
        self.watch_dir = Path(watch_dir)
        self.pipeline = pipeline
        self.stability_seconds = stability_seconds
        self.check_interval = check_interval
        self.poll_interval = poll_interval
        self._observer = None

    def start(self) -> None:
        from watchdog.observers.polling import PollingObserver

        self.watch_dir.mkdir(parents=True, exist_ok=True)
        self._observer = PollingObserver(timeout=self.poll_interval)
        self._observer.schedule(self, str(self.watch_dir), recursive=False)
        self._observer.start()
        logger.info("Watching %s for statements and receipts", self.watch_dir)

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
            logger.info("File watcher stopped")

    def on_created(self, event) -> None:
        if event.is_directory:
            return
        filepath = Path(event.src_path)
        if filepath.suffix.lower() not in SUPPORTED_EXTENSIONS:
            return
        logger.info("New file detected: %s", filepath.name)
        self._process_file(filepath)

    def _process_file(self, filepath: Path) -> ImportReport | None:
        try:
            wait_for_stable(
                filepath,
                stability_seconds=self.stability_seconds,
                check_interval=self.check_interval,
            )
            validate_file_completeness(filepath)
        except (FileStabilityError, OSError) as e:
            logger.error("Skipping %s: %s", filepath.name, e)
            return None

        report = self.pipeline.process_file(filepath)
        if report is None:
            return None
        if report.success:
            logger.info("%s: %s", filepath.name, report.text)
        else:
            logger.warning("%s:\n%s", filepath.name, report.text)
        return report
