"""
Structured logging system for better log analysis and debugging.
Provides JSON-formatted logs with context and metadata.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("itemvault", log_dir=Path("logs"))
        logger.info("item_added", name="Photo1", size_bytes=2097152)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable console output
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"itemvault_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            if key not in ("level", "timestamp"):
                parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class CatalogLogger:
    """Specialized logger for item catalog events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def catalog_loaded(self, item_count: int, duration_s: float):
        self.logger.info(
            "catalog_loaded", item_count=item_count, duration_s=round(duration_s, 3)
        )

    def catalog_load_failed(self, error: str):
        self.logger.error("catalog_load_failed", error=error)

    def item_added(
        self, record_name: str, name: str, size_bytes: int, content_type: str
    ):
        self.logger.info(
            "item_added",
            record_name=record_name,
            name=name,
            size_bytes=size_bytes,
            size_mb=round(size_bytes / (1024 * 1024), 2),
            content_type=content_type,
        )

    def item_add_failed(self, name: str, stage: str, error: str):
        """Log a failed add; ``stage`` is fetch, stage, or create."""
        self.logger.error("item_add_failed", name=name, stage=stage, error=error)

    def item_downloaded(self, record_name: str, name: str, path: str, size_bytes: int):
        self.logger.info(
            "item_downloaded",
            record_name=record_name,
            name=name,
            path=path,
            size_bytes=size_bytes,
        )

    def item_download_failed(self, record_name: str, error: str):
        self.logger.error(
            "item_download_failed", record_name=record_name, error=error
        )

    def item_deleted(self, record_name: str, name: str | None):
        self.logger.info("item_deleted", record_name=record_name, name=name)

    def item_delete_failed(self, record_name: str, error: str):
        self.logger.error("item_delete_failed", record_name=record_name, error=error)


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, CatalogLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, catalog_logger)
    """
    base = StructuredLogger(
        "itemvault.events", log_dir=log_dir, enable_json=enable_json
    )
    return base, CatalogLogger(base)
