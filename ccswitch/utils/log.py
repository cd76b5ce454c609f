"""Logging for ccswitch.

Console output goes to stderr at ``CCSWITCH_LOG_LEVEL`` (default WARNING).
``enable_file_logging`` adds a debug-level file whose lines end with the
record's ``extra`` context as JSON.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """UTC ISO timestamps plus ``| {extra json}`` when a record has context."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return line
        return f"{line} | {json.dumps(context, sort_keys=True, default=str)}"


class CcSwitchLogger:
    """Thin wrapper around the ``ccswitch`` stdlib logger."""

    def __init__(self, name: str = "ccswitch") -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self._file_handler: Optional[logging.FileHandler] = None

        if not self.logger.handlers:
            level_name = os.getenv("CCSWITCH_LOG_LEVEL", "WARNING").upper()
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(getattr(logging, level_name, logging.WARNING))
            console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
            self.logger.addHandler(console)

    def attach_file_handler(self, log_file: Path) -> Path:
        """Log everything from DEBUG up to ``log_file``, replacing an earlier file."""
        if self._file_handler is not None:
            if self._file_handler.baseFilename == os.path.abspath(log_file):
                return log_file
            self.logger.removeHandler(self._file_handler)
            self._file_handler.close()

        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(message)s"))
        self.logger.addHandler(handler)
        self._file_handler = handler
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)


_logger: Optional[CcSwitchLogger] = None


def get_logger() -> CcSwitchLogger:
    """Return the process-wide logger."""
    global _logger
    if _logger is None:
        _logger = CcSwitchLogger()
    return _logger


def enable_file_logging(config_dir: Path) -> Path:
    """Write debug logs to ``<config_dir>/logs/ccswitch_YYYYMMDD.log``."""
    log_file = config_dir / "logs" / f"ccswitch_{datetime.now():%Y%m%d}.log"
    get_logger().attach_file_handler(log_file)
    get_logger().debug("[logging] File logging enabled", extra={"log_file": str(log_file)})
    return log_file
