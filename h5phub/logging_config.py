"""
JSON-lines logging for sync runs.

Every record carries the id of the sync pass it was emitted under, so the
lines of one pass can be pulled out of ``sync.log`` with a single filter.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

DEFAULT_LOG_FILE = "sync.log"
_PASS_ID: ContextVar[Optional[str]] = ContextVar("h5phub_pass_id", default=None)
_HANDLER_MARK = "_h5phub_handler"

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_STANDARD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime", "pass_id"}


class StructuredJsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        pass_id = getattr(record, "pass_id", None)
        if pass_id:
            payload["pass_id"] = pass_id
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in vars(record).items() if k not in _STANDARD_FIELDS}
        if extra:
            payload["extra"] = extra
        # Values json cannot encode (paths, models) fall back to repr.
        return json.dumps(payload, ensure_ascii=True, default=repr)


class PassContextFilter(logging.Filter):
    """Stamp records with the active pass id unless the caller passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "pass_id", None) is None:
            record.pass_id = _PASS_ID.get()
        return True


def get_pass_id() -> Optional[str]:
    return _PASS_ID.get()


@contextmanager
def pass_context(pass_id: str) -> Iterator[str]:
    """Tag every record logged inside the block with ``pass_id``."""
    token = _PASS_ID.set(pass_id)
    try:
        yield pass_id
    finally:
        _PASS_ID.reset(token)


def init_logging(
    log_dir: str | os.PathLike[str],
    *,
    level: str = "INFO",
    filename: str = DEFAULT_LOG_FILE,
) -> Path:
    """Attach JSON file and console handlers to the root logger.

    Calling it again replaces the handlers installed by a previous call and
    leaves foreign handlers alone.
    """
    base = Path(log_dir).expanduser()
    base.mkdir(parents=True, exist_ok=True)
    log_path = base / filename

    root_logger = logging.getLogger()
    resolved = logging.getLevelName(str(level).upper())
    root_logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = StructuredJsonFormatter()
    context = PassContextFilter()
    handlers = (
        RotatingFileHandler(
            str(log_path), maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        ),
        logging.StreamHandler(),
    )
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)
        setattr(handler, _HANDLER_MARK, True)
        root_logger.addHandler(handler)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_path


__all__ = [
    "PassContextFilter",
    "StructuredJsonFormatter",
    "get_pass_id",
    "init_logging",
    "pass_context",
]
