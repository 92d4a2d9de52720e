"""Logging utilities for batch steps.

Provides a JSON formatter for log aggregation, a context-carrying logger
adapter used by the chunk sources and step drivers, and a one-call root
logger setup.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, MutableMapping, Optional

from batchstep.contribution import StepContribution

__all__ = [
    "JSONFormatter",
    "StepLogger",
    "get_step_logger",
    "setup_logging",
]

_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Anything passed through ``extra=`` (step context, counters) is
    collected under ``"extra"``; ``exclude_fields`` drops keys from it.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "batchstep.source", "message": "Step orders progress: ...",
         "location": "/app/batchstep/source.py:212",
         "extra": {"read_count": 500, "chunk": 5}}
    """

    def __init__(self, exclude_fields: Optional[Iterable[str]] = None):
        super().__init__()
        self.hidden = _RESERVED | frozenset(exclude_fields or ())

    def formatTime(
        self, record: logging.LogRecord, datefmt: Optional[str] = None
    ) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.pathname}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in vars(record).items() if k not in self.hidden}
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, default=str)


class StepLogger(logging.LoggerAdapter):
    """Logger adapter that stamps every record with step context.

    Context set here is merged into each record's ``extra``; values passed
    per call win on a clash.

    Example:
        log = get_step_logger("orders.driver", step="orders.load")
        log.set_context(run_id="2025-01-15")
        log.info("Starting step")
        log.progress(contribution)
    """

    def __init__(self, name: str, **context: Any):
        super().__init__(logging.getLogger(name), dict(context))

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self.extra)

    def set_context(self, **kwargs: Any) -> None:
        self.extra.update(kwargs)

    def clear_context(self) -> None:
        self.extra.clear()

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def metric(
        self, name: str, value: Any, unit: Optional[str] = None, **tags: Any
    ) -> None:
        """Log a metric value, e.g. ``metric("items_written", 500, unit="items")``."""
        fields: Dict[str, Any] = {"metric_name": name, "metric_value": value, **tags}
        if unit:
            fields["metric_unit"] = unit
        self.info("METRIC %s=%s", name, value, extra=fields)

    def progress(self, contribution: StepContribution, **fields: Any) -> None:
        """Log the counters of ``contribution`` (plus ``fields``) as one record."""
        self.info(
            "Step %s progress: read=%d written=%d",
            contribution.step_name,
            contribution.read_count,
            contribution.write_count,
            extra={**contribution.to_dict(), **fields},
        )


def get_step_logger(name: str, **context: Any) -> StepLogger:
    return StepLogger(name, **context)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Point the root logger at stdout (and optionally a file).

    Args:
        verbose: Enable debug-level logging
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = (
        JSONFormatter()
        if json_format
        else logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
