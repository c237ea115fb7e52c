"""Structured Logging - JSON formatter, setup, and the financial audit trail.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (action, severity, module_id, amount, details) surfaced when present
    - Audit events go to the "treasury.audit" logger, one JSON line per event

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Audit trail is a logger, not a file writer: the engine stays testable with caplog
    - setup_audit_log attaches its file handler once per path
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

AUDIT_LOGGER_NAME = "treasury.audit"

_EXTRA_KEYS: tuple[str, ...] = (
    "action", "severity", "module_id", "amount", "error_code", "details",
)

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure root logging for the scheduler process."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


def setup_audit_log(path: Path) -> logging.Handler:
    """Append audit events to `path` as JSON lines."""
    path.parent.mkdir(parents=True, exist_ok=True)
    for existing in audit_logger.handlers:
        if (
            isinstance(existing, logging.FileHandler)
            and Path(existing.baseFilename).resolve() == path.resolve()
        ):
            return existing
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(JSONFormatter())
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    return handler


def audit(action: str, severity: str = "financial", **details: object) -> None:
    """Record one audit event (e.g. REVENUE_SPLIT) with its details."""
    audit_logger.info(
        action,
        extra={
            "action": action,
            "severity": severity,
            "details": {key: _plain(value) for key, value in details.items()},
        },
    )


def _plain(value: object) -> object:
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
