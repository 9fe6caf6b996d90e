"""
Structured logging on top of loguru.

Call sites log with keyword context:

    logger = get_logger(__name__)
    logger.info("Vehicle approved", vehicle_id=vid, user_id=uid)

Keyword arguments land in the record's extra dict. Sensitive keys are
redacted before any sink sees them.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, Optional

from loguru import logger as _logger

SENSITIVE_FIELDS = (
    "password",
    "token",
    "secret",
    "authorization",
    "cookie",
    "session",
    "api_key",
    "apikey",
)
REDACTED = "[REDACTED]"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | {message} | {extra}"
)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower().replace("-", "_")
    return any(field in lowered for field in SENSITIVE_FIELDS)


def sanitize(value: Any) -> Any:
    """Return a copy of value with sensitive keys redacted at any depth."""
    if isinstance(value, dict):
        return {
            k: (REDACTED if isinstance(k, str) and _is_sensitive(k) else sanitize(v))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize(v) for v in value]
    return value


def _redact_record(record: Dict[str, Any]) -> None:
    extra = record["extra"]
    for key in list(extra.keys()):
        if key == "component":
            continue
        if _is_sensitive(key):
            extra[key] = REDACTED
        else:
            extra[key] = sanitize(extra[key])


_base = _logger.patch(_redact_record)


def get_logger(name: str):
    """Return a logger bound to the given component name."""
    return _base.bind(component=name)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure sinks: colored stderr, plus a JSON-lines file rotated at
    10 MB with 5 files kept when log_file is set.
    """
    _logger.remove()
    _logger.configure(extra={"component": "autovision"})
    _logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)
    if log_file:
        _logger.add(
            log_file,
            level=level.upper(),
            rotation="10 MB",
            retention=5,
            serialize=True,
            enqueue=True,
        )
