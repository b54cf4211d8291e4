"""
Structured logging utilities for VibeFlow with correlation IDs.

Provides:
- get_logger: JSON structured logger writing one object per line to stdout
- correlation ID management for per-request tracing via contextvars

Structured fields are passed as a single dict argument, e.g.
``logger.warning("spotify.search_failed", {"status_code": 502})``.
Fields named like OAuth secrets are redacted before they reach the output.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from vibeflow.core.config import get_settings

_cid_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

REDACTED = "***"
SENSITIVE_FIELDS = frozenset({"access_token", "refresh_token", "code", "client_secret", "authorization", "state"})


def _redact(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: (REDACTED if k.lower() in SENSITIVE_FIELDS else v) for k, v in fields.items()}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        settings = get_settings()
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "event": record.msg if isinstance(record.msg, str) else str(record.msg),
            "logger": record.name,
            "service": settings.OBS_SERVICE_NAME,
            "environment": settings.OBS_ENVIRONMENT,
        }

        cid = get_correlation_id()
        if cid:
            entry["correlation_id"] = cid

        if isinstance(record.args, Mapping):
            for key, value in _redact(record.args).items():
                entry.setdefault(key, value)

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _configure_root_logger() -> None:
    """Install the JSON handler on the root logger once per process."""
    root = logging.getLogger()
    if getattr(root, "_vibeflow_configured", False):
        return
    level = logging.getLevelName(get_settings().LOG_LEVEL.upper())
    root.setLevel(level if isinstance(level, int) else logging.INFO)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.handlers = [handler]
    setattr(root, "_vibeflow_configured", True)


# PUBLIC_INTERFACE
def get_logger(name: str = "vibeflow") -> logging.Logger:
    """Get a logger under the vibeflow namespace with JSON output configured."""
    _configure_root_logger()
    return logging.getLogger(name if name.startswith("vibeflow") else f"vibeflow.{name}")


# PUBLIC_INTERFACE
def set_correlation_id(correlation_id: Optional[str]) -> str:
    """Bind a correlation ID to the current request context, generating a uuid4 if none was sent."""
    cid = correlation_id or str(uuid.uuid4())
    _cid_ctx.set(cid)
    return cid


# PUBLIC_INTERFACE
def get_correlation_id() -> Optional[str]:
    return _cid_ctx.get()


# PUBLIC_INTERFACE
def clear_correlation_id() -> None:
    _cid_ctx.set(None)
