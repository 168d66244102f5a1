"""Structured logging configuration for the Postgres Operator."""

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any

# Never written to logs, whatever handler passes them in
REDACTED_FIELDS = frozenset({"username", "password", "data", "string_data"})


def setup_structured_logging(level: int | str | None = None) -> None:
    """Configure one JSON object per line on stdout.

    The level defaults to LOG_LEVEL from the environment, then INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # kubernetes client request logs duplicate our api_call metrics
    logging.getLogger("kubernetes").setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event.

    Extra keyword arguments become top-level fields; secret-bearing ones are
    redacted first.
    """
    if not logger.isEnabledFor(level):
        return
    log_data = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "controller": controller,
        "thread": threading.current_thread().name,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(log_data, default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of log_data with secret fields masked."""
    return {
        key: "***REDACTED***" if key in REDACTED_FIELDS else value
        for key, value in log_data.items()
    }
