"""
Logging Configuration

stdlib logging with a JSON formatter for production and a plain one for
development. Team/actor context travels as `extra=` fields.

Security events (denied decisions, failed logins, blocked owner changes)
go through log_security_event() so they can be routed and alerted on
separately via the "teamkit.security" logger.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SECURITY_LOGGER = "teamkit.security"

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the context fields we log as extras."""

    EXTRA_FIELDS = (
        "team_id",
        "actor_id",
        "request_id",
        "event_type",
        "reason",
        "resource",
        "action",
        "security_event",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update({
            field: getattr(record, field)
            for field in self.EXTRA_FIELDS
            if getattr(record, field, None) is not None
        })

        # Enums and datetimes fall back to str()
        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger. Call once at startup.

    Replaces any handlers already on the root logger so reloading the app
    does not duplicate output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_security_event(event_type: str, details: Dict[str, Any], logger: Optional[logging.Logger] = None) -> None:
    """
    Log a security-relevant event at WARNING.

    Event types in use:
    - failed_login
    - access_denied (decision was NotAMember or InsufficientRole)
    - team_not_found
    - membership_guard (non-owner tried to change an owner)
    - invitation_email_mismatch

    The event is written to the caller's logger when given, otherwise to
    the security logger; both carry security_event=True.
    """
    target = logger or logging.getLogger(SECURITY_LOGGER)
    target.warning(
        f"SECURITY EVENT: {event_type}",
        extra={"security_event": True, "event_type": event_type, **details}
    )
