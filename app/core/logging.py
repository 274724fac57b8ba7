"""Logging setup: JSON output, request correlation and redaction.

- ``request_id`` travels in a context variable set by the HTTP middleware
- Secrets (passwords, tokens, verification codes) and phone numbers are
  replaced by ``[REDACTED]``; a phone's last four digits are the
  verification code, so no part of it is logged
- Emails are masked and client IPs are hashed so log lines can still be
  correlated per client
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from app.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "password",
        "password_hash",
        "token",
        "access_token",
        "token_hash",
        "verification_code",
        "phone",
        "phone1",
        "phone2",
        "recipient_phone1",
        "recipient_phone2",
        "api_key",
        "service_key",
        "servicekey",
        "secret",
    }
)
EMAIL_KEYS: frozenset[str] = frozenset({"email", "recipient_email"})
IP_KEYS: frozenset[str] = frozenset({"ip", "ip_address", "client_ip"})

# Standard LogRecord attributes; everything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def mask_email(email: str) -> str:
    """Keep the first character of the local part and the domain.

    >>> mask_email("owner@example.com")
    'o***@example.com'
    """
    local, sep, domain = email.partition("@")
    if not sep:
        return REDACTED
    return f"{local[:1]}***@{domain}"


def hash_ip(ip: str) -> str:
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()[:16]


def _scrub(key: str, value: Any, sensitive_keys: frozenset[str]) -> Any:
    lowered = key.lower()
    if lowered in sensitive_keys:
        return REDACTED
    if isinstance(value, str):
        if lowered in EMAIL_KEYS:
            return mask_email(value)
        if lowered in IP_KEYS:
            return hash_ip(value)
        return value
    if isinstance(value, Mapping):
        return {k: _scrub(str(k), v, sensitive_keys) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(key, v, sensitive_keys) for v in value)
    return value


def _extra_fields(record: LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def extract_extras(record: LogRecord, sensitive_keys: frozenset[str]) -> dict[str, Any]:
    """Return the record's ``extra`` fields with redaction applied."""
    return {key: _scrub(key, value, sensitive_keys) for key, value in _extra_fields(record).items()}


class RequestIdFilter(logging.Filter):
    """Stamp records with the request id from context when they lack one."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact ``extra`` fields in place so every formatter sees safe values."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "_scrubbed", False):
            return True
        for key, value in extract_extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        # IP hashing is not idempotent
        record._scrubbed = True
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, extras."""

    def __init__(self, *, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        if getattr(record, "_scrubbed", False):
            payload.update(_extra_fields(record))
        else:
            payload.update(extract_extras(record, self.sensitive_keys))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        # Korean names and addresses stay readable
        return json.dumps(payload, default=str, ensure_ascii=False)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/app.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Args:
        log_settings: Optional log settings; defaults to ``settings.log``.
    """
    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # uvicorn installs its own handlers
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
    if settings.db.echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
