"""Structured JSON logging with request correlation.

Log payloads pass through ``sanitize_for_logging`` before they are written:
credentials and personal fields are replaced, and draft grant text is reduced to
its length so section content never lands in log files.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from datetime import datetime, timezone
import json
import logging
import re
from typing import Any, Mapping
from uuid import uuid4


REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="-")
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
HANDLER_MARKER = "_grantmaster_handler"

CREDENTIAL_KEY_FRAGMENTS = ("authorization", "token", "secret", "password", "api_key", "apikey")
PERSONAL_KEYS = frozenset({"email", "author", "principal_investigator", "principalinvestigator"})
DRAFT_TEXT_KEYS = frozenset({"content", "markup", "body", "html", "markdown"})

_STRING_REDACTIONS = (
    (re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*"), "Bearer [REDACTED]"),
    (re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[REDACTED_JWT]"),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{16,}\b"), "[REDACTED_API_KEY]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[REDACTED_EMAIL]"),
)

_RESERVED_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "request_id",
}


def normalize_request_id(candidate: str | None) -> str:
    if candidate:
        trimmed = candidate.strip()
        if REQUEST_ID_PATTERN.fullmatch(trimmed):
            return trimmed
    return str(uuid4())


def set_request_id(request_id: str) -> Token[str]:
    return REQUEST_ID_CONTEXT.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    REQUEST_ID_CONTEXT.reset(token)


def get_request_id() -> str:
    return REQUEST_ID_CONTEXT.get()


def _key_treatment(key: str) -> str | None:
    normalized = key.strip().lower().replace("-", "_")
    if normalized in DRAFT_TEXT_KEYS:
        return "size"
    if normalized in PERSONAL_KEYS or any(fragment in normalized for fragment in CREDENTIAL_KEY_FRAGMENTS):
        return "redact"
    return None


def _scrub_text(value: str, *, max_length: int) -> str:
    for pattern, replacement in _STRING_REDACTIONS:
        value = pattern.sub(replacement, value)
    if len(value) > max_length:
        return f"{value[:max_length]}...[truncated]"
    return value


def sanitize_for_logging(value: Any, *, max_string_length: int = 240) -> Any:
    """Return a copy of ``value`` that is safe to emit in a log record."""
    if isinstance(value, str):
        return _scrub_text(value, max_length=max_string_length)
    if isinstance(value, bytes):
        return f"[{len(value)} bytes]"
    if isinstance(value, (list, tuple)):
        items = [sanitize_for_logging(item, max_string_length=max_string_length) for item in value]
        return items if isinstance(value, list) else tuple(items)
    if not isinstance(value, Mapping):
        return value

    sanitized: dict[str, Any] = {}
    for key, item in value.items():
        key_text = str(key)
        treatment = _key_treatment(key_text)
        if treatment == "redact":
            sanitized[key_text] = "[REDACTED]"
        elif treatment == "size" and isinstance(item, (str, bytes)):
            sanitized[key_text] = f"[{len(item)} chars]"
        else:
            sanitized[key_text] = sanitize_for_logging(item, max_string_length=max_string_length)
    return sanitized


def describe_error(exc: BaseException) -> str:
    """Loggable one-line description of ``exc``; upstream messages can echo request data."""
    return str(sanitize_for_logging(str(exc) or type(exc).__name__))


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", get_request_id()),
        }
        extras = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_RECORD_ATTRS}
        payload.update(sanitize_for_logging(extras))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level_name: str) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    if any(getattr(handler, HANDLER_MARKER, False) for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    setattr(handler, HANDLER_MARKER, True)
    root.addHandler(handler)
