"""Structured logging helpers: correlation IDs, timing, and masking of personal data."""

import hashlib
import logging
import re
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.utils.logging_config import LoggingConfig, get_logger


_correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

# Correlation IDs supplied by clients are echoed back; keep them short and printable
_CORRELATION_ID_RE = re.compile(r'^[A-Za-z0-9._:-]{1,64}$')

_EMAIL_RE = re.compile(r'[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}', re.IGNORECASE)
_PHONE_RE = re.compile(r'\+?\d[\d\s().-]{7,}\d')
_JWT_RE = re.compile(r'eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+')
_SECRET_RE = re.compile(r'(?i)(api[_-]?key|token|secret|password|bearer)([\s:=]+)([A-Za-z0-9._-]{20,})')


def generate_correlation_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """Bind a correlation ID for the duration of one request.

    A missing or malformed incoming ID is replaced with a fresh one.
    """
    if not correlation_id or not _CORRELATION_ID_RE.match(correlation_id):
        correlation_id = generate_correlation_id()

    token = _correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id_var.reset(token)


def mask_sensitive_data(text: str) -> str:
    """Mask sensitive data in text (contact details, tokens)."""
    if not text or not LoggingConfig.LOG_MASK_SENSITIVE:
        return text

    # JWTs first so the phone pattern doesn't eat their digits
    text = _JWT_RE.sub('[REDACTED_JWT]', text)
    text = _SECRET_RE.sub(r'\1=[REDACTED]', text)
    text = _EMAIL_RE.sub('[REDACTED_EMAIL]', text)
    text = _PHONE_RE.sub('[REDACTED_PHONE]', text)
    return text


def mask_user_id(user_id: str) -> str:
    """Shorten a user id to a stable, non-reversible tag."""
    if not LoggingConfig.LOG_MASK_SENSITIVE or not user_id:
        return user_id

    if len(user_id) > 12:
        hashed = hashlib.sha256(user_id.encode()).hexdigest()[:8]
        return f"{user_id[:4]}...{hashed}"
    return user_id


def sanitize_message_text(text: str, max_length: int = 500) -> Optional[str]:
    """Sanitize chat/review text for logging. Returns None when content logging is off."""
    if not LoggingConfig.LOG_MESSAGE_CONTENT:
        return None

    if not text:
        return None

    if len(text) > max_length:
        text = text[:max_length] + "..."

    if LoggingConfig.LOG_MASK_SENSITIVE:
        text = mask_sensitive_data(text)

    return text

# Keyword fields holding member ids; masked before they reach the log record
USER_ID_FIELDS = frozenset({
    "user_id",
    "owner_id",
    "requester_id",
    "accepter_id",
    "reviewer_id",
    "reviewee_id",
    "sender_id",
    "receiver_id",
    "mediator_id",
})


class StructuredLogger:
    """Logger wrapper taking structured fields as keyword arguments.

    Adds the correlation ID of the current request and masks member ids
    passed under any of USER_ID_FIELDS.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        extra = {"timestamp": datetime.now(timezone.utc).isoformat()}
        correlation_id = get_correlation_id()
        if correlation_id:
            extra["correlation_id"] = correlation_id
        for key, value in fields.items():
            if key in USER_ID_FIELDS and isinstance(value, str):
                value = mask_user_id(value)
            extra[key] = value
        return extra

    def log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, message, exc_info=exc_info, extra=self._fields(fields))

    def debug(self, message: str, **fields: Any) -> None:
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self.log(logging.ERROR, message, exc_info=exc_info, **fields)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(operation: str, logger: Optional[StructuredLogger] = None, **fields: Any):
    """Log how long the block took; warn past LOG_SLOW_OPERATION_THRESHOLD_MS."""
    logger = logger or get_structured_logger(__name__)
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        threshold = LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS
        if elapsed_ms > threshold:
            logger.warning(
                f"Slow operation: {operation}",
                operation=operation,
                processing_time_ms=elapsed_ms,
                threshold_ms=threshold,
                **fields
            )
        else:
            logger.debug(f"Completed {operation}", operation=operation, processing_time_ms=elapsed_ms, **fields)
