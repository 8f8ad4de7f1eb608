"""Logging setup for the serverless handlers.

Handlers call ``LoggingConfig.setup_logging()`` at the start of every
request; the first call on a worker installs one stdout handler and later
calls return it unchanged.
"""

import os
import logging
import sys
from typing import Mapping, Optional
from pythonjsonlogger import jsonlogger

# Client libraries that log every HTTP round trip at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "gotrue", "supabase", "storage3", "realtime")

# Request id Vercel's edge attaches to every invocation
VERCEL_REQUEST_ID_HEADER = "x-vercel-id"


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


def parse_level_overrides(raw: str) -> dict[str, int]:
    """Parse ``"postgrest=DEBUG,src.services.deals=INFO"`` into logger levels.

    Entries without ``=`` or with an unknown level name are skipped.
    """
    overrides = {}
    for item in (raw or "").split(","):
        name, sep, level = item.partition("=")
        name, level = name.strip(), level.strip().upper()
        if not sep or not name:
            continue
        value = logging.getLevelName(level)
        if isinstance(value, int):
            overrides[name] = value
    return overrides


class CorrelationIdFilter(logging.Filter):
    """Stamp the current request's correlation id on records that lack one.

    Covers stdlib and third-party loggers, which do not go through
    StructuredLogger.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "correlation_id", None) is None:
            from src.utils.logging import get_correlation_id
            record.correlation_id = get_correlation_id()
        return True


class LoggingConfig:
    """Environment-driven logging settings."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_MESSAGE_CONTENT = _env_flag("LOG_MESSAGE_CONTENT", "false")
    LOG_MASK_SENSITIVE = _env_flag("LOG_MASK_SENSITIVE", "true")
    LOG_CORRELATION_ID_HEADER = os.environ.get("LOG_CORRELATION_ID_HEADER", "X-Correlation-ID")
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))
    LOG_LEVEL_OVERRIDES = parse_level_overrides(os.environ.get("LOG_LEVEL_OVERRIDES", ""))

    _handler: Optional[logging.Handler] = None

    @classmethod
    def level(cls) -> int:
        return getattr(logging, cls.LOG_LEVEL, logging.INFO)

    @classmethod
    def build_formatter(cls) -> logging.Formatter:
        if cls.LOG_FORMAT == "json":
            return jsonlogger.JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(correlation_id)s %(message)s",
                rename_fields={"levelname": "level", "name": "logger"},
                timestamp=True,
            )
        return logging.Formatter("%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s")

    @classmethod
    def setup_logging(cls, force: bool = False) -> logging.Handler:
        """Install the stdout handler once per worker and return it.

        Only our own handler is replaced on ``force``; handlers added by the
        runtime or by pytest stay attached.
        """
        if cls._handler is not None and not force:
            return cls._handler

        root_logger = logging.getLogger()
        root_logger.setLevel(cls.level())
        if cls._handler is not None:
            root_logger.removeHandler(cls._handler)

        # stdout for Vercel log drains
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(cls.level())
        handler.setFormatter(cls.build_formatter())
        handler.addFilter(CorrelationIdFilter())
        root_logger.addHandler(handler)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        for name, level in cls.LOG_LEVEL_OVERRIDES.items():
            logging.getLogger(name).setLevel(level)

        cls._handler = handler
        return handler

    @classmethod
    def incoming_correlation_id(cls, headers: Optional[Mapping[str, str]]) -> Optional[str]:
        """Correlation id sent by the caller, else Vercel's request id."""
        if not headers:
            return None
        return headers.get(cls.LOG_CORRELATION_ID_HEADER) or headers.get(VERCEL_REQUEST_ID_HEADER)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
