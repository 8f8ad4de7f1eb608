"""Shared plumbing for the Vercel serverless JSON handlers."""

import asyncio
import json
from enum import Enum
from http.server import BaseHTTPRequestHandler
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

from pydantic import ValidationError

from src.utils.errors import MarketplaceError, ValidationFailedError
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


def run_async(coro):
    """Run a coroutine to completion from a sync handler."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    if loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def error_body(error: Exception) -> tuple[int, dict]:
    """Map an exception to (status code, JSON body)."""
    if isinstance(error, ValidationError):
        fields = {
            ".".join(str(part) for part in err["loc"]) or "body": err["msg"]
            for err in error.errors()
        }
        return 400, {"error": "invalid input", "fields": fields}
    if isinstance(error, ValidationFailedError):
        body = {"error": str(error) or "invalid input"}
        if error.errors:
            body["fields"] = error.errors
        return error.status_code, body
    if isinstance(error, MarketplaceError):
        return error.status_code, {"error": str(error)}
    return 500, {"error": "internal server error"}


class JSONRequestHandler(BaseHTTPRequestHandler):
    """Base class for API handlers: JSON bodies, bearer auth, error mapping."""

    service_name = "tradepost-api"

    def _send_json(self, status: int, payload: Any, headers: Optional[dict] = None) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(json.dumps(payload, default=str).encode('utf-8'))

    def _read_json(self) -> dict:
        content_length = int(self.headers.get('Content-Length', 0) or 0)
        raw_body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""
        if not raw_body:
            return {}
        try:
            body = json.loads(raw_body)
        except json.JSONDecodeError:
            raise ValidationFailedError("Request body must be JSON")
        if not isinstance(body, dict):
            raise ValidationFailedError("Request body must be a JSON object")
        return body

    def _query(self) -> dict[str, str]:
        params = parse_qs(urlparse(self.path).query)
        return {key: values[-1] for key, values in params.items()}

    def _enum_param(self, enum_cls: type[Enum], value: Optional[str]):
        if not value:
            return None
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ValidationFailedError(f"Invalid value '{value}'; expected one of: {allowed}")

    def _authenticate(self) -> str:
        from src.services.auth import authenticate
        return run_async(authenticate(self.headers.get("Authorization")))

    def _dispatch(self, func: Callable[[], Any], success_status: int = 200) -> None:
        """Run the handler body inside a correlation context and translate errors."""
        LoggingConfig.setup_logging()
        incoming_id = LoggingConfig.incoming_correlation_id(self.headers)
        with correlation_context(incoming_id) as correlation_id:
            headers = {LoggingConfig.LOG_CORRELATION_ID_HEADER: correlation_id}
            try:
                payload = func()
            except Exception as e:
                status, body = error_body(e)
                if status >= 500:
                    logger.error(
                        "Request failed",
                        exc_info=True,
                        method=getattr(self, "command", None),
                        path=urlparse(self.path).path,
                        error=str(e),
                    )
                else:
                    logger.info(
                        "Request rejected",
                        method=getattr(self, "command", None),
                        path=urlparse(self.path).path,
                        status=status,
                        error=str(e),
                    )
                self._send_json(status, body, headers)
                return
            self._send_json(success_status, payload, headers)

    def log_message(self, format, *args):
        # Route http.server's access log through our logger
        logger.debug("http access", detail=format % args)
