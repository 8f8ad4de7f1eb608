"""Test helper functions."""

import json
from io import BytesIO
from typing import Any, Dict, Optional
from unittest.mock import Mock


def bearer(token: str = "test-token") -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def make_handler(
    handler_cls,
    method: str = "GET",
    path: str = "/",
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    raw_body: Optional[bytes] = None,
):
    """Build a handler instance without a socket, ready for do_<METHOD>()."""
    if raw_body is None:
        raw_body = json.dumps(body).encode('utf-8') if body is not None else b""

    h = handler_cls.__new__(handler_cls)
    h.headers = {"Content-Length": str(len(raw_body)), **(headers or {})}
    h.path = path
    h.command = method
    h.request_version = "HTTP/1.1"
    h.rfile = BytesIO(raw_body)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def call_handler(handler_cls, method: str = "GET", path: str = "/", **kwargs):
    """Run one request through a handler and return the handler."""
    h = make_handler(handler_cls, method=method, path=path, **kwargs)
    getattr(h, f"do_{method}")()
    return h


def response_status(h) -> int:
    return h.send_response.call_args[0][0]


def response_json(h) -> Dict[str, Any]:
    h.wfile.seek(0)
    return json.loads(h.wfile.read().decode('utf-8'))


def response_headers(h) -> Dict[str, str]:
    return {c[0][0]: c[0][1] for c in h.send_header.call_args_list}
