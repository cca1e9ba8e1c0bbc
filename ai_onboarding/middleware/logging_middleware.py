"""
Request logging middleware.

Pure ASGI middleware (not BaseHTTPMiddleware). Logs one line per request
with method, path, status and duration; request and response bodies are
logged at DEBUG level with sensitive keys masked.
"""

import json
import logging
import re
import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

_SESSION_PATH_RE = re.compile(r"/sessions/([^/]+)")


def _sanitize_body(data: bytes, max_length: int = 2000) -> str:
    """Decode a body and mask sensitive keys when it is JSON."""
    text = data.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=max_length)
    return truncate_large_data(
        json.dumps(filter_sensitive_data(payload), ensure_ascii=False), max_length=max_length
    )


def _session_id_from_path(path: str) -> Optional[str]:
    match = _SESSION_PATH_RE.search(path)
    return match.group(1) if match else None


class RequestLoggingMiddleware:
    """Pure ASGI middleware to log API requests and responses."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are not logged (e.g., ["/health"])
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        session_id = _session_id_from_path(path)
        debug = logger.isEnabledFor(logging.DEBUG)

        request_chunks = []
        response_chunks = []
        status_code = 0

        async def logging_receive() -> Message:
            message = await receive()
            if debug and message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            elif debug and message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "method": method,
                    "path": path,
                    "session_id": session_id,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        logger.log(
            log_level,
            f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": {
                "method": method,
                "path": path,
                "session_id": session_id,
                "status_code": status_code,
                "duration_ms": duration_ms,
            }}
        )

        if debug:
            logger.debug(
                f"Request body: {_sanitize_body(b''.join(request_chunks)) or '-'} | "
                f"response body: {_sanitize_body(b''.join(response_chunks)) or '-'}"
            )
