from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders


REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware:
    """Binds a request id into structlog contextvars and writes one access log per request.

    A request id supplied by the caller is kept; otherwise a new one is minted.
    Either way it is echoed back on the response.
    """

    def __init__(self, app: Callable[..., Any], logger: Any = None) -> None:
        self.app = app
        self.logger = logger if logger is not None else structlog.get_logger("access")

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=scope.get("path"),
            http_method=scope.get("method"),
        )

        begin = perf_counter()
        status_code = 500

        async def send_with_request_id(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            self.logger.info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round((perf_counter() - begin) * 1000.0, 2),
            )
            structlog.contextvars.clear_contextvars()
