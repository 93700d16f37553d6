from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Awaitable, Callable

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import SpanKind, Status, StatusCode

from gqlserver.observability.logging import took_since


@dataclass(frozen=True)
class EndpointResponse:
    """Tagged endpoint outcome: either a payload to encode or an error."""

    payload: Any = None
    error: Exception | None = None

    @classmethod
    def success(cls, payload: Any) -> EndpointResponse:
        return cls(payload=payload)

    @classmethod
    def failure(cls, error: Exception) -> EndpointResponse:
        return cls(error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None


Endpoint = Callable[[Context, Any], Awaitable[EndpointResponse]]
Middleware = Callable[[Endpoint], Endpoint]


def chain(outer: Middleware, *others: Middleware) -> Middleware:
    """Compose middlewares so that ``outer`` ends up outermost."""

    def composed(endpoint: Endpoint) -> Endpoint:
        for middleware in reversed(others):
            endpoint = middleware(endpoint)
        return outer(endpoint)

    return composed


def trace_server(tracer: trace.Tracer, operation_name: str) -> Middleware:
    """Run the endpoint inside a SERVER span that is a child of the incoming context."""

    def middleware(next_endpoint: Endpoint) -> Endpoint:
        async def traced(ctx: Context, request: Any) -> EndpointResponse:
            with tracer.start_as_current_span(operation_name, context=ctx, kind=SpanKind.SERVER) as span:
                response = await next_endpoint(trace.set_span_in_context(span, ctx), request)
                if response.failed:
                    span.set_status(Status(StatusCode.ERROR, str(response.error)))
                return response

        return traced

    return middleware


def logging_middleware(logger: Any) -> Middleware:
    def middleware(next_endpoint: Endpoint) -> Endpoint:
        async def logged(ctx: Context, request: Any) -> EndpointResponse:
            begin = perf_counter()
            error: Exception | None = None
            try:
                response = await next_endpoint(ctx, request)
                error = response.error
                return response
            except Exception as exc:
                error = exc
                raise
            finally:
                logger.info("endpoint", error=error, took=took_since(begin))

        return logged

    return middleware
