from __future__ import annotations

from typing import Any

import httpx
from graphql import GraphQLResolveInfo
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import SpanKind, Status, StatusCode

from gqlserver.errors import UpstreamError
from gqlserver.observability.tracing import headers_for_context


def create_upstream_client(timeout: float | None = None) -> httpx.AsyncClient:
    # timeout=None disables every httpx timeout.
    return httpx.AsyncClient(timeout=timeout)


class Resolver:
    """Resolves the ``user`` and ``User.name`` fields.

    Each resolution makes one traced GET to ``upstream_url``. Only whether the
    call completes matters; status and body are ignored.
    """

    def __init__(self, tracer: trace.Tracer, client: httpx.AsyncClient, upstream_url: str) -> None:
        self.tracer = tracer
        self.client = client
        self.upstream_url = upstream_url

    async def _get(self, ctx: Context | None, name: str) -> None:
        with self.tracer.start_as_current_span(
            name,
            context=ctx,
            kind=SpanKind.CLIENT,
            attributes={"http.method": "GET", "http.url": self.upstream_url},
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            headers = headers_for_context(trace.set_span_in_context(span, ctx))
            try:
                async with self.client.stream("GET", self.upstream_url, headers=headers) as response:
                    span.set_attribute("http.status_code", response.status_code)
            except httpx.HTTPError as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                raise UpstreamError(name, exc) from exc

    async def user(self, ctx: Context | None, user_id: str) -> str:
        await self._get(ctx, "user")
        return "id:" + user_id

    async def user_name(self, ctx: Context | None, user_id: str) -> str:
        await self._get(ctx, "userName")
        return "name:" + user_id

    async def resolve_user(self, _source: Any, info: GraphQLResolveInfo, **args: Any) -> str | None:
        user_id = args.get("id")
        if not isinstance(user_id, str):
            return None
        return await self.user(info.context, user_id)

    async def resolve_user_name(self, source: Any, info: GraphQLResolveInfo) -> str | None:
        # The parent ``user`` value is the source.
        if not isinstance(source, str):
            return None
        return await self.user_name(info.context, source)

    async def aclose(self) -> None:
        await self.client.aclose()
