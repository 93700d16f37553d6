from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import structlog
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from structlog.testing import LogCapture

from gqlserver.config import get_settings
from gqlserver.main import create_app
from gqlserver.schema.builder import build_schema
from gqlserver.schema.resolvers import Resolver
from gqlserver.services.graphql_service import GraphQLService
from gqlserver.services.logging_service import LoggingService


class FakeUpstream:
    """Stands in for the placeholder upstream; fails the listed (1-based) calls."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail_calls: set[int] = set()
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) in self.fail_calls:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status_code, text="upstream body is ignored")


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("DEBUG_PORT", "8081")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter: InMemorySpanExporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider.get_tracer("tests")
    provider.shutdown()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def resolver(tracer, upstream: FakeUpstream) -> AsyncIterator[Resolver]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    resolver = Resolver(tracer, client, "http://upstream.test/")
    yield resolver
    await resolver.aclose()


@pytest.fixture
def schema(resolver: Resolver):
    return build_schema(resolver)


@pytest.fixture
def log_output() -> LogCapture:
    return LogCapture()


@pytest.fixture
def logger(log_output: LogCapture):
    return structlog.wrap_logger(None, processors=[log_output])


@pytest.fixture
def service(schema, logger) -> LoggingService:
    return LoggingService(logger, GraphQLService(schema))


@pytest.fixture
async def api_client(service, tracer, logger) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=create_app(service, tracer, logger))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
