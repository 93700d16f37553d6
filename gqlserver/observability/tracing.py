from __future__ import annotations

from collections.abc import Mapping

from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.exporter.zipkin.json import ZipkinExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from gqlserver.errors import TracerBuildError


INSTRUMENTATION_NAME = "gqlserver"


def build_tracer_provider(service_name: str, zipkin_endpoint: str, local_address: str | None = None) -> TracerProvider:
    """Create a provider that batches finished spans to a Zipkin collector.

    An empty ``zipkin_endpoint`` yields a provider without any exporter, which
    still creates and links spans.
    """

    attributes: dict[str, str] = {"service.name": service_name}
    if local_address:
        attributes["host.address"] = local_address

    try:
        provider = TracerProvider(resource=Resource.create(attributes))
        if zipkin_endpoint:
            provider.add_span_processor(BatchSpanProcessor(ZipkinExporter(endpoint=zipkin_endpoint)))
    except Exception as exc:  # noqa: BLE001
        raise TracerBuildError(f"unable to create Zipkin tracer: {exc}") from exc
    return provider


def get_tracer(provider: TracerProvider) -> trace.Tracer:
    return provider.get_tracer(INSTRUMENTATION_NAME)


def context_from_headers(headers: Mapping[str, str]) -> Context:
    """Extract an inbound trace context (W3C ``traceparent``) from request headers."""

    return propagate.extract(headers)


def headers_for_context(ctx: Context) -> dict[str, str]:
    carrier: dict[str, str] = {}
    propagate.inject(carrier, context=ctx)
    return carrier
