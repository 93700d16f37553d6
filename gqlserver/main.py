from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from collections.abc import Awaitable, Callable, Iterator
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI
from opentelemetry import trace

from gqlserver.api.debug import router as debug_router
from gqlserver.api.graphql import make_router
from gqlserver.config import Settings, get_settings
from gqlserver.errors import SchemaBuildError, TracerBuildError
from gqlserver.observability.logging import configure_logging
from gqlserver.observability.middleware import RequestContextMiddleware
from gqlserver.observability.tracing import build_tracer_provider, get_tracer
from gqlserver.schema.builder import build_schema
from gqlserver.schema.resolvers import Resolver, create_upstream_client
from gqlserver.services.graphql_service import GraphQLService, Service
from gqlserver.services.logging_service import LoggingService


def create_app(service: Service, tracer: trace.Tracer, logger: Any) -> FastAPI:
    app = FastAPI(title="GraphQL Server", version="0.1.0")
    app.add_middleware(RequestContextMiddleware, logger=logger.bind(component="access"))
    app.include_router(make_router(service, tracer, logger.bind(component="http")))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def create_debug_app() -> FastAPI:
    app = FastAPI(title="GraphQL Server debug", docs_url=None, redoc_url=None, openapi_url=None)
    app.include_router(debug_router)
    return app


class Listener(uvicorn.Server):
    """uvicorn server that leaves signal handling to the bootstrap."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


async def wait_for_signal(*signals: signal.Signals) -> str:
    loop = asyncio.get_running_loop()
    received: asyncio.Future[str] = loop.create_future()

    def _notify(sig: signal.Signals) -> None:
        if not received.done():
            received.set_result(sig.name)

    for sig in signals:
        loop.add_signal_handler(sig, _notify, sig)
    try:
        return await received
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)


async def wait_first(
    listeners: dict[str, Awaitable[Any]],
    stoppers: dict[str, Callable[[], None]] | None = None,
    grace: float = 5.0,
) -> tuple[str, Any]:
    """Run the listeners concurrently and report whichever finishes first.

    Returns the listener's name and its outcome: the return value, or the
    exception it raised. Remaining listeners with an entry in ``stoppers`` are
    asked to stop and get ``grace`` seconds to do so; everything else is
    cancelled.
    """

    stoppers = stoppers or {}
    tasks = {asyncio.ensure_future(aw): name for name, aw in listeners.items()}
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

    first = next(iter(done))
    outcome = first.exception() if first.exception() is not None else first.result()

    for task in pending:
        stop = stoppers.get(tasks[task])
        if stop is None:
            task.cancel()
        else:
            stop()
    if pending:
        _, still_running = await asyncio.wait(pending, timeout=grace)
        for task in still_running:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    return tasks[first], outcome


async def _listen(name: str, server: Listener) -> str:
    try:
        await server.serve()
    except SystemExit as exc:
        # uvicorn exits the process when it cannot bind; report it as this listener's failure.
        raise OSError(f"{name} listener failed to start") from exc
    finally:
        # uvicorn skips its own shutdown when asked to exit during startup.
        for listening in getattr(server, "servers", []):
            listening.close()
    return "listener stopped"


def _stopper(server: Listener) -> Callable[[], None]:
    def stop() -> None:
        # Close the sockets without waiting for in-flight connections.
        server.should_exit = True
        server.force_exit = True

    return stop


async def serve(settings: Settings, app: FastAPI, debug_app: FastAPI, logger: Any) -> tuple[str, Any]:
    servers = {
        "debug": Listener(
            uvicorn.Config(debug_app, host=settings.host, port=settings.debug_port, log_config=None, access_log=False)
        ),
        "http": Listener(uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None, access_log=False)),
    }

    logger.bind(transport="debug").info("listening", addr=settings.debug_address)
    logger.info("listening", transport="http", address=settings.address)

    name, outcome = await wait_first(
        {
            "signal": wait_for_signal(signal.SIGINT, signal.SIGTERM),
            "debug": _listen("debug", servers["debug"]),
            "http": _listen("http", servers["http"]),
        },
        stoppers={key: _stopper(server) for key, server in servers.items()},
    )
    logger.info("shutdown", listener=name, terminated=outcome)
    return name, outcome


def run(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger = structlog.get_logger()

    tracer_logger = logger.bind(tracer="Zipkin")
    tracer_logger.info("tracer", addr=settings.zipkin_endpoint)
    try:
        provider = build_tracer_provider(settings.service_name, settings.zipkin_endpoint, settings.address)
    except TracerBuildError as exc:
        tracer_logger.error("unable to create Zipkin tracer", error=str(exc))
        sys.exit(1)
    tracer = get_tracer(provider)

    resolver = Resolver(tracer, create_upstream_client(settings.upstream_timeout), settings.upstream_url)
    try:
        schema = build_schema(resolver)
    except SchemaBuildError as exc:
        logger.error("unable to build schema", error=str(exc))
        sys.exit(1)

    service: Service = GraphQLService(schema)
    service = LoggingService(logger, service)

    app = create_app(service, tracer, logger)

    async def _main() -> None:
        try:
            await serve(settings, app, create_debug_app(), logger)
        finally:
            await resolver.aclose()

    try:
        asyncio.run(_main())
    finally:
        provider.shutdown()
