import asyncio
import socket

from httpx import ASGITransport, AsyncClient

from gqlserver.config import Settings
from gqlserver.main import create_app, create_debug_app, serve, wait_first


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def test_wait_first_reports_the_first_listener_and_cancels_the_rest() -> None:
    cancelled = asyncio.Event()

    async def slow() -> str:
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return "slow"

    async def fast() -> str:
        return "SIGINT"

    name, outcome = await wait_first({"http": slow(), "signal": fast()})

    assert (name, outcome) == ("signal", "SIGINT")
    assert cancelled.is_set()


async def test_wait_first_returns_listener_failure() -> None:
    async def failing() -> None:
        raise OSError("address already in use")

    async def idle() -> None:
        await asyncio.sleep(60)

    name, outcome = await wait_first({"debug": failing(), "http": idle()})

    assert name == "debug"
    assert isinstance(outcome, OSError)


async def test_wait_first_stops_listeners_that_have_a_stopper() -> None:
    stop_requested = asyncio.Event()
    closed: list[str] = []

    async def server() -> str:
        await stop_requested.wait()
        closed.append("http")
        return "listener stopped"

    async def signal_listener() -> str:
        return "SIGTERM"

    name, _ = await wait_first(
        {"signal": signal_listener(), "http": server()},
        stoppers={"http": stop_requested.set},
    )

    assert name == "signal"
    assert closed == ["http"]


async def test_wait_first_cancels_stoppable_listeners_after_grace() -> None:
    cancelled = asyncio.Event()

    async def stubborn() -> None:
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def signal_listener() -> str:
        return "SIGINT"

    await wait_first(
        {"signal": signal_listener(), "http": stubborn()},
        stoppers={"http": lambda: None},
        grace=0.05,
    )

    assert cancelled.is_set()


async def test_serve_reports_a_listener_that_cannot_bind(service, tracer, logger, log_output) -> None:
    with socket.socket() as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        settings = Settings(
            _env_file=None,
            HOST="127.0.0.1",
            PORT=_free_port(),
            DEBUG_PORT=taken.getsockname()[1],
        )

        name, outcome = await asyncio.wait_for(
            serve(settings, create_app(service, tracer, logger), create_debug_app(), logger),
            timeout=15,
        )

    assert name == "debug"
    assert isinstance(outcome, OSError)
    (entry,) = [entry for entry in log_output.entries if entry["event"] == "shutdown"]
    assert entry["listener"] == "debug"
    assert entry["terminated"] is outcome


async def test_create_app_serves_graphql_and_health(service, tracer, logger) -> None:
    transport = ASGITransport(app=create_app(service, tracer, logger))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        health = await client.get("/health")
        graphql = await client.get("/graphql")

    assert health.status_code == 200
    assert graphql.status_code == 500
    assert graphql.json() == {"error": "bad request"}
