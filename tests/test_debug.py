import sys
from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from gqlserver.main import create_debug_app


@pytest.fixture
async def debug_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=create_debug_app())
    async with AsyncClient(transport=transport, base_url="http://debug") as client:
        yield client


async def test_index_lists_profiles(debug_client) -> None:
    resp = await debug_client.get("/debug/pprof/")
    assert resp.status_code == 200
    assert set(resp.json()["profiles"]) == {"cmdline", "stacks", "profile", "heap"}


async def test_cmdline_is_nul_separated(debug_client) -> None:
    resp = await debug_client.get("/debug/pprof/cmdline")
    assert resp.status_code == 200
    assert resp.text == "\x00".join(sys.argv)


async def test_stacks_include_threads_and_tasks(debug_client) -> None:
    resp = await debug_client.get("/debug/pprof/stacks")
    assert resp.status_code == 200
    assert "thread MainThread:" in resp.text
    assert "task " in resp.text


async def test_profile_returns_stats(debug_client) -> None:
    resp = await debug_client.get("/debug/pprof/profile", params={"seconds": 1})
    assert resp.status_code == 200
    assert "function calls" in resp.text


async def test_profile_rejects_out_of_range_duration(debug_client) -> None:
    resp = await debug_client.get("/debug/pprof/profile", params={"seconds": 0})
    assert resp.status_code == 422


async def test_heap_reports_when_tracemalloc_is_off(debug_client) -> None:
    resp = await debug_client.get("/debug/pprof/heap")
    assert resp.status_code == 200
    assert resp.text
