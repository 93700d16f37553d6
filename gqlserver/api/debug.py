from __future__ import annotations

import asyncio
import cProfile
import io
import pstats
import sys
import threading
import traceback
import tracemalloc

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse


router = APIRouter(prefix="/debug/pprof", tags=["debug"])
# cProfile allows a single active profiler per process.
_profile_lock = asyncio.Lock()

PROFILES = {
    "cmdline": "The command line invocation of the current program",
    "stacks": "Stack traces of all threads and asyncio tasks",
    "profile": "CPU profile of the event loop. Use the seconds parameter to set the duration",
    "heap": "Top memory allocations (requires tracemalloc to be tracing)",
}


@router.get("/")
async def index() -> dict[str, dict[str, str]]:
    return {"profiles": PROFILES}


@router.get("/cmdline", response_class=PlainTextResponse)
async def cmdline() -> str:
    return "\x00".join(sys.argv)


@router.get("/stacks", response_class=PlainTextResponse)
async def stacks() -> str:
    names = {thread.ident: thread.name for thread in threading.enumerate()}
    out = io.StringIO()
    for ident, frame in sys._current_frames().items():
        out.write(f"thread {names.get(ident, ident)}:\n")
        out.write("".join(traceback.format_stack(frame)))
        out.write("\n")
    for task in asyncio.all_tasks():
        out.write(f"task {task.get_name()}:\n")
        task.print_stack(file=out)
        out.write("\n")
    return out.getvalue()


@router.get("/profile", response_class=PlainTextResponse)
async def profile(seconds: int = Query(default=30, ge=1, le=300)) -> str:
    if _profile_lock.locked():
        raise HTTPException(status_code=409, detail="profile already running")

    async with _profile_lock:
        profiler = cProfile.Profile()
        profiler.enable()
        try:
            await asyncio.sleep(seconds)
        finally:
            profiler.disable()

    out = io.StringIO()
    pstats.Stats(profiler, stream=out).sort_stats("cumulative").print_stats(50)
    return out.getvalue()


@router.get("/heap", response_class=PlainTextResponse)
async def heap(limit: int = Query(default=25, ge=1, le=500)) -> str:
    if not tracemalloc.is_tracing():
        return "tracemalloc is not tracing; start the process with PYTHONTRACEMALLOC=1\n"
    snapshot = tracemalloc.take_snapshot()
    return "".join(f"{stat}\n" for stat in snapshot.statistics("lineno")[:limit])
