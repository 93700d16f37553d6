from __future__ import annotations

import logging
import sys
from time import perf_counter
from typing import Any

import structlog
from structlog.processors import CallsiteParameter


_CONFIGURED = False


def _add_caller(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    filename = event_dict.pop("filename", None)
    lineno = event_dict.pop("lineno", None)
    if filename is not None:
        event_dict["caller"] = f"{filename}:{lineno}"
    return event_dict


def took_since(begin: float) -> str:
    """Render the time elapsed since a perf_counter() reading, e.g. ``12.345ms``."""

    return f"{(perf_counter() - begin) * 1000.0:.3f}ms"


def configure_logging(level: int | str = logging.INFO, fmt: str = "logfmt") -> None:
    """Configure structlog + stdlib logging for line-oriented stderr output.

    Every record carries ``ts`` and ``caller``. ``fmt`` picks logfmt (key=value)
    or JSON rendering. Safe to call multiple times (no-op after first call).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        structlog.processors.CallsiteParameterAdder(
            [CallsiteParameter.FILENAME, CallsiteParameter.LINENO],
        ),
        _add_caller,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.processors.LogfmtRenderer(key_order=["ts", "caller", "level", "event"], drop_missing=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Keep uvicorn's own loggers consistent with our handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)

    _CONFIGURED = True
