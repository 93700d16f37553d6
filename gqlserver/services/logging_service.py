from __future__ import annotations

from time import perf_counter
from typing import Any

from opentelemetry.context import Context

from gqlserver.errors import RequestError
from gqlserver.models.schemas import Result
from gqlserver.observability.logging import took_since
from gqlserver.services.graphql_service import Service


def derive_error(result: Result | None) -> RequestError | None:
    if result is None:
        return RequestError(["empty result"])
    if result.errors:
        return RequestError(result.error_messages)
    return None


class LoggingService:
    """Service decorator that logs every call with its duration and derived error."""

    def __init__(self, logger: Any, service: Service) -> None:
        self.logger = logger
        self.service = service

    async def do(self, query: str, ctx: Context | None = None) -> Result | None:
        begin = perf_counter()
        error: Exception | None = None
        try:
            result = await self.service.do(query, ctx)
            error = derive_error(result)
            return result
        except Exception as exc:
            error = exc
            raise
        finally:
            self.logger.info(
                "graphql_query",
                method="do",
                query=query,
                took=took_since(begin),
                error=error,
            )
