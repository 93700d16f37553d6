from __future__ import annotations

from typing import Protocol

from graphql import GraphQLSchema, graphql
from opentelemetry import context as otel_context
from opentelemetry.context import Context

from gqlserver.models.schemas import Result


class Service(Protocol):
    async def do(self, query: str, ctx: Context | None = None) -> Result | None: ...


class GraphQLService:
    """Executes queries against a fixed schema.

    Never raises for query problems: syntax, validation and resolver failures
    are all reported through ``Result.errors``.
    """

    def __init__(self, schema: GraphQLSchema) -> None:
        self.schema = schema

    async def do(self, query: str, ctx: Context | None = None) -> Result:
        execution = await graphql(
            self.schema,
            source=query,
            context_value=ctx if ctx is not None else otel_context.get_current(),
        )
        return Result.from_execution(execution)
