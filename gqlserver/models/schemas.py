from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from graphql import ExecutionResult, GraphQLError
from pydantic import BaseModel, Field


class GraphqlRequest(BaseModel):
    query: str = Field(min_length=1)


@dataclass(frozen=True)
class Result:
    """Outcome of executing one query: data plus an ordered list of errors."""

    data: dict[str, Any] | None = None
    errors: tuple[GraphQLError, ...] = field(default_factory=tuple)

    @classmethod
    def from_execution(cls, execution: ExecutionResult) -> Result:
        return cls(data=execution.data, errors=tuple(execution.errors or ()))

    @property
    def error_messages(self) -> list[str]:
        return [error.message for error in self.errors]

    @property
    def formatted(self) -> dict[str, Any]:
        # An empty error list is rendered as null.
        return {
            "data": self.data,
            "errors": [error.formatted for error in self.errors] or None,
        }
