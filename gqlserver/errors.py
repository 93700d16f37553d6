from __future__ import annotations

from collections.abc import Iterable


class GraphQLServerError(Exception):
    """Base class for errors raised by the server itself."""


class BadRequestError(GraphQLServerError):
    def __init__(self, message: str = "bad request") -> None:
        super().__init__(message)


class UpstreamError(GraphQLServerError):
    """An outbound resolver call failed before a response arrived."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation}: upstream call failed: {cause}")
        self.operation = operation


class RequestError(GraphQLServerError):
    """Folds the errors of one execution result into a single loggable error."""

    def __init__(self, messages: Iterable[str]) -> None:
        self.messages = list(messages)
        super().__init__(f"request error: [{'; '.join(self.messages)}]")


class SchemaBuildError(GraphQLServerError):
    pass


class TracerBuildError(GraphQLServerError):
    pass
