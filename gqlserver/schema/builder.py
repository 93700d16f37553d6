from __future__ import annotations

from typing import Any

from graphql import (
    GraphQLArgument,
    GraphQLField,
    GraphQLObjectType,
    GraphQLResolveInfo,
    GraphQLSchema,
    GraphQLString,
    validate_schema,
)

from gqlserver.errors import SchemaBuildError
from gqlserver.schema.resolvers import Resolver


def _source_value(source: Any, _info: GraphQLResolveInfo) -> Any:
    return source


def build_schema(resolver: Resolver) -> GraphQLSchema:
    """Build the static ``Query { user(id: String): User }`` schema."""

    user_type = GraphQLObjectType(
        "User",
        lambda: {
            "id": GraphQLField(GraphQLString, resolve=_source_value),
            "name": GraphQLField(GraphQLString, resolve=resolver.resolve_user_name),
        },
    )

    query_type = GraphQLObjectType(
        "Query",
        {
            "user": GraphQLField(
                user_type,
                args={"id": GraphQLArgument(GraphQLString)},
                resolve=resolver.resolve_user,
                description="Search something",
            ),
        },
    )

    try:
        schema = GraphQLSchema(query=query_type)
    except (TypeError, ValueError) as exc:
        raise SchemaBuildError(str(exc)) from exc

    problems = validate_schema(schema)
    if problems:
        raise SchemaBuildError("; ".join(problem.message for problem in problems))
    return schema
