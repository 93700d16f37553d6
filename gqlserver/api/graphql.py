from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.context import Context
from pydantic import ValidationError

from gqlserver.api.endpoint import Endpoint, EndpointResponse, chain, logging_middleware, trace_server
from gqlserver.errors import BadRequestError, RequestError
from gqlserver.models.schemas import GraphqlRequest
from gqlserver.observability.tracing import context_from_headers
from gqlserver.services.graphql_service import Service


JSON_CONTENT_TYPE = "application/json; charset=utf-8"


def make_graphql_endpoint(service: Service) -> Endpoint:
    async def graphql_endpoint(ctx: Context, request: GraphqlRequest) -> EndpointResponse:
        result = await service.do(request.query, ctx)
        if result is None:
            return EndpointResponse.failure(RequestError(["empty result"]))
        return EndpointResponse.success(result.formatted)

    return graphql_endpoint


def decode_graphql_request(request: Request) -> GraphqlRequest:
    values = request.query_params.getlist("query")
    try:
        return GraphqlRequest(query=values[0] if values else "")
    except ValidationError as exc:
        raise BadRequestError() from exc


def encode_response(response: EndpointResponse) -> JSONResponse:
    if response.failed:
        return encode_error(response.error)
    return JSONResponse(response.payload, headers={"Content-Type": JSON_CONTENT_TYPE})


def encode_error(error: Exception | None) -> JSONResponse:
    # Every failure, client input included, maps to 500.
    return JSONResponse(
        {"error": str(error)},
        status_code=500,
        headers={"Content-Type": JSON_CONTENT_TYPE},
    )


def make_router(service: Service, tracer: trace.Tracer, logger: Any) -> APIRouter:
    endpoint = chain(
        logging_middleware(logger.bind(method="Graphql")),
        trace_server(tracer, "Graphql"),
    )(make_graphql_endpoint(service))

    router = APIRouter(tags=["graphql"])

    @router.get("/graphql")
    async def graphql_handler(request: Request) -> JSONResponse:
        try:
            payload = decode_graphql_request(request)
            response = await endpoint(context_from_headers(request.headers), payload)
        except Exception as exc:  # noqa: BLE001
            logger.error("transport_error", error=str(exc))
            return encode_error(exc)
        return encode_response(response)

    return router
