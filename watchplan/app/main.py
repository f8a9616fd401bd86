from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from structlog.contextvars import bound_contextvars

from watchplan.app.api.routes import router
from watchplan.app.dependencies import get_settings, get_telemetry
from watchplan.app.logging_config import configure_application_logging

REQUEST_ID_HEADER = "X-Request-ID"


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_application_logging(get_settings())
    yield


def _request_id_for(request: Request) -> str:
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return incoming or str(uuid4())


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Tag logs and telemetry for the request and echo its id back to the caller."""
    request_id = _request_id_for(request)
    path = request.url.path
    with bound_contextvars(
        http_request_id=request_id,
        http_method=request.method,
        http_path=path,
    ):
        with get_telemetry().span(
            "http.request",
            request_id=request_id,
            method=request.method,
            path=path,
        ) as closing:
            response = await call_next(request)
            closing["status_code"] = response.status_code
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app() -> FastAPI:
    app = FastAPI(title="Watchplan API", version="0.1.0", lifespan=app_lifespan)
    app.middleware("http")(request_context_middleware)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app


app = create_app()
