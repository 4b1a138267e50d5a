"""
Procedure HTTP handler - FastAPI adapter

Serves registered procedures over HTTP: GET for queries, POST for
mutations, ``?batch=1`` with comma joined paths for batches.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.background import BackgroundTask

from .api.deps import ContextFactoryDep, HandlerConfigDep, RequestHandlerDep
from .config import HandlerConfig, config
from .core.exceptions import ParseError, PayloadTooLargeError, ProcedureError
from .core.logging_config import setup_logging
from .core.procedure_type import ProcedureType, get_procedure_type
from .exceptions import register_exception_handlers
from .middleware import request_id_middleware
from .models.request import HTTPRequest
from .models.result import HTTPResponse
from .services.dispatcher import RequestHandler
from .services.router import RouterProtocol

logger = logging.getLogger("rpcbridge.main")

PROCEDURE_METHODS = ["GET", "POST", "PATCH", "PUT", "DELETE", "HEAD"]


async def read_body(request: Request, max_body_size: Optional[int]) -> str:
    """
    Read the request body as text, enforcing the size limit while streaming.

    Raises:
        PayloadTooLargeError: the body exceeds max_body_size bytes
        ParseError: the body is not valid UTF-8
    """
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if max_body_size is not None and size > max_body_size:
            raise PayloadTooLargeError(max_body_size)
        chunks.append(chunk)

    try:
        return b"".join(chunks).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(original_error=exc) from exc


def to_response(result: HTTPResponse, teardown: Optional[Callable[[], Any]] = None) -> Response:
    background = BackgroundTask(teardown) if teardown is not None else None
    return Response(
        content=result.body if result.body is not None else b"",
        status_code=result.status,
        headers=result.headers,
        background=background,
    )


async def procedure_handler(
    request: Request,
    path: str,
    handler: RequestHandlerDep,
    settings: HandlerConfigDep,
    create_context: ContextFactoryDep,
) -> Response:
    """
    Catch-all procedure route.

    The route value carries one path, or comma joined paths for a batch.
    """
    http_request = HTTPRequest(
        method=request.method,
        headers=dict(request.headers),
        query=request.query_params,
    )

    try:
        if http_request.method != "HEAD":
            # Rejected requests never have their body read.
            handler.check_request(http_request)
        if get_procedure_type(http_request.method) is ProcedureType.MUTATION:
            body = await read_body(request, settings.MAX_BODY_SIZE)
            http_request = http_request.model_copy(update={"body": body})
    except ProcedureError as exc:
        result = await handler.error_response(exc, http_request)
    else:
        result = await handler.handle(http_request, path, create_context=create_context)

    return to_response(result, request.app.state.teardown)


async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


def create_app(
    router: RouterProtocol,
    create_context: Optional[Callable[[Request], Any]] = None,
    *,
    on_error: Optional[Callable[..., Any]] = None,
    response_meta: Optional[Callable[..., Any]] = None,
    teardown: Optional[Callable[[], Any]] = None,
    handler_config: Optional[HandlerConfig] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Assemble a FastAPI app serving `router`.

    Args:
        router: Procedure registry
        create_context: Called with the incoming Request (sync or async) once
            per request; its result is shared by every call of a batch
        on_error: Observer for request and call failures
        response_meta: Hook returning extra headers and/or a status override
        teardown: Runs after each response is sent (sync or async)
        handler_config: Settings; defaults to the environment-loaded config
        configure_logging: Load the YAML logging config on startup
    """
    handler_config = handler_config or config
    if configure_logging:
        setup_logging(handler_config.LOG_CONFIG_PATH)

    if handler_config.INCLUDE_ERROR_STACK:
        router.include_stack = True

    app = FastAPI(title="Procedure Handler", version="1.0.0")
    app.state.handler_config = handler_config
    app.state.create_context = create_context
    app.state.teardown = teardown
    app.state.request_handler = RequestHandler(
        router,
        on_error=on_error,
        response_meta=response_meta,
        batching_enabled=handler_config.BATCHING_ENABLED,
    )

    app.middleware("http")(request_id_middleware)
    register_exception_handlers(app)

    app.add_api_route("/health", health_check, methods=["GET"])
    prefix = handler_config.ENDPOINT_PREFIX.rstrip("/")
    app.add_api_route(
        f"{prefix}/{{path:path}}",
        procedure_handler,
        methods=PROCEDURE_METHODS,
        include_in_schema=False,
    )

    logger.info(
        "Procedure handler initialized",
        extra={"prefix": prefix or "/", "batching_enabled": handler_config.BATCHING_ENABLED},
    )
    return app


def run(app: FastAPI, handler_config: Optional[HandlerConfig] = None) -> None:
    """Serve `app` with uvicorn on UVICORN_BIND_ADDR."""
    import uvicorn

    handler_config = handler_config or config
    host, _, port = handler_config.UVICORN_BIND_ADDR.rpartition(":")
    uvicorn.run(app, host=host or "0.0.0.0", port=int(port))
