"""
Where: rpcbridge/handler/exceptions.py
What: Exception handler registration for the FastAPI app.
Why: Keep error handling setup isolated from route and lifecycle concerns.
"""

import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import Response

from .core.exceptions import ErrorCode, ProcedureError, get_error_from_unknown
from .core.http_status import get_status_from_code
from .services.router import default_error_shape

logger = logging.getLogger("rpcbridge.exceptions")


def _envelope_response(error: ProcedureError) -> Response:
    body = json.dumps({"id": None, "error": default_error_shape(error, None)})
    return Response(
        content=body,
        status_code=get_status_from_code(error.code),
        media_type="application/json",
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for exceptions that escaped the procedure pipeline.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    error = get_error_from_unknown(exc)
    if error.code is ErrorCode.INTERNAL_SERVER_ERROR:
        # Unexpected exception text stays in the logs.
        error = ProcedureError(message="Internal Server Error")
    return _envelope_response(error)


async def procedure_error_handler(request: Request, exc: ProcedureError):
    """
    Handler for ProcedureError raised outside the dispatcher (e.g. route dependencies).
    """
    return _envelope_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(ProcedureError, procedure_error_handler)
