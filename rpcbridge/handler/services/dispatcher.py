"""
Request Dispatcher - Service Layer

Standardizes the flow: HTTPRequest -> decoded inputs -> concurrent calls
-> HTTPResponse.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional

from ..core.exceptions import (
    ErrorCode,
    MethodNotSupportedError,
    ProcedureError,
    get_error_from_unknown,
)
from ..core.inputs import ABSENT, extract_raw_input, get_call_inputs
from ..core.procedure_type import (
    ProcedureType,
    get_procedure_type,
    is_batch_call,
    split_paths,
)
from ..models.envelope import CallOutcome
from ..models.request import HTTPRequest
from ..models.result import HTTPResponse
from .responder import ResponseBuilder
from .router import RouterProtocol

logger = logging.getLogger("rpcbridge.dispatcher")


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class RequestHandler:
    """
    Orchestrates the request processing lifecycle.

    One instance serves many requests; nothing is stored between them.

    Args:
        router: Procedure registry (call_procedure, get_error_shape, transformer)
        on_error: Observer called with (error, path, input, ctx, kind, req)
            for every failure. Its own failures are logged and ignored.
        response_meta: Hook called with (ctx, paths, kind, data, errors);
            may return headers and/or a status override.
        batching_enabled: Whether ``?batch=1`` requests are accepted
    """

    def __init__(
        self,
        router: RouterProtocol,
        *,
        on_error: Optional[Callable[..., Any]] = None,
        response_meta: Optional[Callable[..., Any]] = None,
        batching_enabled: bool = True,
    ):
        self.router = router
        self.on_error = on_error
        self.batching_enabled = batching_enabled
        self.responder = ResponseBuilder(router, response_meta=response_meta)

    async def handle(
        self,
        req: HTTPRequest,
        path: str,
        create_context: Optional[Callable[[], Any]] = None,
    ) -> HTTPResponse:
        """
        Process one HTTP request into one HTTP response.

        Never raises for request or procedure failures; every failure ends up
        in an error envelope.
        """
        if req.method == "HEAD":
            # Liveness probes and warmup requests.
            return HTTPResponse(status=204)

        kind = get_procedure_type(req.method)
        is_batch = is_batch_call(req.query)
        ctx = None
        paths: Optional[List[str]] = None

        try:
            self.check_request(req)

            raw_input = extract_raw_input(req, kind)
            paths = split_paths(path, is_batch)
            if create_context is not None:
                ctx = await _maybe_await(create_context())

            inputs = get_call_inputs(
                raw_input,
                is_batch=is_batch,
                deserialize=self.router.transformer.input.deserialize,
            )
            logger.debug(
                f"Dispatching {len(paths)} {kind.value} call(s)",
                extra={"paths": paths, "batch": is_batch},
            )

            outcomes = await asyncio.gather(
                *(
                    self._call(
                        ctx=ctx,
                        path=call_path,
                        input=inputs.get(index, ABSENT),
                        kind=kind,
                        req=req,
                    )
                    for index, call_path in enumerate(paths)
                )
            )
            return self.responder.build(
                outcomes=outcomes, is_batch=is_batch, ctx=ctx, paths=paths, kind=kind
            )
        except Exception as exc:
            # We get here if
            # - batching is requested while disabled
            # - the method cannot be served
            # - the payload cannot be parsed or decoded
            # - create_context() raises
            # - the response cannot be built
            error = get_error_from_unknown(exc)
            return await self.error_response(error, req, ctx=ctx, paths=paths)

    def check_request(self, req: HTTPRequest) -> None:
        """
        Request-level gates that do not need the input.

        Raises:
            ProcedureError: batching is disabled, or the method cannot be served
        """
        if is_batch_call(req.query) and not self.batching_enabled:
            raise ProcedureError(
                ErrorCode.INTERNAL_SERVER_ERROR,
                message="Batching is not enabled on the server",
            )
        if not get_procedure_type(req.method).is_servable:
            raise MethodNotSupportedError(req.method)

    async def error_response(
        self,
        error: ProcedureError,
        req: HTTPRequest,
        *,
        ctx: Any = None,
        paths: Optional[List[str]] = None,
    ) -> HTTPResponse:
        """Answer a request-level failure with exactly one top-level error envelope."""
        kind = get_procedure_type(req.method)
        self._log_error(error, path=None)
        await self._report_error(
            error=error, path=None, input=ABSENT, ctx=ctx, kind=kind, req=req
        )
        return self.responder.build_error(error, ctx=ctx, paths=paths, kind=kind)

    async def _call(
        self,
        *,
        ctx: Any,
        path: str,
        input: Any,
        kind: ProcedureType,
        req: HTTPRequest,
    ) -> CallOutcome:
        try:
            data = await self.router.call_procedure(ctx=ctx, path=path, input=input, kind=kind)
            return CallOutcome(path=path, input=input, data=data)
        except Exception as exc:
            error = get_error_from_unknown(exc)
            self._log_error(error, path=path)
            await self._report_error(
                error=error, path=path, input=input, ctx=ctx, kind=kind, req=req
            )
            return CallOutcome(path=path, input=input, error=error)

    def _log_error(self, error: ProcedureError, path: Optional[str]) -> None:
        extra = {"error_code": error.code.value, "procedure_path": path}
        if error.code is ErrorCode.INTERNAL_SERVER_ERROR:
            logger.error(
                f"Procedure request failed: {error.message}",
                extra=extra,
                exc_info=(type(error), error, error.__traceback__),
            )
        else:
            logger.warning(f"Procedure request failed: {error.message}", extra=extra)

    async def _report_error(self, **details: Any) -> None:
        """Notify the on_error observer; its failures never change the response."""
        if self.on_error is None:
            return
        try:
            await _maybe_await(self.on_error(**details))
        except Exception:
            logger.exception("on_error hook raised")
