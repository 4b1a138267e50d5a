"""
Response assembly.

Turns call outcomes into envelopes, derives the HTTP status and headers,
applies the output transformer and serializes the body.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..core.exceptions import ErrorCode, ProcedureError
from ..core.http_status import get_http_status_code
from ..core.inputs import ABSENT
from ..core.procedure_type import ProcedureType
from ..models.envelope import (
    CallOutcome,
    ErrorEnvelope,
    ResponseMeta,
    ResultData,
    ResultEnvelope,
)
from ..models.result import HTTPResponse
from .router import RouterProtocol, default_error_shape

logger = logging.getLogger("rpcbridge.responder")

Envelope = Union[ResultEnvelope, ErrorEnvelope]

DEFAULT_HEADERS = {"Content-Type": "application/json"}


def merge_headers(base: Dict[str, str], extra: Dict[str, str]) -> Dict[str, str]:
    """Merge `extra` over `base`; keys compare case-insensitively and `extra` wins."""
    merged = dict(base)
    for key, value in extra.items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = value
    return merged


class ResponseBuilder:
    def __init__(
        self,
        router: RouterProtocol,
        response_meta: Optional[Callable[..., Any]] = None,
    ):
        self.router = router
        self.response_meta = response_meta

    def to_envelope(self, outcome: CallOutcome, kind: ProcedureType, ctx: Any) -> Envelope:
        if not outcome.ok:
            return ErrorEnvelope(
                error=self.router.get_error_shape(
                    error=outcome.error,
                    kind=kind,
                    path=outcome.path,
                    input=outcome.input,
                    ctx=ctx,
                )
            )
        return ResultEnvelope(result=ResultData(data=outcome.data))

    def build(
        self,
        *,
        outcomes: Sequence[CallOutcome],
        is_batch: bool,
        ctx: Any,
        paths: List[str],
        kind: ProcedureType,
    ) -> HTTPResponse:
        """
        Build the response for a request whose calls all ran.

        Raises:
            ProcedureError: the response-meta hook failed or the payload could
                not be serialized; the caller answers with a request-level error
        """
        envelopes = [self.to_envelope(outcome, kind, ctx) for outcome in outcomes]
        errors = [outcome.error for outcome in outcomes if not outcome.ok]
        status = get_http_status_code(outcome.error for outcome in outcomes)

        meta = self._get_meta(ctx=ctx, paths=paths, kind=kind, envelopes=envelopes, errors=errors)
        payload = envelopes if is_batch else envelopes[0]
        return self._end_response(payload, status, meta)

    def build_error(
        self,
        error: ProcedureError,
        *,
        ctx: Any,
        paths: Optional[List[str]],
        kind: ProcedureType,
    ) -> HTTPResponse:
        """
        Build the single top-level error response for a request-level failure.

        Never raises: hook or serialization failures fall back to defaults.
        """
        try:
            shape = self.router.get_error_shape(
                error=error, kind=kind, path=None, input=ABSENT, ctx=ctx
            )
        except Exception:
            logger.exception("Error formatter failed, using the default error shape")
            shape = default_error_shape(error, None)
        envelope = ErrorEnvelope(error=shape)
        status = get_http_status_code([error])

        try:
            meta = self._get_meta(
                ctx=ctx, paths=paths, kind=kind, envelopes=[envelope], errors=[error]
            )
        except ProcedureError:
            logger.exception("Ignoring response meta for error response")
            meta = ResponseMeta()

        try:
            return self._end_response(envelope, status, meta)
        except ProcedureError as exc:
            logger.error(
                f"Falling back to default error body: {exc.message}",
                extra={"error_code": error.code.value},
            )
            body = json.dumps(ErrorEnvelope(error=default_error_shape(error, None)).model_dump())
            return HTTPResponse(status=status, headers=dict(DEFAULT_HEADERS), body=body)

    def _get_meta(
        self,
        *,
        ctx: Any,
        paths: Optional[List[str]],
        kind: ProcedureType,
        envelopes: List[Envelope],
        errors: List[ProcedureError],
    ) -> ResponseMeta:
        if self.response_meta is None:
            return ResponseMeta()
        try:
            meta = self.response_meta(
                ctx=ctx, paths=paths, kind=kind, data=envelopes, errors=errors
            )
            if meta is None:
                return ResponseMeta()
            if isinstance(meta, ResponseMeta):
                return meta
            return ResponseMeta.model_validate(meta)
        except Exception as exc:
            raise ProcedureError(
                ErrorCode.INTERNAL_SERVER_ERROR,
                message="Response meta hook failed",
                original_error=exc,
            ) from exc

    def _end_response(
        self, payload: Union[Envelope, List[Envelope]], status: int, meta: ResponseMeta
    ) -> HTTPResponse:
        headers = merge_headers(DEFAULT_HEADERS, meta.headers)
        if meta.status is not None:
            status = meta.status

        serialize = self.router.transformer.output.serialize
        try:
            if isinstance(payload, list):
                wire: Any = [envelope.to_wire(serialize) for envelope in payload]
            else:
                wire = payload.to_wire(serialize)
            body = json.dumps(wire, allow_nan=False)
        except Exception as exc:
            raise ProcedureError(
                ErrorCode.INTERNAL_SERVER_ERROR,
                message="Unable to serialize response",
                original_error=exc,
            ) from exc

        return HTTPResponse(status=status, headers=headers, body=body)
