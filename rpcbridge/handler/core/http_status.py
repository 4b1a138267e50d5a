"""
HTTP status mapping for error codes and response envelopes.
"""

from typing import Iterable, Optional

from fastapi import status

from .exceptions import ErrorCode, ProcedureError

HTTP_STATUS_BY_CODE = {
    ErrorCode.PARSE_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INTERNAL_SERVER_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.METHOD_NOT_SUPPORTED: status.HTTP_405_METHOD_NOT_ALLOWED,
    ErrorCode.TIMEOUT: status.HTTP_408_REQUEST_TIMEOUT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.PRECONDITION_FAILED: status.HTTP_412_PRECONDITION_FAILED,
    ErrorCode.PAYLOAD_TOO_LARGE: 413,
    ErrorCode.CLIENT_CLOSED_REQUEST: 499,
}


def get_status_from_code(code: ErrorCode) -> int:
    return HTTP_STATUS_BY_CODE.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def get_http_status_code(errors: Iterable[Optional[ProcedureError]]) -> int:
    """
    Derive the HTTP status for a set of call outcomes.

    `errors` is aligned with the calls; None marks a successful call.
    The first failing call decides the status, 200 when nothing failed.
    """
    for error in errors:
        if error is not None:
            return get_status_from_code(error.code)
    return status.HTTP_200_OK
