"""
Procedure error taxonomy.

Every failure that reaches the wire is a ProcedureError carrying one of the
ErrorCode values below. Anything else is normalized by get_error_from_unknown.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Error kinds understood by the transport."""

    PARSE_ERROR = "PARSE_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_SUPPORTED = "METHOD_NOT_SUPPORTED"
    TIMEOUT = "TIMEOUT"
    CONFLICT = "CONFLICT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    CLIENT_CLOSED_REQUEST = "CLIENT_CLOSED_REQUEST"


# JSON-RPC 2.0 style numeric codes used in the default error shape.
JSONRPC_CODES = {
    ErrorCode.PARSE_ERROR: -32700,
    ErrorCode.BAD_REQUEST: -32600,
    ErrorCode.INTERNAL_SERVER_ERROR: -32603,
    ErrorCode.UNAUTHORIZED: -32001,
    ErrorCode.FORBIDDEN: -32003,
    ErrorCode.NOT_FOUND: -32004,
    ErrorCode.METHOD_NOT_SUPPORTED: -32005,
    ErrorCode.TIMEOUT: -32008,
    ErrorCode.CONFLICT: -32009,
    ErrorCode.PRECONDITION_FAILED: -32012,
    ErrorCode.PAYLOAD_TOO_LARGE: -32013,
    ErrorCode.CLIENT_CLOSED_REQUEST: -32099,
}


class ProcedureError(Exception):
    """
    Base exception for everything the handler reports to a caller.

    Args:
        code: ErrorCode (or its string name)
        message: Human readable message. Defaults to the original error's
            message, then to the code name.
        original_error: The exception that caused this one, if any.
    """

    def __init__(
        self,
        code=ErrorCode.INTERNAL_SERVER_ERROR,
        message: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.code = ErrorCode(code)
        self.original_error = original_error
        if message is None and original_error is not None:
            message = str(original_error) or None
        self.message = message or self.code.value
        super().__init__(self.message)
        if original_error is not None:
            self.__cause__ = original_error

    @property
    def jsonrpc_code(self) -> int:
        return JSONRPC_CODES[self.code]

    def __repr__(self) -> str:
        return f"ProcedureError(code={self.code.value!r}, message={self.message!r})"


class ParseError(ProcedureError):
    """Raised when a request payload is not valid JSON."""

    def __init__(self, original_error: Optional[BaseException] = None):
        super().__init__(ErrorCode.PARSE_ERROR, original_error=original_error)


class MethodNotSupportedError(ProcedureError):
    """Raised when the HTTP method cannot be served over this transport."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(
            ErrorCode.METHOD_NOT_SUPPORTED, message=f"Unexpected request method {method}"
        )


class PayloadTooLargeError(ProcedureError):
    """Raised when the request body exceeds the configured limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            ErrorCode.PAYLOAD_TOO_LARGE, message=f"Request body exceeds {limit} bytes"
        )


def get_error_from_unknown(cause: BaseException) -> ProcedureError:
    """
    Normalize any exception into a ProcedureError.

    ProcedureErrors keep their code; everything else becomes an
    INTERNAL_SERVER_ERROR wrapping the original.
    """
    if isinstance(cause, ProcedureError):
        return cause
    return ProcedureError(ErrorCode.INTERNAL_SERVER_ERROR, original_error=cause)
