"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .envelope import CallOutcome, ErrorEnvelope, ResponseMeta, ResultData, ResultEnvelope
from .request import HTTPRequest
from .result import HTTPResponse

__all__ = [
    "CallOutcome",
    "ErrorEnvelope",
    "HTTPRequest",
    "HTTPResponse",
    "ResponseMeta",
    "ResultData",
    "ResultEnvelope",
]
