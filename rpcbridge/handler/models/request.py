"""
Incoming request model.

Decouples the dispatcher from the web framework's Request object.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator
from starlette.datastructures import QueryParams


class HTTPRequest(BaseModel):
    """
    Immutable view of one HTTP request.

    `query` accepts a raw query string, a mapping or a QueryParams instance
    and is always stored as a multi-valued QueryParams (``get`` / ``in``).
    `body` is the raw text, an already decoded value, or None when absent.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    query: QueryParams = Field(default_factory=QueryParams)
    body: Any = None

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        return value.upper()

    @field_validator("query", mode="before")
    @classmethod
    def _coerce_query(cls, value: Any) -> QueryParams:
        if isinstance(value, QueryParams):
            return value
        if value is None:
            return QueryParams()
        return QueryParams(value)
