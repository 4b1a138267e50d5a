"""
Request classification.

Maps the HTTP method to a procedure kind and detects batch mode.
"""

from enum import Enum
from typing import List, Optional

from starlette.datastructures import QueryParams


class ProcedureType(str, Enum):
    """Kind of operation a request asks for."""

    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"
    UNKNOWN = "unknown"

    @property
    def is_servable(self) -> bool:
        """Only queries and mutations can be answered over plain HTTP."""
        return self in (ProcedureType.QUERY, ProcedureType.MUTATION)


HTTP_METHOD_PROCEDURE_TYPE_MAP = {
    "GET": ProcedureType.QUERY,
    "POST": ProcedureType.MUTATION,
    "PATCH": ProcedureType.SUBSCRIPTION,
}


def get_procedure_type(method: str) -> ProcedureType:
    return HTTP_METHOD_PROCEDURE_TYPE_MAP.get(method.upper(), ProcedureType.UNKNOWN)


def first_query_value(query: QueryParams, name: str) -> Optional[str]:
    """First value of a repeated query parameter (QueryParams.get returns the last)."""
    values = query.getlist(name)
    return values[0] if values else None


def is_batch_call(query: QueryParams) -> bool:
    """Batch mode is requested with the literal query flag ``batch=1``."""
    return first_query_value(query, "batch") == "1"


def split_paths(path: str, is_batch: bool) -> List[str]:
    """
    Split the route value into call paths.

    A batch route carries comma joined paths; order defines each call's index.
    """
    if is_batch:
        return path.split(",")
    return [path]
