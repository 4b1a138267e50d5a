"""
Core logic package.

Provides request classification, input decoding and the error taxonomy.
"""

from .exceptions import ErrorCode, ProcedureError, get_error_from_unknown
from .inputs import ABSENT
from .procedure_type import ProcedureType
from .transformer import CombinedDataTransformer, DataTransformer, IdentityTransformer

__all__ = [
    "ABSENT",
    "CombinedDataTransformer",
    "DataTransformer",
    "ErrorCode",
    "IdentityTransformer",
    "ProcedureError",
    "ProcedureType",
    "get_error_from_unknown",
]
