"""
Input extraction and per-call input decoding.
"""

import json
import re
from typing import Any, Callable, Dict

from .exceptions import ErrorCode, ParseError, ProcedureError
from .procedure_type import ProcedureType, first_query_value

# Batch input keys are positional indexes written as canonical decimals.
BATCH_INDEX_PATTERN = re.compile(r"^(0|[1-9][0-9]*)$")


class _Absent:
    """Marks input that was not sent at all, as opposed to JSON null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return "ABSENT"


ABSENT = _Absent()


def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_json(text) -> Any:
    """Strict JSON parsing (NaN and Infinity are rejected)."""
    return json.loads(text, parse_constant=_reject_constant)


def extract_raw_input(request, kind: ProcedureType) -> Any:
    """
    Pull the still-encoded input out of the request.

    Queries read the ``input`` query parameter; every other kind reads the
    body. String bodies are parsed as JSON, structured bodies pass through.

    Raises:
        ParseError: the payload is not valid JSON
    """
    try:
        if kind is ProcedureType.QUERY:
            if "input" not in request.query:
                return ABSENT
            return parse_json(first_query_value(request.query, "input"))

        body = request.body
        if body is None or body is ABSENT:
            return ABSENT
        if isinstance(body, (str, bytes)):
            if not body.strip():
                return ABSENT
            return parse_json(body)
        return body
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors;
        # deeply nested documents exhaust the decoder's recursion limit.
        raise ParseError(original_error=exc) from exc


def deserialize_input_value(raw_value: Any, deserialize: Callable[[Any], Any]) -> Any:
    if raw_value is ABSENT:
        return raw_value
    return deserialize(raw_value)


def parse_batch_index(key: Any) -> int:
    if not isinstance(key, str) or not BATCH_INDEX_PATTERN.match(key):
        raise ProcedureError(
            ErrorCode.BAD_REQUEST,
            message=f'Batch input key "{key}" is not a positional index',
        )
    return int(key)


def get_call_inputs(
    raw_input: Any, *, is_batch: bool, deserialize: Callable[[Any], Any]
) -> Dict[int, Any]:
    """
    Decode the input of every call, keyed by positional index.

    A single call deserializes the whole raw input. A batch call expects an
    object whose keys are decimal indexes; each value is decoded on its own.

    Raises:
        ProcedureError: BAD_REQUEST when the batch input is not an object or
            carries a key that is not a positional index
    """
    if not is_batch:
        return {0: deserialize_input_value(raw_input, deserialize)}

    if not isinstance(raw_input, dict):
        raise ProcedureError(
            ErrorCode.BAD_REQUEST,
            message='"input" needs to be an object when doing a batch call',
        )

    inputs: Dict[int, Any] = {}
    for key, raw_value in raw_input.items():
        inputs[parse_batch_index(key)] = deserialize_input_value(raw_value, deserialize)
    return inputs
