"""
Data transformers applied to payloads at the wire boundary.

The input side deserializes decoded JSON into procedure input; the output
side serializes procedure output (and error shapes) into JSON-ready values.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union


class DataTransformer(Protocol):
    def serialize(self, value: Any) -> Any: ...

    def deserialize(self, value: Any) -> Any: ...


class IdentityTransformer:
    """Pass-through transformer for plain JSON payloads."""

    def serialize(self, value: Any) -> Any:
        return value

    def deserialize(self, value: Any) -> Any:
        return value


@dataclass(frozen=True)
class CombinedDataTransformer:
    """Separate transformers for the request (input) and response (output) sides."""

    input: DataTransformer = field(default_factory=IdentityTransformer)
    output: DataTransformer = field(default_factory=IdentityTransformer)


def get_combined_transformer(
    transformer: Optional[Union[DataTransformer, CombinedDataTransformer]] = None,
) -> CombinedDataTransformer:
    """Use one transformer for both sides unless a combined pair is given."""
    if transformer is None:
        return CombinedDataTransformer()
    if isinstance(transformer, CombinedDataTransformer):
        return transformer
    return CombinedDataTransformer(input=transformer, output=transformer)
