import pytest
from starlette.datastructures import QueryParams

from rpcbridge.handler.core.procedure_type import (
    ProcedureType,
    get_procedure_type,
    is_batch_call,
    split_paths,
)


@pytest.mark.parametrize(
    "method, expected",
    [
        ("GET", ProcedureType.QUERY),
        ("POST", ProcedureType.MUTATION),
        ("PATCH", ProcedureType.SUBSCRIPTION),
        ("PUT", ProcedureType.UNKNOWN),
        ("DELETE", ProcedureType.UNKNOWN),
        ("OPTIONS", ProcedureType.UNKNOWN),
        ("get", ProcedureType.QUERY),
    ],
)
def test_get_procedure_type(method, expected):
    assert get_procedure_type(method) is expected


def test_only_query_and_mutation_are_servable():
    assert ProcedureType.QUERY.is_servable
    assert ProcedureType.MUTATION.is_servable
    assert not ProcedureType.SUBSCRIPTION.is_servable
    assert not ProcedureType.UNKNOWN.is_servable


@pytest.mark.parametrize(
    "query, expected",
    [
        ("batch=1", True),
        ("batch=1&input=%7B%7D", True),
        ("batch=true", False),
        ("batch=0", False),
        ("batch=1&batch=0", True),
        ("batch=0&batch=1", False),
        ("", False),
    ],
)
def test_is_batch_call_requires_literal_one(query, expected):
    assert is_batch_call(QueryParams(query)) is expected


def test_split_paths():
    assert split_paths("a.b", is_batch=False) == ["a.b"]
    assert split_paths("a,b.c,a", is_batch=True) == ["a", "b.c", "a"]
    # Commas are only separators in batch mode.
    assert split_paths("a,b", is_batch=False) == ["a,b"]
