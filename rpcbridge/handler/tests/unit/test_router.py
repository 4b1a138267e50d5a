import functools
import threading

import pytest
from pydantic import BaseModel, ValidationError

from rpcbridge.handler.core.exceptions import ErrorCode, ProcedureError
from rpcbridge.handler.core.inputs import ABSENT
from rpcbridge.handler.core.procedure_type import ProcedureType
from rpcbridge.handler.core.transformer import CombinedDataTransformer, IdentityTransformer
from rpcbridge.handler.services.router import ProcedureRouter, default_error_shape


class Point(BaseModel):
    x: int
    y: int = 0


@pytest.mark.asyncio
async def test_call_async_procedure(router):
    result = await router.call_procedure(
        ctx=None, path="echo", input={"a": 1}, kind=ProcedureType.QUERY
    )
    assert result == {"a": 1}


@pytest.mark.asyncio
async def test_sync_procedure_runs_off_the_event_loop():
    router = ProcedureRouter()
    seen = {}

    @router.query("thread")
    def which_thread(ctx, input):
        seen["thread"] = threading.current_thread()
        return "ok"

    result = await router.call_procedure(
        ctx=None, path="thread", input=ABSENT, kind=ProcedureType.QUERY
    )

    assert result == "ok"
    assert seen["thread"] is not threading.main_thread()


class AsyncResolver:
    async def __call__(self, ctx, input):
        return {"answer": 42, "input": input}


@pytest.mark.asyncio
async def test_async_callable_object_is_awaited():
    router = ProcedureRouter()
    router.add_procedure(ProcedureType.QUERY, "answer", AsyncResolver())

    result = await router.call_procedure(
        ctx=None, path="answer", input="q", kind=ProcedureType.QUERY
    )

    assert result == {"answer": 42, "input": "q"}


@pytest.mark.asyncio
async def test_partial_of_async_function_is_awaited():
    async def scaled(factor, ctx, input):
        return input * factor

    router = ProcedureRouter()
    router.add_procedure(ProcedureType.QUERY, "triple", functools.partial(scaled, 3))

    result = await router.call_procedure(
        ctx=None, path="triple", input=2, kind=ProcedureType.QUERY
    )

    assert result == 6


@pytest.mark.asyncio
async def test_sync_resolver_returning_a_coroutine_is_awaited():
    async def compute(value):
        return value + 1

    router = ProcedureRouter()
    router.add_procedure(ProcedureType.QUERY, "next", lambda ctx, input: compute(input))

    result = await router.call_procedure(
        ctx=None, path="next", input=1, kind=ProcedureType.QUERY
    )

    assert result == 2


@pytest.mark.asyncio
async def test_missing_procedure_raises_not_found(router):
    with pytest.raises(ProcedureError) as exc_info:
        await router.call_procedure(
            ctx=None, path="missing", input=ABSENT, kind=ProcedureType.QUERY
        )

    assert exc_info.value.code is ErrorCode.NOT_FOUND
    assert exc_info.value.message == 'No "query"-procedure on path "missing"'


@pytest.mark.asyncio
async def test_procedure_is_looked_up_by_kind(router):
    # "echo" is a query; calling it as a mutation must not find it.
    with pytest.raises(ProcedureError) as exc_info:
        await router.call_procedure(
            ctx=None, path="echo", input=ABSENT, kind=ProcedureType.MUTATION
        )

    assert exc_info.value.code is ErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_input_is_validated_against_registered_type():
    router = ProcedureRouter()

    @router.mutation("move", input=Point)
    async def move(ctx, input: Point):
        return input.x + input.y

    assert await router.call_procedure(
        ctx=None, path="move", input={"x": 2, "y": 3}, kind=ProcedureType.MUTATION
    ) == 5

    with pytest.raises(ProcedureError) as exc_info:
        await router.call_procedure(
            ctx=None, path="move", input={"y": "nope"}, kind=ProcedureType.MUTATION
        )
    assert exc_info.value.code is ErrorCode.BAD_REQUEST
    assert isinstance(exc_info.value.original_error, ValidationError)


@pytest.mark.asyncio
async def test_absent_input_fails_required_validation():
    router = ProcedureRouter()
    router.add_procedure(ProcedureType.QUERY, "count", lambda ctx, value: value, input_type=int)

    with pytest.raises(ProcedureError) as exc_info:
        await router.call_procedure(
            ctx=None, path="count", input=ABSENT, kind=ProcedureType.QUERY
        )

    assert exc_info.value.code is ErrorCode.BAD_REQUEST


def test_duplicate_registration_is_rejected(router):
    with pytest.raises(ValueError, match="Duplicate"):
        router.add_procedure(ProcedureType.QUERY, "echo", lambda ctx, value: value)


@pytest.mark.parametrize("path", ["", "a,b"])
def test_invalid_paths_are_rejected(path):
    with pytest.raises(ValueError):
        ProcedureRouter().add_procedure(ProcedureType.QUERY, path, lambda ctx, value: value)


def test_unknown_kind_cannot_be_registered():
    with pytest.raises(ValueError):
        ProcedureRouter().add_procedure(ProcedureType.UNKNOWN, "x", lambda ctx, value: value)


def test_default_error_shape():
    error = ProcedureError(ErrorCode.NOT_FOUND, message="gone")

    assert default_error_shape(error, "user.get") == {
        "message": "gone",
        "code": -32004,
        "data": {"code": "NOT_FOUND", "httpStatus": 404, "path": "user.get"},
    }


def test_error_shape_includes_stack_when_enabled():
    router = ProcedureRouter(include_stack=True)
    try:
        raise ProcedureError(ErrorCode.BAD_REQUEST, message="broken")
    except ProcedureError as exc:
        shape = router.get_error_shape(
            error=exc, kind=ProcedureType.QUERY, path=None, input=ABSENT, ctx=None
        )

    assert "ProcedureError: broken" in shape["data"]["stack"]


def test_custom_error_formatter_receives_default_shape():
    captured = {}

    def format_error(*, shape, error, kind, path, input, ctx):
        captured.update(kind=kind, input=input, ctx=ctx)
        return {**shape, "data": {**shape["data"], "tenant": ctx["tenant"]}}

    router = ProcedureRouter(format_error=format_error)
    shape = router.get_error_shape(
        error=ProcedureError(ErrorCode.FORBIDDEN),
        kind=ProcedureType.MUTATION,
        path="doc.delete",
        input={"id": 1},
        ctx={"tenant": "acme"},
    )

    assert shape["data"]["tenant"] == "acme"
    assert shape["data"]["code"] == "FORBIDDEN"
    assert captured == {"kind": ProcedureType.MUTATION, "input": {"id": 1}, "ctx": {"tenant": "acme"}}


def test_single_transformer_is_used_for_both_sides():
    transformer = IdentityTransformer()
    router = ProcedureRouter(transformer=transformer)

    assert router.transformer.input is transformer
    assert router.transformer.output is transformer


def test_combined_transformer_is_kept():
    combined = CombinedDataTransformer()
    assert ProcedureRouter(transformer=combined).transformer is combined
