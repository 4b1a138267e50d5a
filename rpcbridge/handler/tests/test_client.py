"""
Tests for ProcedureClient against an in-process app.
"""

import httpx
import pytest

from rpcbridge.handler.client import ProcedureClient, ProcedureClientError
from rpcbridge.handler.config import HandlerConfig
from rpcbridge.handler.core.procedure_type import ProcedureType
from rpcbridge.handler.main import create_app


def make_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_query_and_mutation(main_app):
    async with make_client(main_app) as http:
        client = ProcedureClient(http, base_url="/trpc")

        assert await client.query("echo", {"a": [1, 2]}) == {"a": [1, 2]}
        assert await client.query("is_absent") is True
        assert await client.mutation("double", {"x": 21}) == 42


@pytest.mark.asyncio
async def test_error_envelope_is_raised(main_app):
    async with make_client(main_app) as http:
        client = ProcedureClient(http, base_url="/trpc")

        with pytest.raises(ProcedureClientError) as exc_info:
            await client.query("forbidden")

    assert exc_info.value.code == "FORBIDDEN"
    assert exc_info.value.status_code == 403
    assert str(exc_info.value) == "nope"


@pytest.mark.asyncio
async def test_batch_returns_data_and_errors_in_order(main_app):
    async with make_client(main_app) as http:
        client = ProcedureClient(http, base_url="/trpc")
        results = await client.batch(
            ProcedureType.QUERY,
            [("echo", 1), ("missing", None), ("sync.add", {"a": 2, "b": 3})],
        )

    assert results[0] == 1
    assert isinstance(results[1], ProcedureClientError)
    assert results[1].code == "NOT_FOUND"
    assert results[2] == 5


@pytest.mark.asyncio
async def test_mutation_batch(main_app):
    async with make_client(main_app) as http:
        client = ProcedureClient(http, base_url="/trpc")
        results = await client.batch(
            ProcedureType.MUTATION, [("double", {"x": 1}), ("double", {"x": 5})]
        )

    assert results == [2, 10]


@pytest.mark.asyncio
async def test_empty_batch_sends_nothing():
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: pytest.fail("sent")))
    client = ProcedureClient(http)

    assert await client.batch(ProcedureType.QUERY, []) == []


@pytest.mark.asyncio
async def test_request_level_batch_failure_raises(router):
    app = create_app(
        router,
        handler_config=HandlerConfig(_env_file=None, BATCHING_ENABLED=False),
        configure_logging=False,
    )
    async with make_client(app) as http:
        client = ProcedureClient(http, base_url="/trpc")

        with pytest.raises(ProcedureClientError) as exc_info:
            await client.batch(ProcedureType.QUERY, [("echo", 1), ("echo", 2)])

    assert exc_info.value.code == "INTERNAL_SERVER_ERROR"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(refuse), base_url="http://testserver"
    ) as http:
        client = ProcedureClient(http, base_url="/trpc")

        with pytest.raises(ProcedureClientError) as exc_info:
            await client.query("echo", 1)

    assert exc_info.value.shape is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_non_json_response_is_wrapped():
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        client = ProcedureClient(http, base_url="/trpc")

        with pytest.raises(ProcedureClientError) as exc_info:
            await client.mutation("double", {"x": 1})

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_subscriptions_cannot_be_sent():
    client = ProcedureClient(httpx.AsyncClient())

    with pytest.raises(ValueError):
        await client.batch(ProcedureType.SUBSCRIPTION, [("ticks", 1)])
