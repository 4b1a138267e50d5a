import asyncio

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from rpcbridge.handler.config import HandlerConfig
from rpcbridge.handler.core.exceptions import ErrorCode, ProcedureError
from rpcbridge.handler.core.inputs import ABSENT
from rpcbridge.handler.main import create_app
from rpcbridge.handler.services.router import ProcedureRouter


class DoubleInput(BaseModel):
    x: int


def build_router(**kwargs) -> ProcedureRouter:
    router = ProcedureRouter(**kwargs)

    @router.query("echo")
    async def echo(ctx, input):
        return input

    @router.query("is_absent")
    async def is_absent(ctx, input):
        return input is ABSENT

    @router.query("whoami")
    async def whoami(ctx, input):
        return ctx

    @router.query("slow")
    async def slow(ctx, input):
        await asyncio.sleep(input)
        return input

    @router.query("boom")
    async def boom(ctx, input):
        raise RuntimeError("kaboom")

    @router.query("forbidden")
    async def forbidden(ctx, input):
        raise ProcedureError(ErrorCode.FORBIDDEN, message="nope")

    @router.query("sync.add")
    def add(ctx, input):
        return input["a"] + input["b"]

    @router.query("opaque")
    async def opaque(ctx, input):
        return object()

    @router.mutation("double", input=DoubleInput)
    async def double(ctx, input: DoubleInput):
        return input.x * 2

    @router.mutation("conflict")
    async def conflict(ctx, input):
        raise ProcedureError(ErrorCode.CONFLICT, message="already exists")

    @router.subscription("ticks")
    async def ticks(ctx, input):
        return 1

    return router


@pytest.fixture
def router_factory():
    return build_router


@pytest.fixture
def router():
    return build_router()


@pytest.fixture
def handler_config():
    return HandlerConfig(_env_file=None)


def create_context(request):
    return {"user": request.headers.get("x-user", "anonymous")}


@pytest.fixture
def main_app(router, handler_config):
    return create_app(
        router,
        create_context,
        handler_config=handler_config,
        configure_logging=False,
    )


@pytest.fixture
def client(main_app):
    with TestClient(main_app) as test_client:
        yield test_client
