"""
Procedure registry.

Maps (kind, path) to a resolver and owns the pieces of per-router policy the
request handler depends on: error shaping and the data transformer.
"""

import functools
import inspect
import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import TypeAdapter, ValidationError
from starlette.concurrency import run_in_threadpool

from ..core.exceptions import ErrorCode, ProcedureError
from ..core.http_status import get_status_from_code
from ..core.inputs import ABSENT
from ..core.procedure_type import ProcedureType
from ..core.transformer import CombinedDataTransformer, get_combined_transformer

logger = logging.getLogger("rpcbridge.router")


class RouterProtocol(Protocol):
    transformer: CombinedDataTransformer
    # Adds a formatted traceback to default error shapes.
    include_stack: bool

    async def call_procedure(
        self, *, ctx: Any, path: str, input: Any, kind: ProcedureType
    ) -> Any: ...

    def get_error_shape(
        self,
        *,
        error: ProcedureError,
        kind: ProcedureType,
        path: Optional[str],
        input: Any,
        ctx: Any,
    ) -> Any: ...


def _is_async_callable(obj: Any) -> bool:
    while isinstance(obj, functools.partial):
        obj = obj.func
    return inspect.iscoroutinefunction(obj) or (
        callable(obj) and inspect.iscoroutinefunction(getattr(obj, "__call__", None))
    )


def default_error_shape(
    error: ProcedureError, path: Optional[str], include_stack: bool = False
) -> Dict[str, Any]:
    """
    Build the wire representation of an error.

    Returns:
        {"message": str, "code": <JSON-RPC number>,
         "data": {"code": <name>, "httpStatus": int, "path": str | None}}
    """
    data: Dict[str, Any] = {
        "code": error.code.value,
        "httpStatus": get_status_from_code(error.code),
        "path": path,
    }
    if include_stack:
        data["stack"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    return {"message": error.message, "code": error.jsonrpc_code, "data": data}


@dataclass
class Procedure:
    """A registered resolver, optionally validating its input."""

    path: str
    kind: ProcedureType
    resolver: Callable[..., Any]
    input_type: Any = None
    _adapter: Optional[TypeAdapter] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.input_type is not None:
            self._adapter = TypeAdapter(self.input_type)

    def parse_input(self, raw_input: Any) -> Any:
        if self._adapter is None:
            return raw_input
        try:
            return self._adapter.validate_python(None if raw_input is ABSENT else raw_input)
        except ValidationError as exc:
            raise ProcedureError(
                ErrorCode.BAD_REQUEST,
                message=f'Input validation failed for "{self.path}"',
                original_error=exc,
            ) from exc

    async def call(self, ctx: Any, raw_input: Any) -> Any:
        value = self.parse_input(raw_input)
        if _is_async_callable(self.resolver):
            return await self.resolver(ctx, value)
        # Blocking resolvers must not stall sibling calls on the event loop.
        result = await run_in_threadpool(self.resolver, ctx, value)
        if inspect.isawaitable(result):
            # Sync wrappers that hand back a coroutine.
            result = await result
        return result


class ProcedureRouter:
    """
    In-memory procedure registry.

    Usage:
        router = ProcedureRouter()

        @router.query("user.get", input=UserQuery)
        async def get_user(ctx, input: UserQuery):
            ...
    """

    def __init__(
        self,
        transformer=None,
        format_error: Optional[Callable[..., Any]] = None,
        include_stack: bool = False,
    ):
        self.transformer = get_combined_transformer(transformer)
        self.format_error = format_error
        self.include_stack = include_stack
        self._procedures: Dict[ProcedureType, Dict[str, Procedure]] = {
            ProcedureType.QUERY: {},
            ProcedureType.MUTATION: {},
            ProcedureType.SUBSCRIPTION: {},
        }

    def add_procedure(
        self,
        kind: ProcedureType,
        path: str,
        resolver: Callable[..., Any],
        input_type: Any = None,
    ) -> Procedure:
        kind = ProcedureType(kind)
        if kind not in self._procedures:
            raise ValueError(f"Cannot register a procedure of kind {kind.value!r}")
        if not path or "," in path:
            raise ValueError(f"Invalid procedure path: {path!r}")
        table = self._procedures[kind]
        if path in table:
            raise ValueError(f'Duplicate {kind.value} procedure "{path}"')

        procedure = Procedure(path=path, kind=kind, resolver=resolver, input_type=input_type)
        table[path] = procedure
        logger.debug(f"Registered {kind.value} procedure {path}")
        return procedure

    def _decorator(self, kind: ProcedureType, path: str, input_type: Any):
        def register(resolver: Callable[..., Any]) -> Callable[..., Any]:
            self.add_procedure(kind, path, resolver, input_type=input_type)
            return resolver

        return register

    def query(self, path: str, input: Any = None):
        return self._decorator(ProcedureType.QUERY, path, input)

    def mutation(self, path: str, input: Any = None):
        return self._decorator(ProcedureType.MUTATION, path, input)

    def subscription(self, path: str, input: Any = None):
        return self._decorator(ProcedureType.SUBSCRIPTION, path, input)

    def get_procedure(self, kind: ProcedureType, path: str) -> Optional[Procedure]:
        return self._procedures.get(kind, {}).get(path)

    async def call_procedure(
        self, *, ctx: Any, path: str, input: Any, kind: ProcedureType
    ) -> Any:
        """
        Run the procedure registered for (kind, path).

        Raises:
            ProcedureError: NOT_FOUND when nothing is registered, BAD_REQUEST
                when input validation fails, or whatever the resolver raises
        """
        procedure = self.get_procedure(kind, path)
        if procedure is None:
            raise ProcedureError(
                ErrorCode.NOT_FOUND,
                message=f'No "{ProcedureType(kind).value}"-procedure on path "{path}"',
            )
        return await procedure.call(ctx, input)

    def get_error_shape(
        self,
        *,
        error: ProcedureError,
        kind: ProcedureType,
        path: Optional[str],
        input: Any,
        ctx: Any,
    ) -> Any:
        shape = default_error_shape(error, path, include_stack=self.include_stack)
        if self.format_error is None:
            return shape
        return self.format_error(
            shape=shape, error=error, kind=kind, path=path, input=input, ctx=ctx
        )
