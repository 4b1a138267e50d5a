"""
Dependency Injection for the procedure endpoint.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated, Any, Callable, Optional

from fastapi import Depends, Request

from ..config import HandlerConfig
from ..services.dispatcher import RequestHandler


def get_request_handler(request: Request) -> RequestHandler:
    return request.app.state.request_handler


def get_handler_config(request: Request) -> HandlerConfig:
    return request.app.state.handler_config


def get_context_factory(request: Request) -> Optional[Callable[[], Any]]:
    """
    Bind the app's create_context(request) to this request.

    The dispatcher calls the returned factory exactly once, and only after
    the request passed its validation gates.
    """
    create_context = request.app.state.create_context
    if create_context is None:
        return None

    def factory() -> Any:
        return create_context(request)

    return factory


# Dependency Type Aliases
RequestHandlerDep = Annotated[RequestHandler, Depends(get_request_handler)]
HandlerConfigDep = Annotated[HandlerConfig, Depends(get_handler_config)]
ContextFactoryDep = Annotated[Optional[Callable[[], Any]], Depends(get_context_factory)]
