"""
Services package.

Provides the procedure registry and the request pipeline.
"""

from .dispatcher import RequestHandler
from .responder import ResponseBuilder
from .router import Procedure, ProcedureRouter, RouterProtocol

__all__ = [
    "Procedure",
    "ProcedureRouter",
    "RequestHandler",
    "ResponseBuilder",
    "RouterProtocol",
]
