"""
Handler configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import Optional

from pydantic import Field

from rpcbridge.common.core.config import BaseAppConfig


class HandlerConfig(BaseAppConfig):
    """
    Configuration management for the procedure HTTP handler.
    """

    # Server settings
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:8000", description="Listen address")
    ENDPOINT_PREFIX: str = Field(default="/trpc", description="Path prefix of the procedure route")

    # Request handling
    BATCHING_ENABLED: bool = Field(default=True, description="Accept ?batch=1 requests")
    MAX_BODY_SIZE: Optional[int] = Field(
        default=None, ge=0, description="Maximum request body size in bytes (None = unlimited)"
    )

    # Error shaping
    INCLUDE_ERROR_STACK: bool = Field(
        default=False, description="Expose formatted tracebacks in error shapes"
    )


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = HandlerConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
