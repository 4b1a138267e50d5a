"""
Call outcome and response envelope models.
"""

from typing import Any, Callable, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import ProcedureError


class CallOutcome(BaseModel):
    """Result of one procedure call: either `data` or `error` is meaningful."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: str
    input: Any = None
    data: Any = None
    error: Optional[ProcedureError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResultData(BaseModel):
    type: Literal["data"] = "data"
    data: Any = None


class ResultEnvelope(BaseModel):
    """Success envelope: ``{"id": null, "result": {"type": "data", "data": ...}}``."""

    id: None = None
    result: ResultData

    def to_wire(self, serialize: Callable[[Any], Any]) -> Dict[str, Any]:
        return {
            "id": self.id,
            "result": {"type": self.result.type, "data": serialize(self.result.data)},
        }


class ErrorEnvelope(BaseModel):
    """Error envelope: ``{"id": null, "error": <shaped error>}``."""

    id: None = None
    error: Any

    def to_wire(self, serialize: Callable[[Any], Any]) -> Dict[str, Any]:
        return {"id": self.id, "error": serialize(self.error)}


class ResponseMeta(BaseModel):
    """Optional headers and status override returned by the response-meta hook."""

    headers: Dict[str, str] = Field(default_factory=dict)
    status: Optional[int] = None
