"""
Handler response model.

Standardizes the output of the request pipeline.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class HTTPResponse(BaseModel):
    """
    Status, headers and body produced for one HTTP request.

    Used to decouple the pipeline from FastAPI Response objects.
    """

    status: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
