"""
Response envelope shared by every resource endpoint.

``{success, data?, error?, pagination?}``; fields that were never set are
left out of the JSON body.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class Pagination(BaseModel):
    total: int
    page: int
    limit: int


class ResponseEnvelope(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None
    model_config = ConfigDict(arbitrary_types_allowed=True)

    def as_content(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def ok(data: Any, pagination: Optional[Pagination] = None) -> ResponseEnvelope:
    if pagination is None:
        return ResponseEnvelope(success=True, data=data)
    return ResponseEnvelope(success=True, data=data, pagination=pagination)


def failure(error: str) -> ResponseEnvelope:
    return ResponseEnvelope(success=False, error=error)
