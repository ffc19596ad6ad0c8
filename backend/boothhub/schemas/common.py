"""
Response envelope shared by every endpoint.

    {"success": true,  "data": ..., "meta": {"timestamp": ...}}
    {"success": false, "error": {"code", "message", "details"?}, "meta": {...}}

Field names go over the wire in camelCase; requests accept either form.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from boothhub.core.utils import utcnow

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    meta: dict[str, Any] = {}


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
    meta: dict[str, Any] = {}


def response_meta(**extra: Any) -> dict[str, Any]:
    return {"timestamp": utcnow().isoformat(), **extra}


def ok(data: Any = None, message: Optional[str] = None, **meta: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data, "meta": response_meta(**meta)}
    if message:
        body["message"] = message
    return body


def error_payload(code: str, message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error, "meta": response_meta()}
