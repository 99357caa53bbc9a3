"""API response envelope.

Every endpoint answers with:
{
    "code": 0,           // 0 = success, otherwise an AppError code (see errors.py)
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "req_..."
}

request_id is the one RequestLogMiddleware put on request.state, so a response
can be matched against the access log line.
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.pm_common.datetime_utils import utc_now


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


def bind_request(resp: ApiResponse, request: Request) -> ApiResponse:
    """Stamp the middleware's request_id onto an envelope (kept as is when absent)."""
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def respond(request: Request, data: Any = None) -> ApiResponse:
    return bind_request(success_response(data), request)
