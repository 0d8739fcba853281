"""JSON envelope shared by every API endpoint.

    {"code": 0, "message": "success", "data": {...},
     "timestamp": "2026-04-02T09:30:00+00:00", "request_id": "req_1a2b3c4d5e6f"}

`code` is 0 on success and the AppError code otherwise, with `data` null.
The request_id matches the X-Request-ID header set by RequestLogMiddleware.
Binary endpoints (invoice PDF, CSV export) bypass the envelope.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def _envelope(code: int, message: str, data: Any, request: Request | None) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=data)
    if request is not None:
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    return _envelope(0, "success", data, request)


def error_response(code: int, message: str, request: Request | None = None) -> ApiResponse:
    return _envelope(code, message, None, request)
