"""Contact form endpoint.

POST /support — {email, subject, message}; logged for the support inbox.
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, EmailStr, Field, field_validator

from src.mp_common.response import ApiResponse, success_response

logger = logging.getLogger("mp.support")

router = APIRouter(tags=["support"])


class SupportRequest(BaseModel):
    email: EmailStr
    subject: str = Field(..., max_length=200)
    message: str = Field(..., max_length=5000)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("subject", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


@router.post("/support", summary="Send a message to support")
async def submit_support_request(request: Request, body: SupportRequest) -> ApiResponse:
    logger.info(
        "Support request email=%s subject=%r length=%d",
        body.email,
        body.subject,
        len(body.message),
    )
    return success_response({"ok": True}, request)
