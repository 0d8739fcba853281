"""Pydantic request/response schemas for buyer accounts and auth tokens."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class SignupRequest(BaseModel):
    name: str = Field(..., max_length=100)
    email: EmailStr
    password: str = Field(..., max_length=128)
    phone: str | None = Field(None, max_length=32)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        # Trimmed before hashing, so login must trim the same way.
        v = v.strip()
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, v: str | None) -> str | None:
        return (v or "").strip() or None


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    user_id: str
    email: str
    name: str


class SignupResponse(UserInfo):
    created_at: str


class AdminUserOut(UserInfo):
    is_active: bool


class AdminUserPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(..., alias="isActive")


class MeResponse(UserInfo):
    phone: str | None
    is_seller: bool
    seller_slug: str | None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserInfo


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int


class CsrfTokenResponse(BaseModel):
    csrf_token: str
    header_name: str
