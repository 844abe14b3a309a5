from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.config import CODE_LENGTH


class RequestCodeRequest(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"email": "eleanor@example.com", "mode": "login"}},
    )

    email: EmailStr
    mode: Literal["login", "signup"] = "login"


class VerifyCodeRequest(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"email": "eleanor@example.com", "code": "4821"}},
    )

    email: EmailStr
    code: str = Field(..., pattern=rf"^\d{{{CODE_LENGTH}}}$")


class MagicLinkRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    origin: Optional[str] = Field(None, max_length=2048)


class SuccessResponse(BaseModel):
    success: bool = True


class VerifyCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    session_fragment: str = Field(..., alias="sessionFragment")
    verification_type: str = Field("magiclink", alias="verificationType")
    role: Literal["admin", "customer"] = "customer"


class SessionRead(BaseModel):
    email: str
    role: Literal["admin", "customer"]
