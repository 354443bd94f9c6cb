"""Authentication-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class SignUpCandidateRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class SignUpRequest(BaseModel):
    email: EmailStr
    secret: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class UserRead(BaseModel):
    id: UUID
    name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCandidateRead(BaseModel):
    """Candidate without its secret."""
    id: UUID
    email: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionRead(BaseModel):
    id: UUID
    user_id: UUID
    valid: bool
    created_at: datetime
    invalidated_at: datetime | None = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Session plus the issued credentials (also set as cookies)."""
    session: SessionRead
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class CurrentUser(BaseModel):
    """
    Authenticated actor context.

    Returned by the get_current_user dependency; every service
    receives the actor through this object.
    """
    user_id: UUID
    email: str
    name: str
    session_id: UUID
