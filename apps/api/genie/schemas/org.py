"""Organization-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from genie.db.enums import Role


class OrgCreate(BaseModel):
    """Request schema for creating an organization."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class OrgUpdate(BaseModel):
    """Partial update; only provided fields are applied."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class OrgRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrgMembershipRead(BaseModel):
    """One of the actor's organizations, with the actor's role."""

    organization_id: UUID
    user_id: UUID
    role: Role
    organization: OrgRead

    model_config = {"from_attributes": True}


class MemberUser(BaseModel):
    id: UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class OrgMemberRead(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    role: Role
    created_at: datetime
    user: MemberUser | None = None

    model_config = {"from_attributes": True}


class OrgMemberUpdate(BaseModel):
    user_id: UUID
    role: Role


class OrgMemberRemove(BaseModel):
    user_id: UUID


class InviteCreate(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()
