"""Project schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from genie.db.enums import Role
from genie.schemas.org import MemberUser


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class ProjectRead(BaseModel):
    id: UUID
    organization_id: UUID
    name: str
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectMemberCreate(BaseModel):
    user_id: UUID
    role: Role = Role.MEMBER


class ProjectMemberRemove(BaseModel):
    user_id: UUID


class ProjectMemberRead(BaseModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    role: Role
    created_at: datetime
    user: MemberUser | None = None

    model_config = {"from_attributes": True}
