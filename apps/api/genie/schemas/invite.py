"""Invitation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class InviteRead(BaseModel):
    """Invite as seen by the inviting owner (secret never echoed)."""
    id: UUID
    organization_id: UUID
    email: str
    user_id: UUID
    invited_by_user_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PendingInviteRead(BaseModel):
    """Invite as seen by the invitee."""
    id: UUID
    organization_id: UUID
    organization_name: str
    secret: str
    created_at: datetime


class InviteAction(BaseModel):
    secret: str = Field(..., min_length=1)
