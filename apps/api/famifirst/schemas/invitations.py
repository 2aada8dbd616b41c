from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from famifirst.models.entities import Invitation
from famifirst.schemas.auth import UserResponse
from famifirst.schemas.families import FamilyResponse


class InvitationCreate(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    role: str = "Member"


class InvitationResponse(BaseModel):
    id: int
    family_id: int
    email: str
    role: str
    status: str
    invited_by_user_id: int
    expires_at: datetime
    accepted_at: datetime | None
    accepted_by_user_id: int | None
    created_at: datetime

    @classmethod
    def from_model(cls, invitation: Invitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            family_id=invitation.family_id,
            email=invitation.email,
            role=invitation.role.value,
            status=invitation.status.value,
            invited_by_user_id=invitation.invited_by_user_id,
            expires_at=invitation.expires_at,
            accepted_at=invitation.accepted_at,
            accepted_by_user_id=invitation.accepted_by_user_id,
            created_at=invitation.created_at,
        )


class InvitationListResponse(BaseModel):
    items: list[InvitationResponse]


class InvitationPublicDetailsResponse(BaseModel):
    # No family id, invitation id or inviter id.
    email: str
    role: str
    family_name: str
    is_existing_user: bool
    status: str
    expires_at: datetime


class AcceptWithRegistrationRequest(BaseModel):
    token: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


class AcceptWithRegistrationResponse(BaseModel):
    user: UserResponse
    session_token: str
    family: FamilyResponse
