from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from famifirst.core.auth import AuthContext, require_auth
from famifirst.core.clock import Clock
from famifirst.core.db import get_db
from famifirst.core.deps import get_clock
from famifirst.schemas.auth import UserResponse
from famifirst.schemas.families import FamilyResponse
from famifirst.schemas.invitations import (
    AcceptWithRegistrationRequest,
    AcceptWithRegistrationResponse,
    InvitationPublicDetailsResponse,
)
from famifirst.services.families import list_members_with_users
from famifirst.services.invitations import accept_as_existing_user, accept_with_registration, get_public_details

router = APIRouter(prefix="/v1/invites", tags=["invitations"])


@router.get("/{token}/details", response_model=InvitationPublicDetailsResponse)
def get_invitation_details(
    token: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Public endpoint: anyone holding the token may look at the invitation."""
    details = get_public_details(db, token, clock.now())
    return InvitationPublicDetailsResponse(
        email=details.email,
        role=details.role,
        family_name=details.family_name,
        is_existing_user=details.is_existing_user,
        status=details.status,
        expires_at=details.expires_at,
    )


@router.post("/{token}/accept", response_model=FamilyResponse)
def accept_invitation(
    token: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ctx: AuthContext = Depends(require_auth),
):
    family = accept_as_existing_user(db, token=token, caller_user_id=ctx.user_id, now=clock.now())
    return FamilyResponse.from_rows(family, list_members_with_users(db, family.id))


@router.post("/accept-register", response_model=AcceptWithRegistrationResponse, status_code=201)
def accept_invitation_with_registration(
    payload: AcceptWithRegistrationRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = accept_with_registration(
        db,
        token=payload.token,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
        now=clock.now(),
    )
    return AcceptWithRegistrationResponse(
        user=UserResponse.from_model(result.user),
        session_token=result.session_token,
        family=FamilyResponse.from_rows(result.family, list_members_with_users(db, result.family.id)),
    )
