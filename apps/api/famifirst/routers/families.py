from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.orm import Session

from famifirst.core.auth import AuthContext, require_auth
from famifirst.core.clock import Clock
from famifirst.core.db import get_db
from famifirst.core.deps import get_clock, get_notifier
from famifirst.schemas.families import (
    FamilyCreate,
    FamilyListResponse,
    FamilyMemberCreate,
    FamilyMemberListResponse,
    FamilyMemberResponse,
    FamilyMemberRoleUpdate,
    FamilyResponse,
    FamilyUpdate,
)
from famifirst.schemas.invitations import InvitationCreate, InvitationListResponse, InvitationResponse
from famifirst.services import families as family_service
from famifirst.services import invitations as invitation_service
from famifirst.services.access import require_family, require_family_member
from famifirst.services.identity import require_user
from famifirst.services.notifications import InvitationNotifier

router = APIRouter(prefix="/v1/families", tags=["families"])


def _family_response(db: Session, family) -> FamilyResponse:
    return FamilyResponse.from_rows(family, family_service.list_members_with_users(db, family.id))


@router.get("", response_model=FamilyListResponse)
def list_families(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_auth),
):
    families = family_service.list_families_for_user(db, ctx.user_id)
    return FamilyListResponse(items=[_family_response(db, item) for item in families])


@router.post("", response_model=FamilyResponse, status_code=201)
def create_family(
    payload: FamilyCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ctx: AuthContext = Depends(require_auth),
):
    family = family_service.create_family(db, name=payload.name, creator_id=ctx.user_id, now=clock.now())
    return _family_response(db, family)


@router.get("/{family_id}", response_model=FamilyResponse)
def get_family(
    family_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_auth),
):
    family = family_service.get_family(db, family_id, ctx.user_id)
    return _family_response(db, family)


@router.patch("/{family_id}", response_model=FamilyResponse)
def update_family(
    family_id: int,
    payload: FamilyUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ctx: AuthContext = Depends(require_auth),
):
    family = family_service.update_family(
        db,
        family_id,
        ctx.user_id,
        name=payload.name,
        currency=payload.currency,
        timezone=payload.timezone,
        now=clock.now(),
    )
    return _family_response(db, family)


@router.get("/{family_id}/members", response_model=FamilyMemberListResponse)
def list_members(
    family_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_auth),
):
    require_family(db, family_id)
    require_family_member(db, family_id, ctx.user_id)
    rows = family_service.list_members_with_users(db, family_id)
    return FamilyMemberListResponse(items=[FamilyMemberResponse.from_row(member, user) for member, user in rows])


@router.post("/{family_id}/members", response_model=FamilyMemberResponse, status_code=201)
def add_member(
    family_id: int,
    payload: FamilyMemberCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ctx: AuthContext = Depends(require_auth),
):
    member = family_service.add_member(
        db, family_id, ctx.user_id, email=payload.email, role=payload.role, now=clock.now()
    )
    return FamilyMemberResponse.from_row(member, require_user(db, member.user_id))


@router.delete("/{family_id}/members/{member_user_id}", status_code=204)
def remove_member(
    family_id: int,
    member_user_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_auth),
):
    family_service.remove_member(db, family_id, ctx.user_id, member_user_id=member_user_id)
    return Response(status_code=204)


@router.put("/{family_id}/members/{member_user_id}/role", response_model=FamilyMemberResponse)
def change_member_role(
    family_id: int,
    member_user_id: int,
    payload: FamilyMemberRoleUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_auth),
):
    member = family_service.change_member_role(
        db, family_id, ctx.user_id, member_user_id=member_user_id, new_role=payload.role
    )
    return FamilyMemberResponse.from_row(member, require_user(db, member.user_id))


@router.post("/{family_id}/invites", response_model=InvitationResponse, status_code=201)
def issue_invitation(
    family_id: int,
    payload: InvitationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: InvitationNotifier = Depends(get_notifier),
    ctx: AuthContext = Depends(require_auth),
):
    invitation = invitation_service.issue_invitation(
        db,
        family_id=family_id,
        invitee_email=payload.email,
        role=payload.role,
        requester_id=ctx.user_id,
        now=clock.now(),
        notifier=notifier,
        schedule=background_tasks.add_task,
    )
    return InvitationResponse.from_model(invitation)


@router.get("/{family_id}/invites", response_model=InvitationListResponse)
def list_invitations(
    family_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ctx: AuthContext = Depends(require_auth),
):
    invitations = invitation_service.list_family_invitations(
        db, family_id=family_id, requester_id=ctx.user_id, now=clock.now()
    )
    return InvitationListResponse(items=[InvitationResponse.from_model(item) for item in invitations])


@router.post("/{family_id}/invites/{invitation_id}/revoke", response_model=InvitationResponse)
def revoke_invitation(
    family_id: int,
    invitation_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    ctx: AuthContext = Depends(require_auth),
):
    invitation = invitation_service.revoke_invitation(
        db, family_id=family_id, invitation_id=invitation_id, requester_id=ctx.user_id, now=clock.now()
    )
    return InvitationResponse.from_model(invitation)
