from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from famifirst.core.auth import AuthContext, require_auth
from famifirst.core.clock import Clock
from famifirst.core.db import get_db
from famifirst.core.deps import get_clock
from famifirst.routers.invitations import accept_invitation_with_registration
from famifirst.schemas.auth import (
    LoginRequest,
    MembershipSummary,
    ProfileResponse,
    RegisterRequest,
    SessionResponse,
    UserResponse,
)
from famifirst.schemas.invitations import AcceptWithRegistrationRequest, AcceptWithRegistrationResponse
from famifirst.services.accounts import login_user, register_user
from famifirst.services.identity import list_memberships, require_user

router = APIRouter(prefix="/v1", tags=["auth"])


@router.post("/auth/register", response_model=SessionResponse, status_code=201)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    user, token = register_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        family_name=payload.family_name,
        now=clock.now(),
    )
    return SessionResponse(user=UserResponse.from_model(user), session_token=token)


@router.post("/auth/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    user, token = login_user(db, email=payload.email, password=payload.password, now=clock.now())
    return SessionResponse(user=UserResponse.from_model(user), session_token=token)


@router.post("/auth/register-invite", response_model=AcceptWithRegistrationResponse, status_code=201)
def register_with_invite(
    payload: AcceptWithRegistrationRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Alias of POST /v1/invites/accept-register for signup forms."""
    return accept_invitation_with_registration(payload, db, clock)


@router.get("/me", response_model=ProfileResponse)
def get_me(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_auth),
):
    """Returns the authenticated user's profile and family memberships."""
    user = require_user(db, ctx.user_id)
    return ProfileResponse(
        user=UserResponse.from_model(user),
        memberships=[
            MembershipSummary(family_id=family.id, family_name=family.name, role=member.role.value)
            for member, family in list_memberships(db, user.id)
        ],
    )
