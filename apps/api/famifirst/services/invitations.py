"""
Family invitation lifecycle.

An invitation moves pending -> accepted | expired | revoked and never leaves
a terminal state. Every transition is a compare-and-swap on `status`, so of
two racing writers exactly one observes `pending` and commits; the other gets
Conflict. Expiry is evaluated lazily: any operation that touches a pending,
overdue invitation first persists the `expired` transition and then fails.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from famifirst.core.config import settings
from famifirst.core.db import unit_of_work
from famifirst.core.errors import Conflict, Expired, IntegrityViolation, NotFound, PermissionDenied
from famifirst.core.logging import get_logger, token_hint
from famifirst.core.security import create_session_token
from famifirst.models.entities import Family, Invitation, InvitationStatusEnum, User
from famifirst.services.access import (
    is_member,
    require_assignable_role,
    require_family,
    require_primary_user,
)
from famifirst.services.families import append_membership
from famifirst.services.identity import create_user, find_user_by_email, normalize_email, require_user
from famifirst.services.notifications import InvitationNotice, InvitationNotifier, dispatch_invitation_notice

logger = get_logger(__name__)

# 32 random bytes, hex encoded: 256 bits of entropy.
TOKEN_BYTES = 32


@dataclass(frozen=True)
class PublicInvitationDetails:
    email: str
    role: str
    family_name: str
    is_existing_user: bool
    status: str
    expires_at: datetime


@dataclass(frozen=True)
class RegistrationResult:
    user: User
    session_token: str
    family: Family


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def _transition(
    db: Session,
    invitation_id: int,
    target: InvitationStatusEnum,
    now: datetime,
    **values,
) -> bool:
    result = db.execute(
        update(Invitation)
        .where(Invitation.id == invitation_id, Invitation.status == InvitationStatusEnum.pending)
        .values(status=target, updated_at=now, **values)
    )
    return result.rowcount == 1


def reconcile_expiry(db: Session, invitation: Invitation, now: datetime) -> Invitation:
    """
    Return the invitation as it stands at `now`.

    A pending invitation past its deadline is flipped to expired and the flip
    is committed on its own, so it survives the caller's failure.
    """
    if invitation.status != InvitationStatusEnum.pending or invitation.expires_at >= now:
        return invitation

    with unit_of_work(db):
        flipped = _transition(db, invitation.id, InvitationStatusEnum.expired, now)
    db.refresh(invitation)
    if flipped:
        logger.info("Invitation %s expired (deadline %s)", invitation.id, invitation.expires_at.isoformat())
    return invitation


def _require_pending(invitation: Invitation) -> None:
    if invitation.status == InvitationStatusEnum.pending:
        return
    if invitation.status == InvitationStatusEnum.expired:
        raise Expired("Invitation has expired.")
    if invitation.status == InvitationStatusEnum.revoked:
        raise Conflict("Invitation has been revoked.")
    raise Conflict("Invitation has already been accepted.")


def _load_by_token(db: Session, token: str) -> Invitation:
    invitation = None
    if token:
        invitation = db.execute(select(Invitation).where(Invitation.token == token)).scalar_one_or_none()
    if invitation is None:
        raise NotFound("Invitation not found, invalid, or already processed.")
    return invitation


def _require_invited_family(db: Session, invitation: Invitation, *, for_update: bool = False) -> Family:
    try:
        return require_family(db, invitation.family_id, for_update=for_update)
    except NotFound:
        logger.error("Invitation %s points at missing family %s", invitation.id, invitation.family_id)
        raise IntegrityViolation("Family associated with the invitation not found.") from None


def _claim(db: Session, invitation: Invitation, user_id: int, now: datetime) -> None:
    accepted = _transition(
        db,
        invitation.id,
        InvitationStatusEnum.accepted,
        now,
        accepted_at=now,
        accepted_by_user_id=user_id,
    )
    if not accepted:
        raise Conflict("Invitation cannot be processed (status changed).")


def issue_invitation(
    db: Session,
    *,
    family_id: int,
    invitee_email: str,
    role: str,
    requester_id: int,
    now: datetime,
    notifier: InvitationNotifier,
    schedule: Callable[..., None] | None = None,
) -> Invitation:
    """
    Create a pending invitation and hand its notice to the notifier.

    The notice goes out only after the invitation is committed. When `schedule`
    is given (e.g. `BackgroundTasks.add_task`) the dispatch is deferred to it
    instead of running in the caller.
    """
    email = normalize_email(invitee_email)
    assigned = require_assignable_role(role)
    family = require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "send invitations")

    existing_user = find_user_by_email(db, email)
    if existing_user is not None and is_member(db, family_id, existing_user.id):
        raise Conflict(f"User with email {email} is already a member of this family.")

    pending = db.execute(
        select(Invitation).where(
            Invitation.family_id == family_id,
            Invitation.email == email,
            Invitation.status == InvitationStatusEnum.pending,
        )
    ).scalar_one_or_none()
    duplicate_message = f"An invitation is already pending for {email} for this family."
    if pending is not None and reconcile_expiry(db, pending, now).status == InvitationStatusEnum.pending:
        raise Conflict(duplicate_message)

    invitation = Invitation(
        family_id=family_id,
        email=email,
        role=assigned,
        invited_by_user_id=requester_id,
        token=generate_token(),
        status=InvitationStatusEnum.pending,
        expires_at=now + timedelta(days=settings.invitation_ttl_days),
        created_at=now,
        updated_at=now,
    )
    # The partial unique index on pending (family_id, email) settles races here.
    with unit_of_work(db, conflict_message=duplicate_message):
        db.add(invitation)

    logger.info("Invitation %s issued for family %s (%s)", invitation.id, family_id, token_hint(invitation.token))
    inviter = require_user(db, requester_id)
    notice = InvitationNotice(
        to_email=invitation.email,
        family_name=family.name,
        inviter_name=inviter.display_name,
        role=invitation.role.value,
        token=invitation.token,
    )
    if schedule is None:
        dispatch_invitation_notice(notifier, notice)
    else:
        schedule(dispatch_invitation_notice, notifier, notice)
    return invitation


def get_public_details(db: Session, token: str, now: datetime) -> PublicInvitationDetails:
    invitation = reconcile_expiry(db, _load_by_token(db, token), now)
    if invitation.status == InvitationStatusEnum.expired:
        raise Expired("Invitation has expired.")

    family = _require_invited_family(db, invitation)
    return PublicInvitationDetails(
        email=invitation.email,
        role=invitation.role.value,
        family_name=family.name,
        is_existing_user=find_user_by_email(db, invitation.email) is not None,
        status=invitation.status.value,
        expires_at=invitation.expires_at,
    )


def accept_as_existing_user(db: Session, *, token: str, caller_user_id: int, now: datetime) -> Family:
    """
    Join the invited family as an already-registered user.

    A caller who is already a member still consumes the invitation; no second
    membership is written.
    """
    invitation = reconcile_expiry(db, _load_by_token(db, token), now)
    _require_pending(invitation)

    caller = require_user(db, caller_user_id)
    if caller.email != invitation.email:
        raise PermissionDenied("Logged-in user email does not match the invitation email.")

    with unit_of_work(db, conflict_message="Invitation was accepted concurrently."):
        family = _require_invited_family(db, invitation, for_update=True)
        _claim(db, invitation, caller.id, now)
        if is_member(db, family.id, caller.id):
            logger.info("User %s already in family %s; invitation %s consumed", caller.id, family.id, invitation.id)
        else:
            append_membership(db, family.id, caller.id, invitation.role, now)

    logger.info("Invitation %s accepted by user %s", invitation.id, caller.id)
    return family


def accept_with_registration(
    db: Session,
    *,
    token: str,
    first_name: str | None,
    last_name: str | None,
    email: str,
    password: str,
    now: datetime,
) -> RegistrationResult:
    """
    Create a brand-new account from an invitation and join the family.

    The user row, the membership and the invitation transition commit as one
    unit. If any step fails the new user is rolled back with the rest.
    """
    details = get_public_details(db, token, now)
    if details.status != InvitationStatusEnum.pending.value:
        raise Conflict("Invitation cannot be processed (status changed).")
    if normalize_email(email) != details.email:
        raise PermissionDenied("Registration email does not match the invited email.")
    if details.is_existing_user:
        raise Conflict("A user with this email already exists. Please log in to accept the invitation.")

    invitation = _load_by_token(db, token)
    with unit_of_work(db, conflict_message="A user with this email already exists or the invitation was used."):
        user = create_user(
            db,
            email=details.email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            now=now,
            is_verified=True,
        )
        _claim(db, invitation, user.id, now)
        family = _require_invited_family(db, invitation, for_update=True)
        append_membership(db, family.id, user.id, invitation.role, now)

    logger.info("User %s registered through invitation %s", user.id, invitation.id)
    return RegistrationResult(user=user, session_token=create_session_token(user.id, user.email), family=family)


def revoke_invitation(
    db: Session,
    *,
    family_id: int,
    invitation_id: int,
    requester_id: int,
    now: datetime,
) -> Invitation:
    require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "revoke invitations")

    invitation = db.get(Invitation, invitation_id)
    if invitation is None or invitation.family_id != family_id:
        raise NotFound("invitation not found")
    invitation = reconcile_expiry(db, invitation, now)
    _require_pending(invitation)

    with unit_of_work(db):
        if not _transition(db, invitation.id, InvitationStatusEnum.revoked, now):
            raise Conflict("Invitation cannot be processed (status changed).")
    db.refresh(invitation)
    logger.info("Invitation %s revoked by user %s", invitation.id, requester_id)
    return invitation


def list_family_invitations(db: Session, *, family_id: int, requester_id: int, now: datetime) -> list[Invitation]:
    require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "view invitations")

    invitations = db.execute(
        select(Invitation).where(Invitation.family_id == family_id).order_by(Invitation.created_at.desc(), Invitation.id.desc())
    ).scalars().all()
    return [reconcile_expiry(db, item, now) for item in invitations]

