from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from famifirst.core.db import unit_of_work
from famifirst.core.errors import Conflict, InvalidInput, NotFound
from famifirst.core.logging import get_logger
from famifirst.models.entities import Family, FamilyMember, FamilyRoleEnum, User
from famifirst.services.access import (
    get_membership,
    guard_member_mutation,
    require_assignable_role,
    require_family,
    require_family_member,
    require_primary_user,
)
from famifirst.services.identity import find_user_by_email, normalize_email, require_user

logger = get_logger(__name__)


def insert_family(db: Session, *, name: str, creator_id: int, now: datetime) -> Family:
    """Stage a family and its Primary User membership in the current unit of work."""
    family = Family(name=name, created_by_user_id=creator_id, created_at=now, updated_at=now)
    db.add(family)
    db.flush()
    db.add(
        FamilyMember(
            family_id=family.id,
            user_id=creator_id,
            role=FamilyRoleEnum.primary_user,
            permissions="[]",
            joined_at=now,
        )
    )
    db.flush()
    return family


def append_membership(
    db: Session,
    family_id: int,
    user_id: int,
    role: FamilyRoleEnum | str,
    now: datetime,
) -> FamilyMember:
    """
    Stage one new membership row.

    The (family_id, user_id) uniqueness constraint backs the check below, so a
    concurrent append surfaces as Conflict when the unit of work flushes.
    """
    assigned = require_assignable_role(role)
    if get_membership(db, family_id, user_id) is not None:
        raise Conflict("user is already a member of this family")
    member = FamilyMember(family_id=family_id, user_id=user_id, role=assigned, permissions="[]", joined_at=now)
    db.add(member)
    db.flush()
    return member


def create_family(db: Session, *, name: str, creator_id: int, now: datetime) -> Family:
    name = (name or "").strip()
    if not name:
        raise InvalidInput("family name cannot be empty")
    require_user(db, creator_id)

    with unit_of_work(db):
        family = insert_family(db, name=name, creator_id=creator_id, now=now)
    logger.info("Family %s created by user %s", family.id, creator_id)
    return family


def list_families_for_user(db: Session, user_id: int) -> list[Family]:
    return db.execute(
        select(Family)
        .join(FamilyMember, FamilyMember.family_id == Family.id)
        .where(FamilyMember.user_id == user_id)
        .order_by(Family.id.asc())
    ).scalars().all()


def get_family(db: Session, family_id: int, requester_id: int) -> Family:
    family = require_family(db, family_id)
    require_family_member(db, family_id, requester_id)
    return family


def list_members_with_users(db: Session, family_id: int) -> list[tuple[FamilyMember, User]]:
    return db.execute(
        select(FamilyMember, User)
        .join(User, User.id == FamilyMember.user_id)
        .where(FamilyMember.family_id == family_id)
        .order_by(FamilyMember.joined_at.asc(), FamilyMember.id.asc())
    ).all()


def update_family(
    db: Session,
    family_id: int,
    requester_id: int,
    *,
    name: str | None = None,
    currency: str | None = None,
    timezone: str | None = None,
    now: datetime,
) -> Family:
    if name is None and currency is None and timezone is None:
        raise InvalidInput("no update data provided")
    if name is not None and not name.strip():
        raise InvalidInput("family name cannot be empty")

    require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "update family details")

    with unit_of_work(db):
        family = require_family(db, family_id, for_update=True)
        if name is not None:
            family.name = name.strip()
        if currency is not None:
            family.currency = currency
        if timezone is not None:
            family.timezone = timezone
        family.updated_at = now
    return family


def add_member(
    db: Session,
    family_id: int,
    requester_id: int,
    *,
    email: str,
    role: str,
    now: datetime,
) -> FamilyMember:
    normalized = normalize_email(email)
    assigned = require_assignable_role(role)
    require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "add members")

    user = find_user_by_email(db, normalized)
    if user is None:
        raise NotFound(f"User with email {normalized} not found.")

    with unit_of_work(db, conflict_message=f"User {normalized} is already a member of this family."):
        require_family(db, family_id, for_update=True)
        member = append_membership(db, family_id, user.id, assigned, now)
    logger.info("User %s added to family %s as %s", user.id, family_id, assigned.value)
    return member


def _require_target_member(db: Session, family_id: int, member_user_id: int) -> FamilyMember:
    target = get_membership(db, family_id, member_user_id)
    if target is None:
        raise NotFound("member not found in this family")
    return target


def remove_member(db: Session, family_id: int, requester_id: int, *, member_user_id: int) -> None:
    require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "remove members")

    with unit_of_work(db):
        family = require_family(db, family_id, for_update=True)
        target = _require_target_member(db, family_id, member_user_id)
        guard_member_mutation(family, target, requester_id)
        db.delete(target)
    logger.info("User %s removed from family %s", member_user_id, family_id)


def change_member_role(
    db: Session,
    family_id: int,
    requester_id: int,
    *,
    member_user_id: int,
    new_role: str,
) -> FamilyMember:
    assigned = require_assignable_role(new_role)
    require_family(db, family_id)
    require_primary_user(db, family_id, requester_id, "change member roles")

    with unit_of_work(db):
        family = require_family(db, family_id, for_update=True)
        target = _require_target_member(db, family_id, member_user_id)
        guard_member_mutation(family, target, requester_id)
        target.role = assigned
    return target
