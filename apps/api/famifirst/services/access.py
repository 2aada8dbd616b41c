from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from famifirst.core.errors import InvalidInput, NotFound, PermissionDenied
from famifirst.models.entities import ASSIGNABLE_ROLES, Family, FamilyMember, FamilyRoleEnum


def get_membership(db: Session, family_id: int, user_id: int) -> FamilyMember | None:
    return db.execute(
        select(FamilyMember).where(FamilyMember.family_id == family_id, FamilyMember.user_id == user_id)
    ).scalar_one_or_none()


def is_member(db: Session, family_id: int, user_id: int) -> bool:
    return get_membership(db, family_id, user_id) is not None


def can_mutate_membership(db: Session, family_id: int, requester_id: int) -> bool:
    # Creator-exclusive control: only the Primary User manages membership.
    member = get_membership(db, family_id, requester_id)
    return member is not None and member.role == FamilyRoleEnum.primary_user


def require_family(db: Session, family_id: int, *, for_update: bool = False) -> Family:
    query = select(Family).where(Family.id == family_id)
    if for_update:
        query = query.with_for_update()
    family = db.execute(query).scalar_one_or_none()
    if family is None:
        raise NotFound("family not found")
    return family


def require_family_member(db: Session, family_id: int, user_id: int) -> FamilyMember:
    member = get_membership(db, family_id, user_id)
    if member is None:
        raise PermissionDenied("not a member of this family")
    return member


def require_primary_user(db: Session, family_id: int, user_id: int, action: str = "manage members") -> FamilyMember:
    member = require_family_member(db, family_id, user_id)
    if not can_mutate_membership(db, family_id, user_id):
        raise PermissionDenied(f"only the family creator can {action}")
    return member


def require_assignable_role(role: str | FamilyRoleEnum) -> FamilyRoleEnum:
    try:
        value = FamilyRoleEnum(role)
    except ValueError:
        allowed = ", ".join(item.value for item in ASSIGNABLE_ROLES)
        raise InvalidInput(f"invalid role: {role}. Must be one of {allowed}") from None
    if value not in ASSIGNABLE_ROLES:
        raise PermissionDenied("the Primary User role is established at family creation and cannot be assigned")
    return value


def guard_member_mutation(family: Family, target: FamilyMember, requester_id: int) -> None:
    """Rules that hold for every remove/re-role, whoever the caller is."""
    if target.user_id == requester_id:
        raise PermissionDenied("members cannot remove or re-role themselves")
    if target.role == FamilyRoleEnum.primary_user or target.user_id == family.created_by_user_id:
        raise PermissionDenied("the Primary User cannot be removed or re-roled")
