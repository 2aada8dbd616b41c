from __future__ import annotations

from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.orm import Session

from famifirst.core.errors import InvalidInput, NotFound
from famifirst.core.security import hash_password
from famifirst.models.entities import Family, FamilyMember, User


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not value:
        raise InvalidInput("email is required")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidInput(f"invalid email format: {value}") from None
    return value


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()


def require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("user not found")
    return user


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str | None,
    last_name: str | None,
    now: datetime,
    is_verified: bool = False,
) -> User:
    """Stage a new user in the current unit of work. Callers own the commit."""
    if not password:
        raise InvalidInput("password is required")
    user = User(
        email=email,
        credential_hash=hash_password(password),
        first_name=(first_name or "").strip() or None,
        last_name=(last_name or "").strip() or None,
        is_verified=is_verified,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.flush()
    return user


def list_memberships(db: Session, user_id: int) -> list[tuple[FamilyMember, Family]]:
    return db.execute(
        select(FamilyMember, Family)
        .join(Family, Family.id == FamilyMember.family_id)
        .where(FamilyMember.user_id == user_id)
        .order_by(Family.id.asc())
    ).all()
