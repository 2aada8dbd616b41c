from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from famifirst.core.db import unit_of_work
from famifirst.core.errors import Conflict, DomainError
from famifirst.core.logging import get_logger
from famifirst.core.security import create_session_token, verify_password
from famifirst.models.entities import User
from famifirst.services.families import insert_family
from famifirst.services.identity import create_user, find_user_by_email, normalize_email

logger = get_logger(__name__)

DEFAULT_FAMILY_NAME = "Default Family"


class AuthenticationFailed(DomainError):
    kind = "unauthenticated"
    status_code = 401


def register_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
    family_name: str | None = None,
    now: datetime,
) -> tuple[User, str]:
    """
    Create an account together with its first family.

    The user and the family (with the user as Primary User) commit together;
    a user without a family is never left behind.
    """
    normalized = normalize_email(email)
    if find_user_by_email(db, normalized) is not None:
        raise Conflict("User already exists with this email")

    with unit_of_work(db, conflict_message="User already exists with this email"):
        user = create_user(
            db,
            email=normalized,
            password=password,
            first_name=first_name,
            last_name=last_name,
            now=now,
        )
        insert_family(db, name=(family_name or "").strip() or DEFAULT_FAMILY_NAME, creator_id=user.id, now=now)

    logger.info("Registered user %s with a default family", user.id)
    return user, create_session_token(user.id, user.email)


def login_user(db: Session, *, email: str, password: str, now: datetime) -> tuple[User, str]:
    user = find_user_by_email(db, email or "")
    if user is None or not verify_password(password or "", user.credential_hash):
        raise AuthenticationFailed("Invalid email or password")

    with unit_of_work(db):
        user.last_login = now
    return user, create_session_token(user.id, user.email)
