from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from famifirst.core.security import decode_session_token


@dataclass(frozen=True)
class AuthContext:
    user_id: int
    email: str


def get_auth_context(authorization: str | None = Header(default=None)) -> AuthContext | None:
    """
    Auth boundary.

    Resolves the caller from an `Authorization: Bearer <session token>` header.
    Anonymous requests yield None; routes that need an identity depend on
    require_auth instead.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="malformed authorization header")

    payload = decode_session_token(token.strip())
    if payload is None:
        raise HTTPException(status_code=401, detail="invalid or expired session token")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="invalid or expired session token") from None
    return AuthContext(user_id=user_id, email=str(payload["email"]).strip().lower())


def require_auth(ctx: AuthContext | None = Depends(get_auth_context)) -> AuthContext:
    if ctx is None:
        raise HTTPException(status_code=401, detail="authentication required")
    return ctx
