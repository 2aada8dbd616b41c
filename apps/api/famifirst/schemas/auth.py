from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from famifirst.models.entities import User


class RegisterRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    family_name: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    email: EmailStr
    first_name: str | None
    last_name: str | None
    profile_picture: str | None
    is_verified: bool
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_picture=user.profile_picture,
            is_verified=bool(user.is_verified),
            created_at=user.created_at,
        )


class SessionResponse(BaseModel):
    user: UserResponse
    session_token: str


class MembershipSummary(BaseModel):
    family_id: int
    family_name: str
    role: str


class ProfileResponse(BaseModel):
    user: UserResponse
    memberships: list[MembershipSummary]
