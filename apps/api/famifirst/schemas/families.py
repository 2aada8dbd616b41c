from __future__ import annotations

import json
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from famifirst.models.entities import Family, FamilyMember, User


class FamilyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    currency: str | None = Field(default=None, min_length=1, max_length=8)
    timezone: str | None = Field(default=None, min_length=1, max_length=64)


class FamilySettings(BaseModel):
    currency: str
    timezone: str


class FamilyMemberCreate(BaseModel):
    email: str
    role: str = "Member"


class FamilyMemberRoleUpdate(BaseModel):
    role: str


class FamilyMemberResponse(BaseModel):
    user_id: int
    email: EmailStr
    first_name: str | None
    last_name: str | None
    role: str
    permissions: list[str]
    joined_at: datetime

    @classmethod
    def from_row(cls, member: FamilyMember, user: User) -> "FamilyMemberResponse":
        return cls(
            user_id=member.user_id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=member.role.value,
            permissions=json.loads(member.permissions or "[]"),
            joined_at=member.joined_at,
        )


class FamilyMemberListResponse(BaseModel):
    items: list[FamilyMemberResponse]


class FamilyResponse(BaseModel):
    id: int
    name: str
    created_by_user_id: int
    created_at: datetime
    settings: FamilySettings
    members: list[FamilyMemberResponse] = []

    @classmethod
    def from_rows(cls, family: Family, rows: list[tuple[FamilyMember, User]] | None = None) -> "FamilyResponse":
        return cls(
            id=family.id,
            name=family.name,
            created_by_user_id=family.created_by_user_id,
            created_at=family.created_at,
            settings=FamilySettings(currency=family.currency, timezone=family.timezone),
            members=[FamilyMemberResponse.from_row(member, user) for member, user in rows or []],
        )


class FamilyListResponse(BaseModel):
    items: list[FamilyResponse]
