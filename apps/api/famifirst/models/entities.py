from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from famifirst.core.clock import utcnow
from famifirst.models.base import Base


class FamilyRoleEnum(str, Enum):
    primary_user = "Primary User"
    admin = "Admin"
    member = "Member"


ASSIGNABLE_ROLES = (FamilyRoleEnum.admin, FamilyRoleEnum.member)


class InvitationStatusEnum(str, Enum):
    pending = "pending"
    accepted = "accepted"
    expired = "expired"
    revoked = "revoked"


class TaskStatusEnum(str, Enum):
    pending = "Pending"
    in_progress = "In Progress"
    completed = "Completed"
    blocked = "Blocked"


class TaskPriorityEnum(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    urgent = "Urgent"


def _values_enum(enum_cls: type[Enum], name: str) -> SqlEnum:
    return SqlEnum(enum_cls, name=name, values_callable=lambda cls: [item.value for item in cls])


family_role_sql_enum = _values_enum(FamilyRoleEnum, "familyroleenum")
invitation_status_sql_enum = _values_enum(InvitationStatusEnum, "invitationstatusenum")
task_status_sql_enum = _values_enum(TaskStatusEnum, "taskstatusenum")
task_priority_sql_enum = _values_enum(TaskPriorityEnum, "taskpriorityenum")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Always stored lower-cased, so the unique index is case-insensitive in practice.
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    credential_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))
    profile_picture: Mapped[str | None] = mapped_column(String(1024))
    phone_number: Mapped[str | None] = mapped_column(String(64))
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def display_name(self) -> str:
        if self.first_name:
            return f"{self.first_name} {self.last_name or ''}".strip()
        return self.email or "Someone"


class Family(Base):
    __tablename__ = "families"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="BDT")
    timezone: Mapped[str] = mapped_column(String(64), default="Asia/Dhaka")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class FamilyMember(Base):
    __tablename__ = "family_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    family_id: Mapped[int] = mapped_column(ForeignKey("families.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    role: Mapped[FamilyRoleEnum] = mapped_column(family_role_sql_enum, nullable=False, default=FamilyRoleEnum.member)
    permissions: Mapped[str] = mapped_column(Text, default="[]")
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (UniqueConstraint("family_id", "user_id", name="uq_family_members_family_user"),)


class Invitation(Base):
    __tablename__ = "invitations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    family_id: Mapped[int] = mapped_column(ForeignKey("families.id"), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[FamilyRoleEnum] = mapped_column(family_role_sql_enum, nullable=False)
    invited_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    status: Mapped[InvitationStatusEnum] = mapped_column(
        invitation_status_sql_enum, nullable=False, default=InvitationStatusEnum.pending
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)
    accepted_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    family_id: Mapped[int] = mapped_column(ForeignKey("families.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(128))
    priority: Mapped[TaskPriorityEnum] = mapped_column(task_priority_sql_enum, default=TaskPriorityEnum.medium)
    status: Mapped[TaskStatusEnum] = mapped_column(task_status_sql_enum, default=TaskStatusEnum.pending, index=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    assigned_to: Mapped[str] = mapped_column(Text, default="[]")
    created_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurrence_rule: Mapped[str | None] = mapped_column(Text)
    recurring_task_id: Mapped[int | None] = mapped_column(ForeignKey("tasks.id"), index=True)
    # UTC calendar day of the occurrence; only set on generated instances.
    occurrence_day: Mapped[date | None] = mapped_column(Date)
    reminders: Mapped[str] = mapped_column(Text, default="[]")
    attachments: Mapped[str] = mapped_column(Text, default="[]")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("recurring_task_id", "occurrence_day", name="uq_tasks_recurring_day"),)


Index(
    "uq_family_members_one_primary",
    FamilyMember.family_id,
    unique=True,
    postgresql_where=text("role = 'Primary User'"),
    sqlite_where=text("role = 'Primary User'"),
)
Index(
    "uq_invitations_one_pending",
    Invitation.family_id,
    Invitation.email,
    unique=True,
    postgresql_where=text("status = 'pending'"),
    sqlite_where=text("status = 'pending'"),
)
Index("ix_family_members_user", FamilyMember.user_id)
Index("ix_tasks_recurring_templates", Task.recurring, Task.family_id)
