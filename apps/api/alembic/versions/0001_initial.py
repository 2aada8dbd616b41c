"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


family_role_enum = postgresql.ENUM("Primary User", "Admin", "Member", name="familyroleenum", create_type=False)
invitation_status_enum = postgresql.ENUM(
    "pending", "accepted", "expired", "revoked", name="invitationstatusenum", create_type=False
)
task_status_enum = postgresql.ENUM(
    "Pending", "In Progress", "Completed", "Blocked", name="taskstatusenum", create_type=False
)
task_priority_enum = postgresql.ENUM("Low", "Medium", "High", "Urgent", name="taskpriorityenum", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    family_role_enum.create(bind, checkfirst=True)
    invitation_status_enum.create(bind, checkfirst=True)
    task_status_enum.create(bind, checkfirst=True)
    task_priority_enum.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("credential_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("profile_picture", sa.String(length=1024), nullable=True),
        sa.Column("phone_number", sa.String(length=64), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "families",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=True, server_default="BDT"),
        sa.Column("timezone", sa.String(length=64), nullable=True, server_default="Asia/Dhaka"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "family_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("family_id", sa.Integer(), sa.ForeignKey("families.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", family_role_enum, nullable=False),
        sa.Column("permissions", sa.Text(), nullable=True, server_default="[]"),
        sa.Column("joined_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("family_id", "user_id", name="uq_family_members_family_user"),
    )
    op.create_index("ix_family_members_user", "family_members", ["user_id"])
    op.create_index(
        "uq_family_members_one_primary",
        "family_members",
        ["family_id"],
        unique=True,
        postgresql_where=sa.text("role = 'Primary User'"),
    )

    op.create_table(
        "invitations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("family_id", sa.Integer(), sa.ForeignKey("families.id"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", family_role_enum, nullable=False),
        sa.Column("invited_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("status", invitation_status_enum, nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("accepted_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_invitations_token", "invitations", ["token"], unique=True)
    op.create_index(
        "uq_invitations_one_pending",
        "invitations",
        ["family_id", "email"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("family_id", sa.Integer(), sa.ForeignKey("families.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=128), nullable=True),
        sa.Column("priority", task_priority_enum, nullable=True, server_default="Medium"),
        sa.Column("status", task_status_enum, nullable=True, server_default="Pending"),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assigned_to", sa.Text(), nullable=True, server_default="[]"),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("recurring", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("recurrence_rule", sa.Text(), nullable=True),
        sa.Column("recurring_task_id", sa.Integer(), sa.ForeignKey("tasks.id"), nullable=True),
        sa.Column("occurrence_day", sa.Date(), nullable=True),
        sa.Column("reminders", sa.Text(), nullable=True, server_default="[]"),
        sa.Column("attachments", sa.Text(), nullable=True, server_default="[]"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("recurring_task_id", "occurrence_day", name="uq_tasks_recurring_day"),
    )
    op.create_index("ix_tasks_family_id", "tasks", ["family_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
    op.create_index("ix_tasks_recurring_task_id", "tasks", ["recurring_task_id"])
    op.create_index("ix_tasks_recurring_templates", "tasks", ["recurring", "family_id"])


def downgrade() -> None:
    op.drop_index("ix_tasks_recurring_templates", table_name="tasks")
    op.drop_index("ix_tasks_recurring_task_id", table_name="tasks")
    op.drop_index("ix_tasks_due_date", table_name="tasks")
    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_index("ix_tasks_family_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("uq_invitations_one_pending", table_name="invitations")
    op.drop_index("ix_invitations_token", table_name="invitations")
    op.drop_table("invitations")
    op.drop_index("uq_family_members_one_primary", table_name="family_members")
    op.drop_index("ix_family_members_user", table_name="family_members")
    op.drop_table("family_members")
    op.drop_table("families")
    op.drop_table("users")

    bind = op.get_bind()
    task_priority_enum.drop(bind, checkfirst=True)
    task_status_enum.drop(bind, checkfirst=True)
    invitation_status_enum.drop(bind, checkfirst=True)
    family_role_enum.drop(bind, checkfirst=True)
