"""Initial schema: users, lists, tasks, share grants, notifications.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

The share tables carry UNIQUE(entity, user); concurrent duplicate grants
are rejected here, not in application code.
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Shared by list_shares and task_shares, so created once up front
share_permission = postgresql.ENUM(
    "VIEW", "EDIT", "ADMIN", name="share_permission", create_type=False
)
task_status = sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", name="task_status")
task_priority = sa.Enum("LOW", "MEDIUM", "HIGH", "URGENT", name="task_priority")
notification_type = sa.Enum("SYSTEM", "SHARED", "EXPIRED", name="notification_type")


def upgrade() -> None:
    share_permission.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("image", sa.String(500)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "lists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column(
            "owner_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_lists_owner_id", "lists", ["owner_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", task_status, server_default="PENDING"),
        sa.Column("priority", task_priority, server_default="MEDIUM"),
        sa.Column("due_date", sa.DateTime()),
        sa.Column(
            "list_id", sa.String(36),
            sa.ForeignKey("lists.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("favorite", sa.Boolean(), server_default=sa.false()),
        sa.Column("completed", sa.Boolean(), server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_tasks_list_id", "tasks", ["list_id"])

    # ── Grants ───────────────────────────────────────────────

    op.create_table(
        "list_shares",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "list_id", sa.String(36),
            sa.ForeignKey("lists.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("permission", share_permission, nullable=False, server_default="VIEW"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("list_id", "user_id", name="uq_list_shares_list_user"),
    )
    op.create_index("ix_list_shares_user_id", "list_shares", ["user_id"])

    op.create_table(
        "task_shares",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "task_id", sa.String(36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("permission", share_permission, nullable=False, server_default="VIEW"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_shares_task_user"),
    )
    op.create_index("ix_task_shares_user_id", "task_shares", ["user_id"])

    # ── Notifications ────────────────────────────────────────

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("type", notification_type, server_default="SYSTEM"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("sender_name", sa.String(255)),
        sa.Column("read", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("task_shares")
    op.drop_table("list_shares")
    op.drop_table("tasks")
    op.drop_table("lists")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (notification_type, task_priority, task_status, share_permission):
        enum_type.drop(bind, checkfirst=True)
