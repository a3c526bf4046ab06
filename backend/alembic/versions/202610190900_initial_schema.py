"""Initial role-model schedule schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("active_schedule_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "role_models",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("philosophy", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "user_schedules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role_model_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_model_id"], ["role_models.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_user_schedules_user_id", "user_schedules", ["user_id"], unique=False)
    op.create_index("ix_user_schedules_status", "user_schedules", ["status"], unique=False)

    # users <-> user_schedules reference each other, so this FK comes last.
    op.create_foreign_key(
        "fk_users_active_schedule_id",
        "users",
        "user_schedules",
        ["active_schedule_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "user_tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_schedule_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("activity_name", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_duration", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_schedule_id"], ["user_schedules.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_user_tasks_user_schedule_id", "user_tasks", ["user_schedule_id"], unique=False)
    op.create_index(
        "ix_user_tasks_schedule_order",
        "user_tasks",
        ["user_schedule_id", "display_order"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_user_tasks_schedule_order", table_name="user_tasks")
    op.drop_index("ix_user_tasks_user_schedule_id", table_name="user_tasks")
    op.drop_table("user_tasks")
    op.drop_constraint("fk_users_active_schedule_id", "users", type_="foreignkey")
    op.drop_index("ix_user_schedules_status", table_name="user_schedules")
    op.drop_index("ix_user_schedules_user_id", table_name="user_schedules")
    op.drop_table("user_schedules")
    op.drop_table("role_models")
    op.drop_table("users")
