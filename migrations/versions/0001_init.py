"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "users",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("password_hash", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_users_email", "users", ["email"], unique=True)

  op.create_table(
    "sessions",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("token_hash", sa.String(), nullable=False),
    sa.Column("created_ip", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
  )
  op.create_index("ix_sessions_user_id", "sessions", ["user_id"], unique=False)
  op.create_index("ix_sessions_token_hash", "sessions", ["token_hash"], unique=True)

  op.create_table(
    "boards",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_boards_owner_id", "boards", ["owner_id"], unique=False)

  op.create_table(
    "tasks",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
    sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=False, server_default=""),
    sa.Column("status", sa.String(), nullable=False, server_default="todo"),
    sa.Column("pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("subtasks", sa.JSON(), nullable=False),
    sa.Column("history", sa.JSON(), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_tasks_board_id", "tasks", ["board_id"], unique=False)
  op.create_index("ix_tasks_owner_id", "tasks", ["owner_id"], unique=False)
  op.create_index("ix_tasks_status", "tasks", ["status"], unique=False)

  op.create_table(
    "audit_events",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("board_id", sa.String(36), nullable=True),
    sa.Column("task_id", sa.String(36), nullable=True),
    sa.Column("actor_id", sa.String(36), nullable=True),
    sa.Column("event_type", sa.String(), nullable=False),
    sa.Column("entity_type", sa.String(), nullable=False),
    sa.Column("entity_id", sa.String(), nullable=True),
    sa.Column("payload", sa.JSON(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_audit_events_board_id", "audit_events", ["board_id"], unique=False)
  op.create_index("ix_audit_events_task_id", "audit_events", ["task_id"], unique=False)


def downgrade() -> None:
  op.drop_table("audit_events")
  op.drop_table("tasks")
  op.drop_table("boards")
  op.drop_table("sessions")
  op.drop_table("users")
