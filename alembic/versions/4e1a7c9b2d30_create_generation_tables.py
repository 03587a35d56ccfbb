"""Create generation log and generation claim tables.

Revision ID: 4e1a7c9b2d30
Revises:
Create Date: 2026-02-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from coursegen.core.migrations import guarded_create_index, guarded_create_table, guarded_drop_index, guarded_drop_table

revision = "4e1a7c9b2d30"
down_revision = None
branch_labels = None
depends_on = None

_LOG_INDEXES = ("created_at", "generation_type", "model_id", "course_id", "outcome")


def upgrade() -> None:
  """Upgrade schema."""
  guarded_create_table(
    "generation_logs",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("generation_type", sa.String(), nullable=False),
    sa.Column("schema_name", sa.String(), nullable=False),
    sa.Column("model_id", sa.String(), nullable=False),
    sa.Column("provider", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=True),
    sa.Column("course_id", sa.String(), nullable=True),
    sa.Column("lesson_id", sa.String(), nullable=True),
    sa.Column("outcome", sa.String(), nullable=False),
    sa.Column("duration_ms", sa.Integer(), nullable=False),
    sa.Column("layer0_called", sa.Boolean(), nullable=False),
    sa.Column("layer0_result", sa.String(), nullable=True),
    sa.Column("layer0_error", sa.Text(), nullable=True),
    sa.Column("layer1_called", sa.Boolean(), nullable=False),
    sa.Column("layer1_success", sa.Boolean(), nullable=False),
    sa.Column("layer1_had_wrapper", sa.Boolean(), nullable=False),
    sa.Column("wrapper_type", sa.String(), nullable=True),
    sa.Column("layer2_called", sa.Boolean(), nullable=False),
    sa.Column("layer2_success", sa.Boolean(), nullable=False),
    sa.Column("layer2_model_id", sa.String(), nullable=True),
    sa.Column("raw_output_text", sa.Text(), nullable=True),
    sa.Column("raw_output_len", sa.Integer(), nullable=True),
    sa.Column("validation_issues", sa.Text(), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("prompt_hash", sa.String(), nullable=True),
    sa.Column("prompt_text", sa.Text(), nullable=True),
    sa.Column("language", sa.String(), nullable=True),
    sa.Column("difficulty", sa.String(), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  for column in _LOG_INDEXES:
    guarded_create_index(op.f(f"ix_generation_logs_{column}"), "generation_logs", [column], unique=False)

  guarded_create_table(
    "generation_claims",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("target_kind", sa.String(), nullable=False),
    sa.Column("target_id", sa.String(), nullable=False),
    sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("target_kind", "target_id", name="ux_generation_claims_target"),
  )


def downgrade() -> None:
  """Downgrade schema."""
  guarded_drop_table("generation_claims")
  for column in reversed(_LOG_INDEXES):
    guarded_drop_index(op.f(f"ix_generation_logs_{column}"), table_name="generation_logs")
  guarded_drop_table("generation_logs")
