"""Add redaction flags and sensitive-text retention columns to generation_logs.

Revision ID: 9b3f5d8e6a12
Revises: 4e1a7c9b2d30
Create Date: 2026-02-17
"""

from __future__ import annotations

import sqlalchemy as sa

from coursegen.core.migrations import guarded_add_column, guarded_create_index, guarded_drop_column, guarded_drop_index

revision = "9b3f5d8e6a12"
down_revision = "4e1a7c9b2d30"
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  guarded_add_column("generation_logs", sa.Column("raw_output_redacted", sa.Boolean(), server_default=sa.false(), nullable=False))
  guarded_add_column("generation_logs", sa.Column("prompt_redacted", sa.Boolean(), server_default=sa.false(), nullable=False))
  guarded_add_column("generation_logs", sa.Column("sensitive_text_expires_at", sa.DateTime(timezone=True), nullable=True))
  guarded_add_column("generation_logs", sa.Column("sensitive_text_redacted_at", sa.DateTime(timezone=True), nullable=True))
  guarded_create_index("ix_generation_logs_sensitive_expiry", "generation_logs", ["sensitive_text_expires_at"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  guarded_drop_index("ix_generation_logs_sensitive_expiry", table_name="generation_logs")
  guarded_drop_column("generation_logs", "sensitive_text_redacted_at")
  guarded_drop_column("generation_logs", "sensitive_text_expires_at")
  guarded_drop_column("generation_logs", "prompt_redacted")
  guarded_drop_column("generation_logs", "raw_output_redacted")
