from __future__ import annotations

import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint, false, func
from sqlalchemy.orm import Mapped, mapped_column

from coursegen.core.database import Base


class GenerationLog(Base):
  __tablename__ = "generation_logs"
  __table_args__ = (Index("ix_generation_logs_sensitive_expiry", "sensitive_text_expires_at"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
  generation_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  schema_name: Mapped[str] = mapped_column(String, nullable=False)
  model_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  provider: Mapped[str] = mapped_column(String, nullable=False)
  user_id: Mapped[str | None] = mapped_column(String, nullable=True)
  course_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  lesson_id: Mapped[str | None] = mapped_column(String, nullable=True)
  outcome: Mapped[str] = mapped_column(String, nullable=False, index=True)
  duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
  layer0_called: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  layer0_result: Mapped[str | None] = mapped_column(String, nullable=True)
  layer0_error: Mapped[str | None] = mapped_column(Text, nullable=True)
  layer1_called: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  layer1_success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  layer1_had_wrapper: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  wrapper_type: Mapped[str | None] = mapped_column(String, nullable=True)
  layer2_called: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  layer2_success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  layer2_model_id: Mapped[str | None] = mapped_column(String, nullable=True)
  raw_output_text: Mapped[str | None] = mapped_column(Text, nullable=True)
  raw_output_len: Mapped[int | None] = mapped_column(Integer, nullable=True)
  raw_output_redacted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
  validation_issues: Mapped[str | None] = mapped_column(Text, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  prompt_hash: Mapped[str | None] = mapped_column(String, nullable=True)
  prompt_text: Mapped[str | None] = mapped_column(Text, nullable=True)
  prompt_redacted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
  sensitive_text_expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  sensitive_text_redacted_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  language: Mapped[str | None] = mapped_column(String, nullable=True)
  difficulty: Mapped[str | None] = mapped_column(String, nullable=True)


class GenerationClaim(Base):
  __tablename__ = "generation_claims"
  __table_args__ = (UniqueConstraint("target_kind", "target_id", name="ux_generation_claims_target"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  target_kind: Mapped[str] = mapped_column(String, nullable=False)
  target_id: Mapped[str] = mapped_column(String, nullable=False)
  claimed_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
