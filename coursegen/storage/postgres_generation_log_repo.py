"""Postgres-backed sink for generation attempt logs."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime

from sqlalchemy import or_, update

from coursegen.config import Settings
from coursegen.core.database import get_session_factory
from coursegen.schema.sql import GenerationLog
from coursegen.telemetry.generation_log import GenerationLogRecord, GenerationLogSink, LoggingGenerationLogSink

logger = logging.getLogger(__name__)


class PostgresGenerationLogRepository:
  """Persist generation log records and expire their sensitive payloads."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def write(self, record: GenerationLogRecord) -> None:
    await self.insert_record(record)

  async def insert_record(self, record: GenerationLogRecord) -> int:
    async with self._session_factory() as session:
      row = GenerationLog(**asdict(record))
      session.add(row)
      await session.flush()
      await session.commit()
      logger.debug("Inserted generation log %s outcome=%s", row.id, record.outcome)
      return row.id

  async def cleanup_expired_payloads(self, now: datetime) -> int:
    """Null raw output and prompt text whose retention window has passed."""
    async with self._session_factory() as session:
      stmt = (
        update(GenerationLog)
        .where(
          GenerationLog.sensitive_text_expires_at <= now,
          GenerationLog.sensitive_text_redacted_at.is_(None),
          or_(GenerationLog.raw_output_text.is_not(None), GenerationLog.prompt_text.is_not(None)),
        )
        .values(raw_output_text=None, prompt_text=None, sensitive_text_redacted_at=now)
      )
      result = await session.execute(stmt)
      await session.commit()
      count = result.rowcount or 0
      logger.info("Expired sensitive payloads on %s generation log rows", count)
      return count


def get_generation_log_sink(settings: Settings) -> GenerationLogSink:
  """Use Postgres when persistence is enabled and configured, else a log line."""
  if settings.generation_log_enabled and settings.pg_dsn:
    return PostgresGenerationLogRepository()
  return LoggingGenerationLogSink()
