"""Postgres-backed store for in-flight generation claims."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select

from coursegen.core.database import get_session_factory
from coursegen.schema.sql import GenerationClaim
from coursegen.services.generation_guard import GenerationClaimRecord

logger = logging.getLogger(__name__)


class PostgresGenerationClaimStore:
  """Persist advisory generation claims using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_claim(self, target_kind: str, target_id: str) -> GenerationClaimRecord | None:
    async with self._session_factory() as session:
      stmt = select(GenerationClaim).where(GenerationClaim.target_kind == target_kind, GenerationClaim.target_id == target_id)
      row = await session.scalar(stmt)
      if row is None:
        return None
      return GenerationClaimRecord(target_kind=row.target_kind, target_id=row.target_id, claimed_at=row.claimed_at)

  async def delete_claim(self, target_kind: str, target_id: str) -> None:
    async with self._session_factory() as session:
      stmt = delete(GenerationClaim).where(GenerationClaim.target_kind == target_kind, GenerationClaim.target_id == target_id)
      await session.execute(stmt)
      await session.commit()
      logger.debug("Deleted generation claim %s/%s", target_kind, target_id)

  async def create_claim(self, claim: GenerationClaimRecord) -> None:
    async with self._session_factory() as session:
      session.add(GenerationClaim(target_kind=claim.target_kind, target_id=claim.target_id, claimed_at=claim.claimed_at))
      await session.commit()
      logger.debug("Created generation claim %s/%s", claim.target_kind, claim.target_id)
