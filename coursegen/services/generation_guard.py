"""Advisory single-target lock that stops concurrent generations of the same record.

The check and the create are separate steps, so two requests arriving together can
both pass the check. The unique constraint on the claims table turns the loser into a
store error rather than a duplicate generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from coursegen.ai.errors import GenerationInProgressError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationClaimRecord:
  target_kind: str
  target_id: str
  claimed_at: datetime


class GenerationClaimStore(Protocol):
  async def get_claim(self, target_kind: str, target_id: str) -> GenerationClaimRecord | None: ...

  async def delete_claim(self, target_kind: str, target_id: str) -> None: ...

  async def create_claim(self, claim: GenerationClaimRecord) -> None: ...


async def claim_generation(store: GenerationClaimStore, target_kind: str, target_id: str, *, now: datetime, stale_after: timedelta) -> GenerationClaimRecord:
  """Claim `target` for generation or raise GenerationInProgressError."""
  existing = await store.get_claim(target_kind, target_id)
  if existing is not None:
    age = now - existing.claimed_at
    if age < stale_after:
      raise GenerationInProgressError(target_kind, target_id)
    logger.warning("Clearing abandoned generation claim %s/%s age=%ss", target_kind, target_id, int(age.total_seconds()))
    await store.delete_claim(target_kind, target_id)

  claim = GenerationClaimRecord(target_kind=target_kind, target_id=target_id, claimed_at=now)
  await store.create_claim(claim)
  return claim


async def release_generation(store: GenerationClaimStore, claim: GenerationClaimRecord) -> None:
  await store.delete_claim(claim.target_kind, claim.target_id)
