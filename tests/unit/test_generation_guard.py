"""Unit tests for the advisory per-target generation claim."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from coursegen.ai.errors import GenerationInProgressError
from coursegen.services.generation_guard import GenerationClaimRecord, claim_generation, release_generation

STALE_AFTER = timedelta(minutes=10)


@pytest.fixture
def store():
  store = AsyncMock()
  store.get_claim.return_value = None
  return store


@pytest.mark.anyio
async def test_first_request_claims_the_target(store, fixed_now) -> None:
  claim = await claim_generation(store, "quiz", "lesson-1", now=fixed_now, stale_after=STALE_AFTER)

  assert claim == GenerationClaimRecord(target_kind="quiz", target_id="lesson-1", claimed_at=fixed_now)
  store.create_claim.assert_awaited_once_with(claim)
  store.delete_claim.assert_not_awaited()


@pytest.mark.anyio
async def test_fresh_claim_rejects_the_second_request(store, fixed_now) -> None:
  store.get_claim.return_value = GenerationClaimRecord("quiz", "lesson-1", fixed_now - timedelta(minutes=2))

  with pytest.raises(GenerationInProgressError) as exc_info:
    await claim_generation(store, "quiz", "lesson-1", now=fixed_now, stale_after=STALE_AFTER)

  assert exc_info.value.target_id == "lesson-1"
  store.create_claim.assert_not_awaited()


@pytest.mark.anyio
async def test_stale_claim_is_replaced(store, fixed_now) -> None:
  store.get_claim.return_value = GenerationClaimRecord("quiz", "lesson-1", fixed_now - timedelta(minutes=30))

  claim = await claim_generation(store, "quiz", "lesson-1", now=fixed_now, stale_after=STALE_AFTER)

  store.delete_claim.assert_awaited_once_with("quiz", "lesson-1")
  store.create_claim.assert_awaited_once_with(claim)
  assert claim.claimed_at == fixed_now


@pytest.mark.anyio
async def test_release_deletes_the_claim(store, fixed_now) -> None:
  claim = GenerationClaimRecord("lesson", "lesson-9", fixed_now)
  await release_generation(store, claim)
  store.delete_claim.assert_awaited_once_with("lesson", "lesson-9")
