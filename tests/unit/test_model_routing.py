from __future__ import annotations

import pytest

from coursegen.ai.errors import ModelOutputError, classify_error
from coursegen.ai.model_routing import provider_for_model, repack_selector, select_repack_model


@pytest.mark.parametrize(
  ("model_id", "provider"),
  [
    ("claude-haiku-4-5-20251001", "anthropic"),
    ("gpt-5-mini", "openai"),
    ("o3-mini", "openai"),
    ("gemini-2.5-flash", "google"),
  ],
)
def test_provider_for_model(model_id: str, provider: str) -> None:
  assert provider_for_model(model_id) == provider


def test_unknown_provider_raises() -> None:
  with pytest.raises(ValueError, match="Unknown model provider"):
    provider_for_model("llama-3")


def test_select_repack_model_follows_preference_and_credentials() -> None:
  preference = ("claude-haiku-4-5-20251001", "gpt-5-mini", "gemini-2.5-flash")

  assert select_repack_model({"anthropic", "google"}, preference=preference) == "claude-haiku-4-5-20251001"
  assert select_repack_model({"google"}, preference=preference) == "gemini-2.5-flash"
  assert select_repack_model({"anthropic", "openai"}, exclude={"claude-haiku-4-5-20251001"}, preference=preference) == "gpt-5-mini"
  assert select_repack_model(set(), preference=preference) is None


def test_unregistered_preferences_are_skipped() -> None:
  assert select_repack_model({"openai"}, preference=("gpt-local-experimental", "gpt-5-mini")) == "gpt-5-mini"


def test_repack_selector_uses_default_preference() -> None:
  selector = repack_selector({"openai"})
  assert selector() in {"gpt-5-mini", "o3-mini", "gpt-5.2"}


@pytest.mark.parametrize(
  ("error", "label"),
  [
    (TimeoutError(), "timeout"),
    (RuntimeError("Deadline exceeded while waiting"), "timeout"),
    (ModelOutputError("bad"), "output"),
    (ValueError("Failed to parse JSON"), "output"),
    (ConnectionError("connection reset"), "provider"),
  ],
)
def test_classify_error(error: BaseException, label: str) -> None:
  assert classify_error(error) == label
