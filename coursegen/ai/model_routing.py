from __future__ import annotations

from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass
from typing import Literal

from coursegen.config import get_settings

Provider = Literal["anthropic", "openai", "google"]
Tier = Literal["premium", "balanced", "fast"]

_ANTHROPIC_PREFIXES = ("claude-",)
_OPENAI_PREFIXES = ("gpt-", "o1-", "o3-", "o4-")
_GOOGLE_PREFIXES = ("gemini-",)


@dataclass(frozen=True)
class ModelInfo:
  model_id: str
  label: str
  provider: Provider
  tier: Tier


MODEL_REGISTRY: tuple[ModelInfo, ...] = (
  ModelInfo("claude-opus-4-6", "Claude Opus 4.6", "anthropic", "premium"),
  ModelInfo("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", "anthropic", "balanced"),
  ModelInfo("claude-haiku-4-5-20251001", "Claude Haiku 4.5", "anthropic", "fast"),
  ModelInfo("gpt-5.2", "GPT-5.2", "openai", "premium"),
  ModelInfo("gpt-5-mini", "GPT-5 Mini", "openai", "fast"),
  ModelInfo("o3-mini", "o3-mini", "openai", "balanced"),
  ModelInfo("gemini-3-pro-preview", "Gemini 3 Pro", "google", "premium"),
  ModelInfo("gemini-2.5-pro", "Gemini 2.5 Pro", "google", "balanced"),
  ModelInfo("gemini-2.5-flash", "Gemini 2.5 Flash", "google", "fast"),
)

_REGISTRY_BY_ID = {info.model_id: info for info in MODEL_REGISTRY}


def provider_for_model(model_id: str) -> Provider:
  """Resolve a provider by id prefix, then by registry entry."""
  if model_id.startswith(_ANTHROPIC_PREFIXES):
    return "anthropic"
  if model_id.startswith(_OPENAI_PREFIXES):
    return "openai"
  if model_id.startswith(_GOOGLE_PREFIXES):
    return "google"
  info = _REGISTRY_BY_ID.get(model_id)
  if info is not None:
    return info.provider
  raise ValueError(f"Unknown model provider for model: {model_id}")


def select_repack_model(available_providers: Collection[str], *, exclude: Collection[str] | None = None, preference: Sequence[str] | None = None) -> str | None:
  """Return the cheapest preferred model whose provider has credentials."""
  order = preference if preference is not None else get_settings().repack_model_preference
  skipped = set(exclude or ())
  for model_id in order:
    if model_id in skipped:
      continue
    info = _REGISTRY_BY_ID.get(model_id)
    # Unregistered ids in the preference list are ignored.
    if info is None:
      continue
    if info.provider in available_providers:
      return model_id
  return None


def repack_selector(available_providers: Collection[str], *, exclude: Collection[str] | None = None) -> Callable[[], str | None]:
  """Bind provider availability into the zero-argument selector the pipeline expects."""
  return lambda: select_repack_model(available_providers, exclude=exclude)
