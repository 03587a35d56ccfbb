"""Base interfaces for structured-output model clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# Called with the raw text and the client's parse/validation error; returns replacement
# JSON text for the client to re-validate, or None to give up.
RepairTextHook = Callable[[str, BaseException], str | None]


@dataclass
class StructuredModelResponse:
  """Structured model response structure."""

  content: dict[str, Any]
  raw_text: str | None = None
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for models that can return schema-constrained objects."""

  name: str

  @abstractmethod
  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, repair_text: RepairTextHook | None = None) -> StructuredModelResponse:
    """Return an object conforming to `schema`.

    Implementations raise `ModelOutputError` carrying the raw text when the model answered
    but no conforming object could be produced (after trying `repair_text`, if given).
    Any other exception is treated as a provider or timeout failure.
    """


ModelFactory = Callable[[str], AIModel]
