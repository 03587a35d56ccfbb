"""Error types and classification helpers for model calls."""

from __future__ import annotations

from collections.abc import Iterable

GENERATION_FAILED_MESSAGE = "generation failed, please retry"

_TIMEOUT_HINTS: tuple[str, ...] = (
  "timeout",
  "timed out",
  "deadline exceeded",
)

_OUTPUT_HINTS: tuple[str, ...] = (
  "invalid json",
  "failed to parse",
  "parse json",
  "schema",
  "validation",
  "no object generated",
)


class ModelOutputError(Exception):
  """The model answered, but its text did not form a conforming object."""

  def __init__(self, message: str, *, raw_text: str | None = None) -> None:
    super().__init__(message)
    self.raw_text = raw_text


class GenerationFailedError(Exception):
  """Every repair layer failed; the original Layer-0 error is chained as __cause__."""

  def __init__(self, message: str = GENERATION_FAILED_MESSAGE, *, schema_name: str | None = None) -> None:
    super().__init__(message)
    self.user_message = GENERATION_FAILED_MESSAGE
    self.schema_name = schema_name


class GenerationInProgressError(Exception):
  """Another generation for the same target is already running."""

  def __init__(self, target_kind: str, target_id: str) -> None:
    super().__init__(f"Generation already in progress for {target_kind} {target_id}")
    self.target_kind = target_kind
    self.target_id = target_id


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  return any(hint in message for hint in hints)


def is_timeout_error(exc: BaseException) -> bool:
  """Return True when an exception indicates the provider call timed out."""
  if isinstance(exc, TimeoutError):
    return True
  return _match_hint(str(exc).lower(), _TIMEOUT_HINTS)


def is_output_error(exc: BaseException) -> bool:
  """Return True when an exception indicates malformed model output."""
  if isinstance(exc, ModelOutputError):
    return True
  return _match_hint(str(exc).lower(), _OUTPUT_HINTS)


def classify_error(exc: BaseException) -> str:
  """Short label stored on attempt records."""
  if is_timeout_error(exc):
    return "timeout"
  if is_output_error(exc):
    return "output"
  return "provider"
