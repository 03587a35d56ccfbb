"""Per-request record of which repair layers ran and how the generation concluded."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Protocol

from coursegen.ai.model_routing import provider_for_model
from coursegen.ai.pipeline.contracts import GenerationAttempt, GenerationLogContext, GenerationOutcome
from coursegen.ai.pipeline.repair_hook import RepairTracker
from coursegen.config import Settings, get_settings
from coursegen.schema.coercion import NO_WRAPPER
from coursegen.telemetry.sanitizer import sanitize_prompt_for_persistence, sanitize_text_for_persistence, sensitive_text_expiry, truncate_text

logger = logging.getLogger(__name__)

_REPAIRED_LAYER0_RESULTS = ("coercion-success", "unwrapped-only")


@dataclass(frozen=True)
class GenerationLogRecord:
  """One persisted row summarising a generation request."""

  generation_type: str
  schema_name: str
  model_id: str
  provider: str
  outcome: GenerationOutcome
  duration_ms: int
  layer0_called: bool
  layer0_result: str | None
  layer0_error: str | None
  layer1_called: bool
  layer1_success: bool
  layer1_had_wrapper: bool
  wrapper_type: str | None
  layer2_called: bool
  layer2_success: bool
  layer2_model_id: str | None
  raw_output_text: str | None
  raw_output_len: int | None
  raw_output_redacted: bool
  validation_issues: str | None
  error_message: str | None
  prompt_hash: str | None
  prompt_text: str | None
  prompt_redacted: bool
  sensitive_text_expires_at: datetime | None
  created_at: datetime
  user_id: str | None = None
  course_id: str | None = None
  lesson_id: str | None = None
  language: str | None = None
  difficulty: str | None = None


class GenerationLogSink(Protocol):
  async def write(self, record: GenerationLogRecord) -> None: ...


class LoggingGenerationLogSink:
  """Emit the record as a single structured log line."""

  def __init__(self, logger_name: str = "coursegen.generation_log") -> None:
    self._logger = logging.getLogger(logger_name)

  async def write(self, record: GenerationLogRecord) -> None:
    payload = asdict(record)
    self._logger.info("generation_log %s", json.dumps(payload, default=str, sort_keys=True))


class GenerationAttemptLog:
  """Collect layer attempts for one request and write them once."""

  def __init__(
    self,
    context: GenerationLogContext,
    sink: GenerationLogSink | None = None,
    *,
    settings: Settings | None = None,
    clock: Callable[[], datetime] | None = None,
  ) -> None:
    self.context = context
    self._sink: GenerationLogSink = sink if sink is not None else LoggingGenerationLogSink()
    self._settings = settings
    self._clock = clock or (lambda: datetime.now(UTC))
    self._started = time.monotonic()
    self._attempts: dict[int, GenerationAttempt] = {}
    self._tracker: RepairTracker | None = None
    self._error_message: str | None = None
    self._finalized = False

  @property
  def attempts(self) -> list[GenerationAttempt]:
    return [self._attempts[layer] for layer in sorted(self._attempts)]

  @property
  def finalized(self) -> bool:
    return self._finalized

  def record_layer(self, attempt: GenerationAttempt) -> None:
    """Store an attempt; a second attempt for the same layer replaces the first."""
    if attempt.layer in self._attempts:
      logger.debug("Replacing recorded attempt for layer %s", attempt.layer)
    self._attempts[attempt.layer] = attempt

  def record_layer0_tracker(self, tracker: RepairTracker) -> None:
    self._tracker = tracker

  def record_failure(self, message: str) -> None:
    self._error_message = message

  def resolve_outcome(self) -> GenerationOutcome:
    layer0 = self._attempts.get(0)
    layer1 = self._attempts.get(1)
    layer2 = self._attempts.get(2)

    if layer2 is not None and layer2.succeeded:
      return "repaired_layer2"
    if layer1 is not None and layer1.succeeded:
      return "repaired_layer1"
    if layer0 is not None and layer0.succeeded:
      tracker_result = self._tracker.result if self._tracker is not None else None
      return "repaired_layer0" if tracker_result in _REPAIRED_LAYER0_RESULTS else "success"
    if layer0 is not None or layer1 is not None or layer2 is not None:
      return "failed"
    if self._error_message:
      return "failed"
    return "success"

  def _raw_text(self) -> str | None:
    for layer in (1, 0, 2):
      attempt = self._attempts.get(layer)
      if attempt is not None and attempt.raw_text:
        return attempt.raw_text
    if self._tracker is not None and self._tracker.raw_text:
      return self._tracker.raw_text
    return None

  def _wrapper(self) -> str | None:
    for layer in (1, 2):
      attempt = self._attempts.get(layer)
      if attempt is not None and attempt.wrapper_detected and attempt.wrapper_detected != NO_WRAPPER:
        return attempt.wrapper_detected
    if self._tracker is not None:
      return self._tracker.wrapper
    return None

  def _serialized_issues(self) -> str | None:
    for layer in (1, 2, 0):
      attempt = self._attempts.get(layer)
      if attempt is not None and attempt.issues:
        return json.dumps([issue.to_dict() for issue in attempt.issues])
    return None

  def build_record(self) -> GenerationLogRecord:
    """Assemble the sanitised record for the sink."""
    settings = self._settings or get_settings()
    now = self._clock()
    outcome = self.resolve_outcome()

    raw_text = self._raw_text()
    raw = sanitize_text_for_persistence(raw_text, "rawOutput", max_chars=settings.generation_log_inline_max_chars)

    # Prompts are kept only when something went wrong; success keeps the hash alone.
    prompt = sanitize_prompt_for_persistence(self.context.prompt_text)
    prompt_text = prompt.sanitized if outcome != "success" else None
    prompt_redacted = prompt.redacted if outcome != "success" else False

    has_sensitive = bool(raw.sanitized or prompt_text)
    expires_at = sensitive_text_expiry(now, settings.generation_log_sensitive_ttl_hours) if has_sensitive else None

    try:
      provider = provider_for_model(self.context.model_id)
    except ValueError:
      provider = "unknown"

    layer0 = self._attempts.get(0)
    layer1 = self._attempts.get(1)
    layer2 = self._attempts.get(2)
    tracker = self._tracker

    layer0_error = layer0.error if layer0 is not None and layer0.error else None
    if layer0_error is None and tracker is not None:
      layer0_error = tracker.error

    return GenerationLogRecord(
      generation_type=self.context.generation_type,
      schema_name=self.context.schema_name,
      model_id=self.context.model_id,
      provider=provider,
      outcome=outcome,
      duration_ms=int((time.monotonic() - self._started) * 1000),
      layer0_called=layer0 is not None,
      layer0_result=tracker.result if tracker is not None else None,
      layer0_error=layer0_error,
      layer1_called=layer1 is not None,
      layer1_success=bool(layer1 and layer1.succeeded),
      layer1_had_wrapper=bool(layer1 and layer1.wrapper_detected and layer1.wrapper_detected != NO_WRAPPER),
      wrapper_type=self._wrapper(),
      layer2_called=layer2 is not None,
      layer2_success=bool(layer2 and layer2.succeeded),
      layer2_model_id=layer2.model_id if layer2 is not None else None,
      raw_output_text=truncate_text(raw.sanitized, settings.generation_log_raw_text_max_chars),
      raw_output_len=len(raw_text) if raw_text else None,
      raw_output_redacted=raw.redacted,
      validation_issues=self._serialized_issues(),
      error_message=self._error_message,
      prompt_hash=prompt.hash,
      prompt_text=prompt_text,
      prompt_redacted=prompt_redacted,
      sensitive_text_expires_at=expires_at,
      created_at=now,
      user_id=self.context.user_id,
      course_id=self.context.course_id,
      lesson_id=self.context.lesson_id,
      language=self.context.language,
      difficulty=self.context.difficulty,
    )

  async def finalize(self) -> GenerationLogRecord | None:
    """Write the record once. Sink failures are logged and swallowed."""
    if self._finalized:
      return None
    self._finalized = True

    try:
      record = self.build_record()
      await self._sink.write(record)

    except Exception as exc:  # noqa: BLE001 - logging must never break generation
      logger.warning("Failed to write generation log for %s: %s", self.context.schema_name, exc)
      return None

    logger.info("Generation concluded schema=%s outcome=%s duration_ms=%s", record.schema_name, record.outcome, record.duration_ms)
    return record
