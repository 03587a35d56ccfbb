"""Repair hook handed to model clients for in-call recovery of malformed output."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Literal

from coursegen.ai.providers.base import RepairTextHook
from coursegen.schema.coercion import NO_WRAPPER, coerce_with_report, unwrap_envelope
from coursegen.schema.shapes import Shape

logger = logging.getLogger(__name__)

RepairResult = Literal["coercion-success", "unwrapped-only", "json-parse-failed", "returned-null"]


@dataclass
class RepairTracker:
  """Mutable record of what the hook did during one model call."""

  called: bool = False
  raw_text: str | None = None
  raw_text_length: int = 0
  result: RepairResult | None = None
  wrapper: str | None = None
  error: str | None = None


def build_repair_hook(schema: Shape, tracker: RepairTracker | None = None) -> RepairTextHook:
  """Return a hook that unwraps and coerces raw text before the client re-validates it."""

  def repair(text: str, error: BaseException) -> str | None:
    if tracker is not None:
      tracker.called = True
      tracker.raw_text = text
      tracker.raw_text_length = len(text)
      tracker.error = str(error)

    logger.info("Attempting in-call repair raw_len=%s error=%s", len(text), error)
    try:
      parsed = json.loads(text)
    except json.JSONDecodeError as exc:
      logger.warning("In-call repair could not parse JSON: %s", exc)
      if tracker is not None:
        tracker.result = "json-parse-failed"
        tracker.error = str(exc)
      return None

    unwrapped = unwrap_envelope(parsed, schema)
    if unwrapped.was_wrapped and tracker is not None:
      tracker.wrapper = unwrapped.wrapper

    report = coerce_with_report(unwrapped.value, schema)
    if report.succeeded:
      logger.info("In-call repair coerced output wrapper=%s", unwrapped.wrapper)
      if tracker is not None:
        tracker.result = "coercion-success"
      return json.dumps(report.value)

    # Hand back the unwrapped form so the client reports the real validation error.
    if unwrapped.wrapper != NO_WRAPPER:
      if tracker is not None:
        tracker.result = "unwrapped-only"
      return json.dumps(unwrapped.value)

    if tracker is not None:
      tracker.result = "returned-null"
    return None

  return repair
