"""Unit tests for the in-call repair hook."""

from __future__ import annotations

import json

from coursegen.ai.pipeline.repair_hook import RepairTracker, build_repair_hook
from coursegen.schema.shapes import INTEGER, STRING, ArrayOf, Field, ObjectSchema

SUMMARY_SCHEMA = ObjectSchema(name="summary", fields=(Field("title", STRING), Field("points", INTEGER), Field("tags", ArrayOf(STRING))))


def test_coercible_output_is_rewritten() -> None:
  tracker = RepairTracker()
  hook = build_repair_hook(SUMMARY_SCHEMA, tracker)

  repaired = hook('{"parameter": {"title": "Limits", "points": "3"}}', ValueError("points: expected integer"))

  assert json.loads(repaired) == {"title": "Limits", "points": 3, "tags": []}
  assert tracker.called
  assert tracker.result == "coercion-success"
  assert tracker.wrapper == "parameter"
  assert tracker.raw_text_length == len('{"parameter": {"title": "Limits", "points": "3"}}')


def test_wrapped_but_invalid_output_is_unwrapped_only() -> None:
  tracker = RepairTracker()
  hook = build_repair_hook(SUMMARY_SCHEMA, tracker)

  repaired = hook('{"data": {"title": "Limits", "points": "many"}}', ValueError("schema mismatch"))

  assert json.loads(repaired) == {"title": "Limits", "points": "many"}
  assert tracker.result == "unwrapped-only"
  assert tracker.wrapper == "data"


def test_unparseable_text_gives_up() -> None:
  tracker = RepairTracker()
  hook = build_repair_hook(SUMMARY_SCHEMA, tracker)

  assert hook("Sure! Here is your summary", ValueError("invalid json")) is None
  assert tracker.result == "json-parse-failed"
  assert tracker.raw_text == "Sure! Here is your summary"


def test_uncoercible_unwrapped_output_returns_none() -> None:
  tracker = RepairTracker()
  hook = build_repair_hook(SUMMARY_SCHEMA, tracker)

  assert hook('{"title": ["not", "text"], "points": 1}', ValueError("schema mismatch")) is None
  assert tracker.result == "returned-null"
  assert tracker.wrapper is None


def test_hook_without_tracker() -> None:
  hook = build_repair_hook(SUMMARY_SCHEMA)
  assert json.loads(hook('{"title": "Limits", "points": 2.0, "tags": []}', ValueError("float"))) == {"title": "Limits", "points": 2, "tags": []}
