"""Shared data contracts for the generation repair pipeline."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from coursegen.schema.issues import ValidationIssue

Layer = Literal[0, 1, 2]
GenerationOutcome = Literal["success", "repaired_layer0", "repaired_layer1", "repaired_layer2", "failed"]
GenerationType = Literal["course", "lesson", "quiz", "diagnostic", "trivia", "completion_summary"]


class GenerationLogContext(BaseModel):
  """Who and what a generation request is for; copied onto the attempt log."""

  generation_type: GenerationType
  schema_name: str
  model_id: str
  user_id: str | None = None
  course_id: str | None = None
  lesson_id: str | None = None
  language: str | None = None
  difficulty: str | None = None
  prompt_text: str | None = None


class GenerationAttempt(BaseModel):
  """Outcome of a single repair layer."""

  layer: Layer
  succeeded: bool
  raw_text: str | None = None
  wrapper_detected: str | None = None
  issues: list[ValidationIssue] = Field(default_factory=list)
  elapsed_ms: int = Field(default=0, ge=0)
  model_id: str | None = None
  error: str | None = None
  detail: str | None = None


class GenerationResult(BaseModel):
  """Validated payload plus the attempts that produced it."""

  payload: dict[str, Any]
  layer: Layer
  outcome: GenerationOutcome
  attempts: list[GenerationAttempt]
  model_id: str
