from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, StrictStr


class ValidateSectionsRequest(BaseModel):
  """Sections as produced by a model, before cleanup."""

  sections: list[Any] = Field(max_length=200, description="Raw content sections in render order.")


class ValidateSectionsResponse(BaseModel):
  sections: list[dict[str, Any]]
  warnings: list[StrictStr]


class ExpressionSampleRequest(BaseModel):
  """Compile one expression and evaluate it at the given points."""

  expression: StrictStr = Field(min_length=1, max_length=2000, examples=["x^2 - 3*x + 1"])
  variables: list[StrictStr] = Field(default_factory=lambda: ["x"], min_length=1, max_length=4)
  samples: list[dict[str, float]] = Field(default_factory=list, max_length=500, description="Variable bindings per sample point.")


class ExpressionSampleResponse(BaseModel):
  expression: StrictStr
  variables: list[StrictStr]
  values: list[float | None] = Field(description="One value per sample; null where the result is not finite.")


class CoercePayloadRequest(BaseModel):
  """Coerce a decoded model payload towards a registered generation schema."""

  schema_name: StrictStr = Field(examples=["lesson_content"])
  payload: Any


class CoercePayloadResponse(BaseModel):
  ok: bool
  payload: dict[str, Any] | None
  wrapper: StrictStr
  issues: list[dict[str, Any]]
