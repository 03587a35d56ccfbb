"""Validation issue records shared by schema validation and coercion."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

PathPart = str | int


@dataclass(frozen=True)
class ValidationIssue:
  """One mismatch between a value and its schema."""

  path: tuple[PathPart, ...]
  message: str
  observed_kind: str
  expected_kind: str

  @property
  def dotted_path(self) -> str:
    if not self.path:
      return "<root>"
    return ".".join(str(part) for part in self.path)

  def to_dict(self) -> dict[str, Any]:
    return {
      "path": self.dotted_path,
      "message": self.message,
      "observed": self.observed_kind,
      "expected": self.expected_kind,
    }


def kind_of(value: Any) -> str:
  """Name a decoded JSON value's kind the way schemas name them."""
  if value is None:
    return "null"
  # bool is an int subclass; check it first.
  if isinstance(value, bool):
    return "boolean"
  if isinstance(value, int):
    return "integer"
  if isinstance(value, float):
    if not math.isfinite(value):
      return "non-finite number"
    return "integer" if value.is_integer() else "number"
  if isinstance(value, str):
    return "string"
  if isinstance(value, list | tuple):
    return "array"
  if isinstance(value, dict):
    return "object"
  return type(value).__name__


def format_issues(issues: list[ValidationIssue], *, limit: int = 5) -> str:
  """Render issues compactly for log lines and repack prompts."""
  rendered = [f"{issue.dotted_path}: {issue.message}" for issue in issues[:limit]]
  if len(issues) > limit:
    rendered.append(f"... {len(issues) - limit} more")
  return "; ".join(rendered)
