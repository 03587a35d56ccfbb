"""Declarative schema shapes used for validation, coercion and JSON-schema export.

Shapes are frozen so one instance can be shared by the direct validator, the coercer,
the repack prompt and the provider's structured-output constraint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Literal

from coursegen.schema.issues import PathPart, ValidationIssue, kind_of

ScalarKind = Literal["string", "number", "integer", "boolean"]


class Shape:
  """Base for all schema nodes."""

  kind: str = "any"
  description: str | None = None

  def validate(self, value: Any) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    self.check(value, (), issues)
    return issues

  def is_valid(self, value: Any) -> bool:
    return not self.validate(value)

  def check(self, value: Any, path: tuple[PathPart, ...], issues: list[ValidationIssue]) -> None:
    raise NotImplementedError

  def to_json_schema(self) -> dict[str, Any]:
    raise NotImplementedError

  def _mismatch(self, value: Any, path: tuple[PathPart, ...], issues: list[ValidationIssue], message: str | None = None) -> None:
    observed = kind_of(value)
    issues.append(
      ValidationIssue(
        path=path,
        message=message or f"Expected {self.kind}, received {observed}",
        observed_kind=observed,
        expected_kind=self.kind,
      )
    )

  def _with_description(self, payload: dict[str, Any]) -> dict[str, Any]:
    if self.description:
      payload["description"] = self.description
    return payload


@dataclass(frozen=True)
class Scalar(Shape):
  kind: ScalarKind
  description: str | None = None
  min_length: int | None = None

  def check(self, value: Any, path: tuple[PathPart, ...], issues: list[ValidationIssue]) -> None:
    if self.kind == "string":
      if not isinstance(value, str):
        self._mismatch(value, path, issues)
      elif self.min_length is not None and len(value.strip()) < self.min_length:
        self._mismatch(value, path, issues, f"String must contain at least {self.min_length} character(s)")
      return

    if self.kind == "boolean":
      if not isinstance(value, bool):
        self._mismatch(value, path, issues)
      return

    if isinstance(value, bool) or not isinstance(value, int | float):
      self._mismatch(value, path, issues)
      return
    if isinstance(value, float) and not math.isfinite(value):
      self._mismatch(value, path, issues, "Number must be finite")
      return
    if self.kind == "integer" and isinstance(value, float) and not value.is_integer():
      self._mismatch(value, path, issues)

  def to_json_schema(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": self.kind}
    if self.min_length is not None:
      payload["minLength"] = self.min_length
    return self._with_description(payload)


@dataclass(frozen=True)
class EnumOf(Shape):
  options: tuple[str, ...]
  description: str | None = None
  kind: str = field(default="enum", init=False)

  def check(self, value: Any, path: tuple[PathPart, ...], issues: list[ValidationIssue]) -> None:
    if not isinstance(value, str) or value not in self.options:
      self._mismatch(value, path, issues, f"Expected one of {', '.join(self.options)}")

  def to_json_schema(self) -> dict[str, Any]:
    return self._with_description({"type": "string", "enum": list(self.options)})


@dataclass(frozen=True)
class ArrayOf(Shape):
  items: Shape
  description: str | None = None
  min_items: int | None = None
  kind: str = field(default="array", init=False)

  def check(self, value: Any, path: tuple[PathPart, ...], issues: list[ValidationIssue]) -> None:
    if not isinstance(value, list):
      self._mismatch(value, path, issues)
      return
    if self.min_items is not None and len(value) < self.min_items:
      self._mismatch(value, path, issues, f"Array must contain at least {self.min_items} item(s)")
    for index, item in enumerate(value):
      self.items.check(item, (*path, index), issues)

  def to_json_schema(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": "array", "items": self.items.to_json_schema()}
    if self.min_items is not None:
      payload["minItems"] = self.min_items
    return self._with_description(payload)


@dataclass(frozen=True)
class Field:
  name: str
  shape: Shape
  required: bool = True


@dataclass(frozen=True)
class ObjectSchema(Shape):
  """Object shape; unknown keys are ignored by validation and stripped by coercion."""

  fields: tuple[Field, ...]
  name: str = "object"
  description: str | None = None
  kind: str = field(default="object", init=False)

  @cached_property
  def field_map(self) -> dict[str, Field]:
    return {item.name: item for item in self.fields}

  @cached_property
  def required_names(self) -> frozenset[str]:
    return frozenset(item.name for item in self.fields if item.required)

  def check(self, value: Any, path: tuple[PathPart, ...], issues: list[ValidationIssue]) -> None:
    if not isinstance(value, dict):
      self._mismatch(value, path, issues)
      return
    for item in self.fields:
      present = value.get(item.name)
      if present is None:
        if item.required:
          issues.append(
            ValidationIssue(
              path=(*path, item.name),
              message="Required",
              observed_kind="missing" if item.name not in value else "null",
              expected_kind=item.shape.kind,
            )
          )
        continue
      item.shape.check(present, (*path, item.name), issues)

  def to_json_schema(self) -> dict[str, Any]:
    payload: dict[str, Any] = {
      "type": "object",
      "properties": {item.name: item.shape.to_json_schema() for item in self.fields},
      "required": [item.name for item in self.fields if item.required],
      "additionalProperties": False,
    }
    return self._with_description(payload)


STRING = Scalar("string")
NON_EMPTY_STRING = Scalar("string", min_length=1)
NUMBER = Scalar("number")
INTEGER = Scalar("integer")
BOOLEAN = Scalar("boolean")
