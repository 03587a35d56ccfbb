"""Structural envelope unwrapping and type-safe coercion towards a schema."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Final

from coursegen.schema.issues import PathPart, ValidationIssue, kind_of
from coursegen.schema.shapes import ArrayOf, EnumOf, ObjectSchema, Scalar, Shape

logger = logging.getLogger(__name__)

WRAPPER_KEYS: Final[tuple[str, ...]] = (
  "parameter",
  "parameters",
  "arguments",
  "input",
  "data",
  "result",
  "response",
  "output",
  "json",
)
NO_WRAPPER: Final[str] = "none"

_SEPARATORS_RE = re.compile(r"[\s\-_/]+")
_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

_UNCONVERTED = object()


@dataclass(frozen=True)
class UnwrapResult:
  value: Any
  wrapper: str = NO_WRAPPER

  @property
  def was_wrapped(self) -> bool:
    return self.wrapper != NO_WRAPPER


@dataclass
class CoercionReport:
  """Coerced value (None on failure) plus everything the coercer noticed."""

  value: Any | None
  wrapper: str = NO_WRAPPER
  issues: list[ValidationIssue] = field(default_factory=list)

  @property
  def succeeded(self) -> bool:
    return self.value is not None


def parse_embedded_json(text: str) -> Any | None:
  """Parse a string that looks like a JSON object or array; None otherwise."""
  candidate = text.strip()
  if not candidate or candidate[0] not in "{[":
    return None
  try:
    return json.loads(candidate)
  except json.JSONDecodeError:
    return None


def _matches_top_level(inner: Any, schema: Shape) -> bool:
  if isinstance(schema, ArrayOf):
    return isinstance(inner, list)
  if not isinstance(schema, ObjectSchema) or not isinstance(inner, dict):
    return False
  expected = schema.required_names or frozenset(schema.field_map)
  return any(key in expected for key in inner)


def unwrap_envelope(value: Any, schema: Shape) -> UnwrapResult:
  """Strip one envelope level when the payload sits under a single non-schema key."""
  if not isinstance(value, dict):
    return UnwrapResult(value)

  present = {key: item for key, item in value.items() if item is not None}
  if len(present) != 1:
    return UnwrapResult(value)

  key, inner = next(iter(present.items()))
  if isinstance(schema, ObjectSchema) and key in schema.field_map:
    return UnwrapResult(value)

  wrapper = key if key in WRAPPER_KEYS else f"single_key:{key}"
  if isinstance(inner, str):
    inner = parse_embedded_json(inner)
    if inner is None:
      return UnwrapResult(value)
    wrapper = f"{key}:string"

  if not _matches_top_level(inner, schema):
    return UnwrapResult(value)

  logger.debug("Unwrapped model envelope wrapper=%s", wrapper)
  return UnwrapResult(inner, wrapper)


def _normalize_token(value: str) -> str:
  return _SEPARATORS_RE.sub("_", value.strip().lower()).strip("_")


def match_enum(value: str, options: tuple[str, ...]) -> str | None:
  """Resolve a near-miss enum value by case, separator, then unique substring."""
  if value in options:
    return value
  normalized = _normalize_token(value)
  if not normalized:
    return None
  for option in options:
    if _normalize_token(option) == normalized:
      return option
  candidates = [option for option in options if _normalize_token(option) in normalized or normalized in _normalize_token(option)]
  if len(candidates) == 1:
    return candidates[0]
  return None


def _issue(path: tuple[PathPart, ...], value: Any, shape: Shape, message: str) -> ValidationIssue:
  return ValidationIssue(path=path, message=message, observed_kind=kind_of(value), expected_kind=shape.kind)


def _coerce_scalar(value: Any, shape: Scalar) -> Any:
  if shape.kind == "string":
    if isinstance(value, str):
      return value
    if isinstance(value, bool):
      return "true" if value else "false"
    if isinstance(value, int):
      return str(value)
    if isinstance(value, float) and math.isfinite(value):
      return str(int(value)) if value.is_integer() else repr(value)
    return _UNCONVERTED

  if shape.kind == "boolean":
    if isinstance(value, bool):
      return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
      return value.strip().lower() == "true"
    return _UNCONVERTED

  if isinstance(value, bool):
    return _UNCONVERTED

  number: float | int
  if isinstance(value, int | float):
    number = value
  elif isinstance(value, str) and _NUMERIC_RE.match(value.strip()):
    text = value.strip()
    try:
      number = int(text)
    except ValueError:
      number = float(text)
  else:
    return _UNCONVERTED

  if isinstance(number, float) and not math.isfinite(number):
    return _UNCONVERTED
  if shape.kind == "integer":
    if isinstance(number, float):
      if not number.is_integer():
        return _UNCONVERTED
      return int(number)
    return number
  return number


def coerce_value(value: Any, shape: Shape, issues: list[ValidationIssue], path: tuple[PathPart, ...] = ()) -> Any:
  """Reshape `value` towards `shape`; unconvertible nodes are kept as-is and recorded."""
  if isinstance(shape, ObjectSchema):
    if isinstance(value, str):
      parsed = parse_embedded_json(value)
      if isinstance(parsed, dict):
        value = parsed
    if not isinstance(value, dict):
      issues.append(_issue(path, value, shape, f"Expected object, received {kind_of(value)}"))
      return value
    return _coerce_object(value, shape, issues, path)

  if isinstance(shape, ArrayOf):
    if isinstance(value, str):
      parsed = parse_embedded_json(value)
      if parsed is not None:
        value = parsed
    if isinstance(value, dict):
      value = [value]
    if not isinstance(value, list):
      issues.append(_issue(path, value, shape, f"Expected array, received {kind_of(value)}"))
      return value
    return [coerce_value(item, shape.items, issues, (*path, index)) for index, item in enumerate(value)]

  if isinstance(shape, EnumOf):
    if isinstance(value, str):
      matched = match_enum(value, shape.options)
      if matched is not None:
        return matched
    issues.append(_issue(path, value, shape, f"Expected one of {', '.join(shape.options)}"))
    return value

  if isinstance(shape, Scalar):
    converted = _coerce_scalar(value, shape)
    if converted is _UNCONVERTED:
      issues.append(_issue(path, value, shape, f"Cannot convert {kind_of(value)} to {shape.kind}"))
      return value
    return converted

  return value


def _coerce_object(value: dict[str, Any], schema: ObjectSchema, issues: list[ValidationIssue], path: tuple[PathPart, ...]) -> dict[str, Any]:
  result: dict[str, Any] = {}
  for item in schema.fields:
    raw = value.get(item.name)
    if raw is None:
      if not item.required:
        continue
      if isinstance(item.shape, ArrayOf):
        result[item.name] = []
        continue
      issues.append(
        ValidationIssue(
          path=(*path, item.name),
          message="Required",
          observed_kind="missing" if item.name not in value else "null",
          expected_kind=item.shape.kind,
        )
      )
      continue
    result[item.name] = coerce_value(raw, item.shape, issues, (*path, item.name))

  stripped = [key for key in value if key not in schema.field_map]
  if stripped:
    logger.debug("Stripped unknown keys path=%s keys=%s", ".".join(str(p) for p in path) or "<root>", stripped)
  return result


def _merge_issues(first: list[ValidationIssue], second: list[ValidationIssue]) -> list[ValidationIssue]:
  """Append validation issues for paths the coercer did not already report."""
  seen = {issue.path for issue in first}
  merged = list(first)
  for issue in second:
    if issue.path not in seen:
      seen.add(issue.path)
      merged.append(issue)
  return merged


def coerce_with_report(value: Any, schema: Shape) -> CoercionReport:
  """Unwrap, coerce and validate in one pass without raising."""
  unwrapped = unwrap_envelope(value, schema)
  coercion_issues: list[ValidationIssue] = []
  coerced = coerce_value(unwrapped.value, schema, coercion_issues)
  remaining = schema.validate(coerced)
  if remaining:
    return CoercionReport(value=None, wrapper=unwrapped.wrapper, issues=_merge_issues(coercion_issues, remaining))
  return CoercionReport(value=coerced, wrapper=unwrapped.wrapper, issues=coercion_issues)


def coerce(value: Any, schema: Shape, issues: list[ValidationIssue]) -> Any | None:
  """Return the coerced value, or None when it still fails validation; detail lands in `issues`."""
  report = coerce_with_report(value, schema)
  issues.extend(report.issues)
  return report.value
