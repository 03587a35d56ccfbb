"""Lenient JSON parsing for raw model text."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n(.*?)\n?\s*```\s*$", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def parse_model_json(raw: str) -> Any:
  """Parse model output, recovering from fences, surrounding prose and trailing commas.

  Raises json.JSONDecodeError when no recovery pass yields valid JSON.
  """
  if not isinstance(raw, str):
    raise TypeError(f"Expected model text, received {type(raw).__name__}")

  # Valid JSON is returned untouched.
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    last_error = exc

  fenced = _FENCE_RE.match(raw)
  text = fenced.group(1) if fenced else raw

  candidate = extract_json_block(text)
  if candidate is None:
    raise last_error

  for attempt in (candidate, strip_trailing_commas(candidate)):
    try:
      return json.loads(attempt)
    except json.JSONDecodeError as exc:
      last_error = exc

  raise last_error


def extract_json_block(raw: str) -> str | None:
  """Return the first balanced object or array in `raw`, honouring string escapes."""
  start: int | None = None
  depth = 0
  in_string = False
  escaped = False

  for index, char in enumerate(raw):
    if start is None:
      if char in "{[":
        start = index
        depth = 1
      continue

    if in_string:
      if escaped:
        escaped = False
      elif char == "\\":
        escaped = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start : index + 1]

  return None


def strip_trailing_commas(raw: str) -> str:
  return _TRAILING_COMMA_RE.sub(r"\1", raw)
