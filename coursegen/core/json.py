import json
import math
from typing import Any

from fastapi.responses import JSONResponse


def replace_non_finite(value: Any) -> Any:
  """Map nan and +/-inf to None so payloads stay valid JSON."""
  if isinstance(value, float) and not math.isfinite(value):
    return None
  if isinstance(value, dict):
    return {key: replace_non_finite(item) for key, item in value.items()}
  if isinstance(value, list | tuple):
    return [replace_non_finite(item) for item in value]
  return value


class FiniteJSONResponse(JSONResponse):
  """JSONResponse that encodes non-finite floats as null."""

  def render(self, content: Any) -> bytes:
    return json.dumps(replace_non_finite(content), ensure_ascii=False, allow_nan=False, indent=None, separators=(",", ":")).encode("utf-8")
