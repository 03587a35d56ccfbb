"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

import json
import math

import pytest
from fastapi import HTTPException, Request

from coursegen.ai.errors import GenerationFailedError, GenerationInProgressError
from coursegen.core.exceptions import (
  _sanitize_validation_errors,
  generation_failed_exception_handler,
  generation_in_progress_exception_handler,
  global_exception_handler,
  http_exception_handler,
)
from coursegen.core.json import FiniteJSONResponse, replace_non_finite


def _request(path: str = "/v1/content/coerce") -> Request:
  return Request({"type": "http", "method": "POST", "path": path, "headers": [], "query_string": b""})


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body",), "msg": "Value error, Unknown schema 'x'.", "input": {"schema_name": "x"}, "ctx": {"error": ValueError("Unknown schema 'x'."), "input": {"schema_name": "x"}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: Unknown schema 'x'."
  assert "input" not in sanitized[0]["ctx"]


@pytest.mark.anyio
async def test_generation_failure_is_reported_as_retryable() -> None:
  try:
    raise GenerationFailedError(schema_name="quiz") from ValueError("provider said no")
  except GenerationFailedError as exc:
    response = await generation_failed_exception_handler(_request(), exc)

  assert response.status_code == 502
  assert json.loads(response.body) == {"detail": "generation failed, please retry"}


@pytest.mark.anyio
async def test_generation_in_progress_is_a_conflict() -> None:
  response = await generation_in_progress_exception_handler(_request(), GenerationInProgressError("quiz", "lesson-1"))

  assert response.status_code == 409
  assert json.loads(response.body) == {"detail": "Generation already in progress for quiz lesson-1"}


@pytest.mark.anyio
async def test_server_errors_hide_details() -> None:
  http_response = await http_exception_handler(_request(), HTTPException(status_code=503, detail="pool exhausted at db-3"))
  assert json.loads(http_response.body) == {"detail": "Internal Server Error"}

  global_response = await global_exception_handler(_request(), RuntimeError("secret stack"))
  assert global_response.status_code == 500
  assert json.loads(global_response.body) == {"detail": "Internal Server Error"}


@pytest.mark.anyio
async def test_client_errors_keep_details() -> None:
  response = await http_exception_handler(_request(), HTTPException(status_code=404, detail="Unknown generation schema: x"))
  assert response.status_code == 404
  assert json.loads(response.body) == {"detail": "Unknown generation schema: x"}


def test_non_finite_floats_render_as_null() -> None:
  assert replace_non_finite({"a": [1.0, math.nan, (math.inf, 2)], "b": -math.inf}) == {"a": [1.0, None, [None, 2]], "b": None}
  assert json.loads(FiniteJSONResponse(content={"values": [math.nan, 1.5]}).body) == {"values": [None, 1.5]}
