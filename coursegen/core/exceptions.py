import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError

from coursegen.ai.errors import GENERATION_FAILED_MESSAGE, GenerationFailedError, GenerationInProgressError
from coursegen.core.json import FiniteJSONResponse

logger = logging.getLogger("uvicorn.error")


def _json_safe(value: Any) -> Any:
  """Convert values that JSON cannot carry into strings for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    message = str(value)
    return f"{type(value).__name__}: {message}" if message else type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      ctx = dict(scrubbed["ctx"])
      ctx.pop("input", None)
      scrubbed["ctx"] = ctx
    sanitized.append(_json_safe(scrubbed))
  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> FiniteJSONResponse:
  """Catch unhandled errors without exposing internals."""
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return FiniteJSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> FiniteJSONResponse:
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return FiniteJSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> FiniteJSONResponse:
  """Keep 4xx details for callers; hide 5xx details."""
  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return FiniteJSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))
  return FiniteJSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id))


async def generation_failed_exception_handler(request: Request, exc: GenerationFailedError) -> FiniteJSONResponse:
  """Report exhausted repair layers with a retryable message only."""
  request_id = getattr(request.state, "request_id", None)
  cause = exc.__cause__
  logger.error(
    "Generation failed request_id=%s path=%s schema=%s cause_type=%s", request_id, request.url.path, exc.schema_name, type(cause).__name__ if cause is not None else None
  )
  return FiniteJSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_payload(GENERATION_FAILED_MESSAGE, request_id=request_id))


async def generation_in_progress_exception_handler(request: Request, exc: GenerationInProgressError) -> FiniteJSONResponse:
  request_id = getattr(request.state, "request_id", None)
  logger.info("Generation already in progress request_id=%s target=%s/%s", request_id, exc.target_kind, exc.target_id)
  return FiniteJSONResponse(status_code=status.HTTP_409_CONFLICT, content=_error_payload(str(exc), request_id=request_id))
