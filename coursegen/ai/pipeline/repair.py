"""Layered recovery around a structured-output model call.

Layer 0 asks the model directly (with an in-call repair hook), Layer 1 coerces the raw
text locally, and Layer 2 asks a cheaper model to reformat the raw text. Layers run in
order and stop at the first success; every path ends by finalising the attempt log.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any, NoReturn

from coursegen.ai.errors import GENERATION_FAILED_MESSAGE, GenerationFailedError, ModelOutputError, classify_error
from coursegen.ai.json_parser import parse_model_json
from coursegen.ai.pipeline.contracts import GenerationAttempt, GenerationResult, Layer
from coursegen.ai.pipeline.repair_hook import RepairTracker, build_repair_hook
from coursegen.ai.providers.base import AIModel, ModelFactory
from coursegen.schema.coercion import CoercionReport, coerce_with_report
from coursegen.schema.issues import ValidationIssue, format_issues
from coursegen.schema.shapes import ObjectSchema
from coursegen.telemetry.generation_log import GenerationAttemptLog

logger = logging.getLogger(__name__)

RepackSelector = Callable[[], str | None]

REPACK_INSTRUCTION = (
  "The following JSON was generated by an AI but doesn't match the required schema. "
  "Fix it to conform exactly to the schema. Preserve ALL content and only fix structural issues "
  "(wrong types, extra fields, missing fields, wrong enum values). Do not invent new content."
)


def build_repack_prompt(raw_text: str) -> str:
  return f"{REPACK_INSTRUCTION}\n\nJSON to fix:\n{raw_text}"


def _elapsed_ms(started: float) -> int:
  return int((time.monotonic() - started) * 1000)


class GenerationRepairPipeline:
  """Run one generation request through the repair layers."""

  def __init__(
    self,
    model: AIModel,
    schema: ObjectSchema,
    *,
    log: GenerationAttemptLog,
    schema_name: str | None = None,
    repack_selector: RepackSelector | None = None,
    model_factory: ModelFactory | None = None,
  ) -> None:
    self._model = model
    self._schema = schema
    self._log = log
    self._schema_name = schema_name or schema.name
    self._repack_selector = repack_selector
    self._model_factory = model_factory

  async def run(self, prompt: str) -> GenerationResult:
    """Return a validated payload or raise GenerationFailedError."""
    try:
      return await self._run(prompt)
    finally:
      await self._log.finalize()

  async def _run(self, prompt: str) -> GenerationResult:
    json_schema = self._schema.to_json_schema()
    tracker = RepairTracker()

    # Layer 0: direct call with the in-call repair hook.
    started = time.monotonic()
    layer0_error: BaseException
    raw_text: str | None
    layer0_issues: list[ValidationIssue] = []
    try:
      response = await self._model.generate_structured(prompt, json_schema, repair_text=build_repair_hook(self._schema, tracker))

    except ModelOutputError as exc:
      layer0_error = exc
      raw_text = exc.raw_text or tracker.raw_text

    except Exception as exc:  # noqa: BLE001 - provider and timeout failures are layer failures
      layer0_error = exc
      raw_text = tracker.raw_text

    else:
      layer0_issues = self._schema.validate(response.content)
      if not layer0_issues:
        self._log.record_layer0_tracker(tracker)
        self._log.record_layer(
          GenerationAttempt(
            layer=0,
            succeeded=True,
            raw_text=tracker.raw_text,
            wrapper_detected=tracker.wrapper,
            elapsed_ms=_elapsed_ms(started),
            model_id=self._model.name,
            detail=tracker.result or "direct",
          )
        )
        logger.info("Generation succeeded at layer 0 schema=%s repair=%s", self._schema_name, tracker.result)
        return self._result(response.content, 0, self._model.name)

      raw_text = response.raw_text or json.dumps(response.content, default=str)
      layer0_error = ModelOutputError("Model returned an object that does not match the schema", raw_text=raw_text)

    self._log.record_layer0_tracker(tracker)
    self._log.record_layer(
      GenerationAttempt(
        layer=0,
        succeeded=False,
        raw_text=raw_text,
        wrapper_detected=tracker.wrapper,
        issues=layer0_issues,
        elapsed_ms=_elapsed_ms(started),
        model_id=self._model.name,
        error=classify_error(layer0_error),
        detail=str(layer0_error),
      )
    )
    logger.warning("Layer 0 failed schema=%s error=%s", self._schema_name, layer0_error)

    if raw_text is None:
      return self._fail(layer0_error)

    # Layer 1: local parse and coercion of the raw text.
    payload = self._layer1(raw_text)
    if payload is not None:
      return self._result(payload, 1, self._model.name)

    # Layer 2: ask a cheaper model to reformat the raw text.
    repacked = await self._layer2(raw_text, json_schema)
    if repacked is not None:
      payload, model_id = repacked
      return self._result(payload, 2, model_id)

    return self._fail(layer0_error)

  def _layer1(self, raw_text: str) -> dict[str, Any] | None:
    started = time.monotonic()
    try:
      parsed = parse_model_json(raw_text)
    except json.JSONDecodeError as exc:
      self._log.record_layer(
        GenerationAttempt(layer=1, succeeded=False, raw_text=raw_text, elapsed_ms=_elapsed_ms(started), error="json-parse-failed", detail=str(exc))
      )
      logger.warning("Layer 1 could not parse raw text schema=%s: %s", self._schema_name, exc)
      return None

    report = coerce_with_report(parsed, self._schema)
    self._record_coercion(1, report, raw_text, started, model_id=None)
    if report.succeeded:
      logger.info("Generation repaired at layer 1 schema=%s wrapper=%s", self._schema_name, report.wrapper)
      return report.value
    logger.warning("Layer 1 coercion failed schema=%s issues=%s", self._schema_name, format_issues(report.issues))
    return None

  async def _layer2(self, raw_text: str, json_schema: dict[str, Any]) -> tuple[dict[str, Any], str] | None:
    if self._repack_selector is None or self._model_factory is None:
      logger.info("Layer 2 not configured schema=%s", self._schema_name)
      return None

    model_id = self._repack_selector()
    if model_id is None:
      logger.info("Layer 2 skipped, no repack model available schema=%s", self._schema_name)
      return None
    if model_id == self._model.name:
      logger.info("Layer 2 skipped, repack model matches the failed model schema=%s model=%s", self._schema_name, model_id)
      return None

    started = time.monotonic()
    try:
      repack_model = self._model_factory(model_id)
      response = await repack_model.generate_structured(build_repack_prompt(raw_text), json_schema)

    except Exception as exc:  # noqa: BLE001 - repack failures end the pipeline, not the request handler
      self._log.record_layer(
        GenerationAttempt(layer=2, succeeded=False, raw_text=raw_text, elapsed_ms=_elapsed_ms(started), model_id=model_id, error=classify_error(exc), detail=str(exc))
      )
      logger.warning("Layer 2 repack failed schema=%s model=%s: %s", self._schema_name, model_id, exc)
      return None

    report = coerce_with_report(response.content, self._schema)
    self._record_coercion(2, report, response.raw_text or raw_text, started, model_id=model_id)
    if report.succeeded:
      logger.info("Generation repaired at layer 2 schema=%s model=%s", self._schema_name, model_id)
      return report.value, model_id
    logger.warning("Layer 2 output still invalid schema=%s issues=%s", self._schema_name, format_issues(report.issues))
    return None

  def _record_coercion(self, layer: Layer, report: CoercionReport, raw_text: str, started: float, *, model_id: str | None) -> None:
    self._log.record_layer(
      GenerationAttempt(
        layer=layer,
        succeeded=report.succeeded,
        raw_text=raw_text,
        wrapper_detected=report.wrapper,
        issues=report.issues,
        elapsed_ms=_elapsed_ms(started),
        model_id=model_id,
        error=None if report.succeeded else "validation",
      )
    )

  def _result(self, payload: dict[str, Any], layer: Layer, model_id: str) -> GenerationResult:
    return GenerationResult(payload=payload, layer=layer, outcome=self._log.resolve_outcome(), attempts=self._log.attempts, model_id=model_id)

  def _fail(self, layer0_error: BaseException) -> NoReturn:
    self._log.record_failure(str(layer0_error) or GENERATION_FAILED_MESSAGE)
    logger.error("Generation failed after all layers schema=%s", self._schema_name)
    raise GenerationFailedError(schema_name=self._schema_name) from layer0_error
