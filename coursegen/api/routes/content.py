import logging

from fastapi import APIRouter, HTTPException, status

from coursegen.api.models import CoercePayloadRequest, CoercePayloadResponse, ExpressionSampleRequest, ExpressionSampleResponse, ValidateSectionsRequest, ValidateSectionsResponse
from coursegen.content.expressions import CompileError, compile_expression
from coursegen.content.visualizations import validate_sections
from coursegen.schema.coercion import coerce_with_report
from coursegen.schema.lesson_content import get_schema

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/validate", response_model=ValidateSectionsResponse)
async def validate_content(request: ValidateSectionsRequest) -> ValidateSectionsResponse:
  """Drop or downgrade sections a renderer could not draw."""
  result = validate_sections(request.sections)
  return ValidateSectionsResponse(sections=result.sections, warnings=result.warnings)


@router.post("/expressions/sample", response_model=ExpressionSampleResponse)
async def sample_expression(request: ExpressionSampleRequest) -> ExpressionSampleResponse:
  """Compile an expression in the sandbox and evaluate it at each sample point."""
  compiled = compile_expression(request.expression, request.variables)
  if isinstance(compiled, CompileError):
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"message": compiled.message, "position": compiled.position})

  values = [compiled.evaluate(bindings) for bindings in request.samples]
  return ExpressionSampleResponse(expression=request.expression, variables=list(compiled.variables), values=values)


@router.post("/coerce", response_model=CoercePayloadResponse)
async def coerce_payload(request: CoercePayloadRequest) -> CoercePayloadResponse:
  """Run local coercion against a registered schema and report what changed."""
  try:
    schema = get_schema(request.schema_name)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

  report = coerce_with_report(request.payload, schema)
  if not report.succeeded:
    logger.info("Coercion failed schema=%s issues=%s", request.schema_name, len(report.issues))
  return CoercePayloadResponse(ok=report.succeeded, payload=report.value, wrapper=report.wrapper, issues=[issue.to_dict() for issue in report.issues])
