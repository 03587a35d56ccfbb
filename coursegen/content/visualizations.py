"""Section cleanup that removes or repairs content a renderer could not draw.

Every section is checked against its type's required fields first. Visualization
sections then have their expressions compiled in the sandbox and test-evaluated once so
a lesson never reaches the renderer with an expression that would throw.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from coursegen.content.expressions import CompileError, compile_expression, compile_parametric_surface, compile_vector_field
from coursegen.content.sections import infer_viz_type, is_known_type, is_known_viz_type, salvage_text, section_error

logger = logging.getLogger(__name__)

FIELD_FUNCTION_RE = re.compile(r"\[([^,\]]+),\s*([^\]]+)\]")

FUNCTION_PLOT_WARNING = "Removed malformed function_plot visualization (expression used unsupported variables or failed to evaluate)"
VECTOR_FIELD_WARNING = "Removed malformed vector_field visualization (field function or vectors failed to evaluate)"


def _parametric_warning(viz_type: str) -> str:
  return f"Removed malformed {viz_type} visualization (parametric expressions failed to evaluate)"


@dataclass
class SectionValidationResult:
  sections: list[dict[str, Any]] = field(default_factory=list)
  warnings: list[str] = field(default_factory=list)


def _is_finite_number(value: Any) -> bool:
  return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _is_point(value: Any) -> bool:
  return isinstance(value, list | tuple) and len(value) == 2 and all(_is_finite_number(item) for item in value)


def _check_function_plot(spec: Mapping[str, Any]) -> bool:
  functions = spec.get("functions")
  if not isinstance(functions, list) or not functions:
    return True

  for entry in functions:
    expression = entry.get("expression") if isinstance(entry, Mapping) else None
    if not expression:
      continue
    compiled = compile_expression(expression, ("x",))
    if isinstance(compiled, CompileError):
      logger.debug("Function plot expression rejected: %s", compiled)
      return False
    compiled.evaluate({"x": 0.0})
  return True


def _check_vector_field(spec: Mapping[str, Any]) -> bool:
  field_function = spec.get("fieldFunction")
  if field_function:
    if not isinstance(field_function, str):
      return False
    match = FIELD_FUNCTION_RE.search(field_function)
    if match is None:
      return False
    compiled = compile_vector_field(match.group(1).strip(), match.group(2).strip())
    if isinstance(compiled, CompileError):
      logger.debug("Vector field expression rejected: %s", compiled)
      return False
    compiled.evaluate(0.0, 0.0)

  vectors = spec.get("vectors")
  if vectors is None:
    return True
  if not isinstance(vectors, list):
    return False
  for vector in vectors:
    if not isinstance(vector, Mapping):
      return False
    if not _is_point(vector.get("origin")) or not _is_point(vector.get("direction")):
      return False
  return True


def _check_parametric_surface(spec: Mapping[str, Any]) -> bool:
  surface = spec.get("parametricSurface")
  if not surface:
    return True
  if not isinstance(surface, Mapping):
    return False

  expressions = (surface.get("xExpr"), surface.get("yExpr"), surface.get("zExpr"))
  # Incomplete surfaces render nothing but cannot crash.
  if not all(expressions):
    return True
  if not all(isinstance(item, str) for item in expressions):
    return False

  compiled = compile_parametric_surface(*expressions)
  if isinstance(compiled, CompileError):
    logger.debug("Parametric surface expression rejected: %s", compiled)
    return False
  compiled.evaluate(0.0, 0.0)
  return True


def _normalize_spec(section: dict[str, Any]) -> bool:
  """Decode a stringified spec in place; False when the spec cannot be read as a mapping."""
  spec = section.get("spec")
  if spec is None:
    return True
  if isinstance(spec, str):
    try:
      spec = json.loads(spec)
    except json.JSONDecodeError:
      return False
    section["spec"] = spec
  return isinstance(spec, Mapping)


def _check_visualization(section: dict[str, Any], warnings: list[str]) -> bool:
  viz_type = section["vizType"]
  spec = section.get("spec")
  if spec is None:
    return True

  if viz_type == "function_plot":
    if not _check_function_plot(spec):
      warnings.append(FUNCTION_PLOT_WARNING)
      return False
  elif viz_type == "vector_field":
    if not _check_vector_field(spec):
      warnings.append(VECTOR_FIELD_WARNING)
      return False
  elif viz_type in ("3d_surface", "parametric_plot"):
    if not _check_parametric_surface(spec):
      warnings.append(_parametric_warning(viz_type))
      return False
  return True


def _repair_visualization(section: dict[str, Any], warnings: list[str]) -> dict[str, Any] | None:
  """Bring a visualization section to a renderable form, or None to drop it."""
  if not _normalize_spec(section):
    warnings.append(f"Removed visualization with unreadable spec (vizType={section.get('vizType')})")
    return None

  if not is_known_viz_type(section.get("vizType")):
    spec = section.get("spec")
    inferred = infer_viz_type(spec) if isinstance(spec, Mapping) else None
    if inferred is not None:
      section["vizType"] = inferred
      caption = section.get("caption")
      if not (isinstance(caption, str) and caption.strip()):
        content = section.get("content")
        section["caption"] = content if isinstance(content, str) else ""
      warnings.append(f"Inferred {inferred} for visualization section without a valid vizType")
    else:
      caption = section.get("caption") if isinstance(section.get("caption"), str) else section.get("content")
      if isinstance(caption, str) and caption.strip():
        warnings.append("Converted malformed visualization section to text")
        return {"type": "text", "content": f"*[Visualization: {caption}]*"}
      warnings.append("Removed visualization section without a renderable spec")
      return None

  if error := section_error(section):
    logger.debug("Visualization section failed typed decode: %s", error)
    warnings.append(f"Removed malformed visualization section ({error})")
    return None

  if not _check_visualization(section, warnings):
    return None
  return section


def _validate_one(raw: Any, warnings: list[str]) -> dict[str, Any] | None:
  if not isinstance(raw, Mapping):
    warnings.append("Removed section that is not an object")
    return None

  section = dict(raw)
  section_type = section.get("type")
  if not is_known_type(section_type):
    warnings.append(f"Removed section with unknown type {section_type!r}")
    return None

  if section_type == "visualization":
    return _repair_visualization(section, warnings)

  error = section_error(section)
  if error is None:
    return section

  salvaged = salvage_text(section)
  if salvaged is not None:
    logger.info("Downgrading %s section to text: %s", section_type, error)
    warnings.append(f"Converted malformed {section_type} section to text")
    return {"type": "text", "content": salvaged}

  warnings.append(f"Removed malformed {section_type} section (missing required fields)")
  return None


def validate_sections(sections: Sequence[Any]) -> SectionValidationResult:
  """Return renderable sections in input order plus one warning per change made."""
  result = SectionValidationResult()
  for raw in sections:
    cleaned = _validate_one(raw, result.warnings)
    if cleaned is not None:
      result.sections.append(cleaned)

  if result.warnings:
    logger.info("Section validation kept %s of %s sections with %s warning(s)", len(result.sections), len(sections), len(result.warnings))
  return result


def validate_visualization_section(section: Any) -> tuple[dict[str, Any] | None, list[str]]:
  """Validate a single regenerated section."""
  result = validate_sections([section])
  return (result.sections[0] if result.sections else None), result.warnings
