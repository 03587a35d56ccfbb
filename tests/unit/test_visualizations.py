"""Unit tests for section validation and visualization repair."""

from __future__ import annotations

import json

from coursegen.content.visualizations import FUNCTION_PLOT_WARNING, VECTOR_FIELD_WARNING, validate_sections, validate_visualization_section


def _plot(*expressions: str) -> dict:
  return {"type": "visualization", "vizType": "function_plot", "spec": {"functions": [{"expression": expr} for expr in expressions]}, "caption": "Plot"}


def _vectors(origin: list, direction: list) -> dict:
  return {"type": "visualization", "vizType": "vector_field", "spec": {"vectors": [{"origin": origin, "direction": direction}]}}


def test_function_plot_with_foreign_variable_is_dropped() -> None:
  text = {"type": "text", "content": "Consider the line below."}
  result = validate_sections([text, _plot("x+y")])

  assert result.sections == [text]
  assert len(result.warnings) == 1
  assert "function_plot" in result.warnings[0]
  assert result.warnings[0] == FUNCTION_PLOT_WARNING


def test_one_bad_function_drops_the_whole_plot() -> None:
  result = validate_sections([_plot("x^2", "sin(x", "cos(x)")])
  assert result.sections == []
  assert result.warnings == [FUNCTION_PLOT_WARNING]


def test_superscript_exponent_drops_the_plot() -> None:
  result = validate_sections([_plot("x^²")])
  assert result.sections == []
  assert result.warnings == [FUNCTION_PLOT_WARNING]


def test_non_finite_values_do_not_reject_a_plot() -> None:
  section = _plot("1/x", "log(x)")
  result = validate_sections([section])
  assert result.sections == [section]
  assert result.warnings == []


def test_plot_without_functions_is_accepted() -> None:
  section = {"type": "visualization", "vizType": "function_plot", "spec": {"functions": []}}
  assert validate_sections([section]).sections == [section]


def test_vector_field_shapes() -> None:
  good = _vectors([0, 0], [1, 1])
  bad = _vectors([0], [1, 1])

  result = validate_sections([good, bad])

  assert result.sections == [good]
  assert result.warnings == [VECTOR_FIELD_WARNING]


def test_vector_points_reject_booleans_and_non_finite() -> None:
  assert validate_sections([_vectors([True, 0], [1, 1])]).sections == []
  assert validate_sections([_vectors([0, 0], [float("inf"), 1])]).sections == []


def test_field_function_is_compiled() -> None:
  good = {"type": "visualization", "vizType": "vector_field", "spec": {"fieldFunction": "(x, y) => [-y, x]"}}
  bad = {"type": "visualization", "vizType": "vector_field", "spec": {"fieldFunction": "(x, y) => [-y, z]"}}
  not_text = {"type": "visualization", "vizType": "vector_field", "spec": {"fieldFunction": 42}}
  no_brackets = {"type": "visualization", "vizType": "vector_field", "spec": {"fieldFunction": "rotate"}}

  result = validate_sections([good, bad, not_text, no_brackets])

  assert result.sections == [good]
  assert result.warnings == [VECTOR_FIELD_WARNING] * 3


def test_parametric_surface_expressions() -> None:
  sphere = {
    "type": "visualization",
    "vizType": "3d_surface",
    "spec": {"parametricSurface": {"xExpr": "cos(u) * sin(v)", "yExpr": "sin(u) * sin(v)", "zExpr": "cos(v)"}},
  }
  broken = {"type": "visualization", "vizType": "parametric_plot", "spec": {"parametricSurface": {"xExpr": "u", "yExpr": "v", "zExpr": "u * w"}}}
  partial = {"type": "visualization", "vizType": "3d_surface", "spec": {"parametricSurface": {"xExpr": "u"}}}

  result = validate_sections([sphere, broken, partial])

  assert result.sections == [sphere, partial]
  assert result.warnings == ["Removed malformed parametric_plot visualization (parametric expressions failed to evaluate)"]


def test_malformed_sections_are_downgraded_or_dropped() -> None:
  definition = {"type": "definition", "term": "Limit", "definition": "", "intuition": "Values get arbitrarily close."}
  math_section = {"type": "math"}
  blank_text = {"type": "text", "content": "   "}

  result = validate_sections([definition, math_section, blank_text])

  assert result.sections == [{"type": "text", "content": "Values get arbitrarily close."}]
  assert result.warnings == [
    "Converted malformed definition section to text",
    "Removed malformed math section (missing required fields)",
    "Removed malformed text section (missing required fields)",
  ]


def test_unknown_and_non_object_sections_are_dropped() -> None:
  result = validate_sections([{"type": "video", "url": "x"}, "just a string", {"content": "no type"}])

  assert result.sections == []
  assert result.warnings == [
    "Removed section with unknown type 'video'",
    "Removed section that is not an object",
    "Removed section with unknown type None",
  ]


def test_stringified_spec_is_decoded() -> None:
  section = {"type": "visualization", "vizType": "function_plot", "spec": json.dumps({"functions": [{"expression": "sin(x)"}]})}
  result = validate_sections([section])

  assert result.warnings == []
  assert result.sections[0]["spec"] == {"functions": [{"expression": "sin(x)"}]}
  # Input is not mutated.
  assert isinstance(section["spec"], str)


def test_unreadable_spec_is_dropped() -> None:
  section = {"type": "visualization", "vizType": "function_plot", "spec": "{not json"}
  result = validate_sections([section])
  assert result.sections == []
  assert result.warnings == ["Removed visualization with unreadable spec (vizType=function_plot)"]


def test_missing_viz_type_is_inferred_from_spec() -> None:
  section = {"type": "visualization", "vizType": "plot", "spec": {"functions": [{"expression": "x^2"}]}, "caption": "Parabola"}
  result = validate_sections([section])

  assert result.sections[0]["vizType"] == "function_plot"
  assert result.warnings == ["Inferred function_plot for visualization section without a valid vizType"]


def test_uninferable_visualization_becomes_caption_text() -> None:
  section = {"type": "visualization", "vizType": "diagram", "spec": {"nodes": []}, "caption": "A circle inscribed in a square"}
  result = validate_sections([section])

  assert result.sections == [{"type": "text", "content": "*[Visualization: A circle inscribed in a square]*"}]
  assert result.warnings == ["Converted malformed visualization section to text"]


def test_validation_is_idempotent() -> None:
  sections = [
    {"type": "text", "content": "Intro"},
    _plot("x+y"),
    {"type": "definition", "term": "Limit", "definition": "", "intuition": "Close."},
    {"type": "visualization", "vizType": "plot", "spec": {"functions": [{"expression": "x"}]}},
    {"type": "visualization", "vizType": "function_plot", "spec": json.dumps({"functions": [{"expression": "x"}]})},
    _vectors([0, 0], [1, 0]),
  ]

  first = validate_sections(sections)
  second = validate_sections(first.sections)

  assert first.warnings
  assert second.sections == first.sections
  assert second.warnings == []


def test_single_section_helper() -> None:
  good = _plot("x^2")
  assert validate_visualization_section(good) == (good, [])

  cleaned, warnings = validate_visualization_section(_plot("x+y"))
  assert cleaned is None
  assert warnings == [FUNCTION_PLOT_WARNING]
