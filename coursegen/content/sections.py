"""Typed content sections and the per-type required-field rules."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, Literal

import msgspec

from coursegen.schema.lesson_content import SECTION_TYPES, VISUALIZATION_TYPES

NonEmptyText = Annotated[str, msgspec.Meta(min_length=1)]
VizType = Literal[
  "function_plot",
  "parametric_plot",
  "vector_field",
  "geometry",
  "3d_surface",
  "manifold",
  "tangent_space",
  "coordinate_transform",
]

# Free-form prose that can stand in for a malformed section, in priority order.
SALVAGE_FIELDS: tuple[str, ...] = ("content", "explanation", "definition", "statement", "intuition", "caption")


class SectionBase(msgspec.Struct, tag_field="type", rename="camel"):
  """Base for all content sections; unknown keys are tolerated."""

  required_text: ClassVar[tuple[str, ...]] = ()

  def __post_init__(self) -> None:
    for name in self.required_text:
      if not getattr(self, name).strip():
        raise ValueError(f"`{name}` must not be blank")


class TextSection(SectionBase, tag="text"):
  content: NonEmptyText
  required_text: ClassVar[tuple[str, ...]] = ("content",)


class MathSection(SectionBase, tag="math"):
  latex: NonEmptyText
  explanation: str | None = None
  required_text: ClassVar[tuple[str, ...]] = ("latex",)


class DefinitionSection(SectionBase, tag="definition"):
  term: NonEmptyText
  definition: NonEmptyText
  intuition: str | None = None
  required_text: ClassVar[tuple[str, ...]] = ("term", "definition")


class TheoremSection(SectionBase, tag="theorem"):
  statement: NonEmptyText
  name: str | None = None
  proof: str | None = None
  intuition: str | None = None
  required_text: ClassVar[tuple[str, ...]] = ("statement",)


class CodeBlockSection(SectionBase, tag="code_block"):
  code: NonEmptyText
  language: str | None = None
  explanation: str | None = None
  required_text: ClassVar[tuple[str, ...]] = ("code",)


class VisualizationSection(SectionBase, tag="visualization"):
  viz_type: VizType
  spec: dict[str, Any] | None = None
  caption: str | None = None
  interaction_hint: str | None = None


ContentSection = TextSection | MathSection | DefinitionSection | TheoremSection | CodeBlockSection | VisualizationSection


def parse_section(raw: Mapping[str, Any]) -> ContentSection:
  """Decode a section mapping into its typed form, raising msgspec.ValidationError."""
  return msgspec.convert(dict(raw), type=ContentSection)


def section_error(raw: Mapping[str, Any]) -> str | None:
  """Return why `raw` fails its type's requirements, or None when it is well formed."""
  try:
    parse_section(raw)
  except msgspec.ValidationError as exc:
    return str(exc)
  return None


def is_known_type(section_type: Any) -> bool:
  return isinstance(section_type, str) and section_type in SECTION_TYPES


def is_known_viz_type(viz_type: Any) -> bool:
  return isinstance(viz_type, str) and viz_type in VISUALIZATION_TYPES


def salvage_text(raw: Mapping[str, Any]) -> str | None:
  """First non-empty prose field of a section, if any."""
  for name in SALVAGE_FIELDS:
    value = raw.get(name)
    if isinstance(value, str) and value.strip():
      return value
  return None


def infer_viz_type(spec: Mapping[str, Any]) -> str | None:
  """Guess a visualization kind from the keys its spec carries."""
  functions = spec.get("functions")
  if isinstance(functions, list) and functions:
    return "function_plot"
  if spec.get("parametricSurface"):
    return "3d_surface"
  if spec.get("fieldFunction"):
    return "vector_field"
  if isinstance(spec.get("shapes"), list):
    return "geometry"
  if isinstance(spec.get("vectors"), list):
    return "vector_field"
  return None
