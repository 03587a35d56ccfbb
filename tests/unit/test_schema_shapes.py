"""Unit tests for schema shapes and issue helpers."""

from __future__ import annotations

import math

import pytest

from coursegen.schema.issues import ValidationIssue, format_issues, kind_of
from coursegen.schema.lesson_content import LESSON_CONTENT_SCHEMA, SCHEMAS, get_schema
from coursegen.schema.shapes import INTEGER, NON_EMPTY_STRING, NUMBER, STRING, ArrayOf, EnumOf, Field, ObjectSchema


@pytest.mark.parametrize(
  ("value", "kind"),
  [
    (None, "null"),
    (True, "boolean"),
    (3, "integer"),
    (3.0, "integer"),
    (3.5, "number"),
    (math.nan, "non-finite number"),
    ("x", "string"),
    ([1], "array"),
    ({}, "object"),
  ],
)
def test_kind_of(value, kind: str) -> None:
  assert kind_of(value) == kind


def test_scalar_checks() -> None:
  assert NUMBER.is_valid(1.5)
  assert not NUMBER.is_valid(True)
  assert not NUMBER.is_valid(math.inf)
  assert INTEGER.is_valid(4.0)
  assert not INTEGER.is_valid(4.5)
  assert STRING.is_valid("")
  assert not NON_EMPTY_STRING.is_valid("  ")


def test_object_validation_paths() -> None:
  schema = ObjectSchema(
    name="example",
    fields=(
      Field("title", STRING),
      Field("scores", ArrayOf(NUMBER, min_items=1)),
      Field("mood", EnumOf(("calm", "busy")), required=False),
    ),
  )

  issues = schema.validate({"title": 1, "scores": [1, "two"], "mood": "sleepy", "extra": True})

  assert [issue.dotted_path for issue in issues] == ["title", "scores.1", "mood"]
  assert issues[0].to_dict() == {"path": "title", "message": "Expected string, received integer", "observed": "integer", "expected": "string"}
  assert issues[2].message == "Expected one of calm, busy"


def test_json_schema_export() -> None:
  schema = ObjectSchema(
    name="example",
    description="Example object",
    fields=(Field("title", NON_EMPTY_STRING), Field("tags", ArrayOf(STRING, min_items=2)), Field("mood", EnumOf(("calm",)), required=False)),
  )

  assert schema.to_json_schema() == {
    "type": "object",
    "properties": {
      "title": {"type": "string", "minLength": 1},
      "tags": {"type": "array", "items": {"type": "string"}, "minItems": 2},
      "mood": {"type": "string", "enum": ["calm"]},
    },
    "required": ["title", "tags"],
    "additionalProperties": False,
    "description": "Example object",
  }


def test_registered_schemas() -> None:
  assert set(SCHEMAS) == {"lesson_content", "quiz", "trivia"}
  assert get_schema("lesson_content") is LESSON_CONTENT_SCHEMA
  with pytest.raises(ValueError, match="Unknown generation schema"):
    get_schema("syllabus")


def test_lesson_schema_exports_nested_sections() -> None:
  exported = LESSON_CONTENT_SCHEMA.to_json_schema()
  section = exported["properties"]["sections"]["items"]
  assert section["properties"]["type"]["enum"][0] == "text"
  assert "fieldFunction" in section["properties"]["spec"]["properties"]


def test_format_issues_limits_output() -> None:
  issues = [ValidationIssue(path=("items", index), message="Required", observed_kind="missing", expected_kind="string") for index in range(7)]
  rendered = format_issues(issues, limit=2)
  assert rendered == "items.0: Required; items.1: Required; ... 5 more"
