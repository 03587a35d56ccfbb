"""Concrete schemas the generation pipeline asks models to satisfy.

Sections are flattened into one object shape because structured-output providers reject
unions in array items; `type` decides which of the optional fields matter.
"""

from __future__ import annotations

from coursegen.schema.shapes import BOOLEAN, NUMBER, STRING, ArrayOf, EnumOf, Field, ObjectSchema, Scalar

SECTION_TYPES: tuple[str, ...] = ("text", "math", "definition", "theorem", "visualization", "code_block")
VISUALIZATION_TYPES: tuple[str, ...] = (
  "function_plot",
  "parametric_plot",
  "vector_field",
  "geometry",
  "3d_surface",
  "manifold",
  "tangent_space",
  "coordinate_transform",
)


def _text(description: str) -> Scalar:
  return Scalar("string", description=description)


def _range(description: str) -> ArrayOf:
  return ArrayOf(NUMBER, description=description)


VISUALIZATION_SPEC_SCHEMA = ObjectSchema(
  name="visualization_spec",
  description="(visualization) Visualization specification",
  fields=(
    Field("xRange", _range("[min, max] x-axis range"), required=False),
    Field("yRange", _range("[min, max] y-axis range"), required=False),
    Field(
      "functions",
      ArrayOf(
        ObjectSchema(
          name="plot_function",
          fields=(
            Field("expression", _text("Math expression of x")),
            Field("color", STRING, required=False),
            Field("label", STRING, required=False),
          ),
        )
      ),
      required=False,
    ),
    Field("fieldFunction", _text("[dx_expr, dy_expr] over x and y"), required=False),
    Field(
      "parametricSurface",
      ObjectSchema(
        name="parametric_surface",
        fields=(
          Field("xExpr", STRING),
          Field("yExpr", STRING),
          Field("zExpr", STRING),
          Field("uRange", _range("[min, max] u parameter range")),
          Field("vRange", _range("[min, max] v parameter range")),
        ),
      ),
      required=False,
    ),
    Field(
      "points",
      ArrayOf(ObjectSchema(name="point", fields=(Field("x", NUMBER), Field("y", NUMBER), Field("label", STRING, required=False)))),
      required=False,
    ),
    Field(
      "vectors",
      ArrayOf(
        ObjectSchema(
          name="vector",
          fields=(
            Field("origin", _range("[x, y] origin point")),
            Field("direction", _range("[dx, dy] direction vector")),
            Field("color", STRING, required=False),
            Field("label", STRING, required=False),
          ),
        )
      ),
      required=False,
    ),
  ),
)

SECTION_SCHEMA = ObjectSchema(
  name="section",
  fields=(
    Field("type", EnumOf(SECTION_TYPES)),
    Field("content", _text("(text) Markdown with LaTeX"), required=False),
    Field("latex", _text("(math) Display LaTeX expression"), required=False),
    Field("explanation", _text("(math) Why this expression matters; (code_block) what the code does"), required=False),
    Field("term", _text("(definition) The term being defined"), required=False),
    Field("definition", _text("(definition) Markdown+LaTeX definition"), required=False),
    Field("intuition", _text("(definition|theorem) Intuitive explanation"), required=False),
    Field("name", _text("(theorem) Theorem or lemma name"), required=False),
    Field("statement", _text("(theorem) Markdown+LaTeX statement"), required=False),
    Field("proof", _text("(theorem) Proof text"), required=False),
    Field("vizType", EnumOf(VISUALIZATION_TYPES, description="(visualization) Type of visualization"), required=False),
    Field("spec", VISUALIZATION_SPEC_SCHEMA, required=False),
    Field("caption", _text("(visualization) Caption text"), required=False),
    Field("interactionHint", _text("(visualization) Interaction hint"), required=False),
    Field("language", _text("(code_block) Programming language"), required=False),
    Field("code", _text("(code_block) The code content"), required=False),
  ),
)

LESSON_CONTENT_SCHEMA = ObjectSchema(
  name="lesson_content",
  fields=(
    Field("title", STRING),
    Field("summary", STRING),
    Field("learningObjectives", ArrayOf(STRING)),
    Field("sections", ArrayOf(SECTION_SCHEMA)),
    Field(
      "workedExamples",
      ArrayOf(
        ObjectSchema(
          name="worked_example",
          fields=(
            Field("title", STRING),
            Field("problemStatement", STRING),
            Field("steps", ArrayOf(ObjectSchema(name="step", fields=(Field("description", STRING), Field("math", STRING, required=False))))),
            Field("finalAnswer", STRING),
          ),
        )
      ),
    ),
    Field(
      "practiceExercises",
      ArrayOf(
        ObjectSchema(
          name="practice_exercise",
          fields=(
            Field("id", STRING),
            Field("problemStatement", STRING),
            Field("hints", ArrayOf(STRING)),
            Field("solution", STRING),
            Field("answerType", EnumOf(("free_response", "multiple_choice", "numeric"))),
            Field("expectedAnswer", STRING, required=False),
            Field("choices", ArrayOf(ObjectSchema(name="choice", fields=(Field("label", STRING), Field("correct", BOOLEAN)))), required=False),
          ),
        )
      ),
    ),
    Field("keyTakeaways", ArrayOf(STRING)),
  ),
)

QUIZ_SCHEMA = ObjectSchema(
  name="quiz",
  fields=(
    Field(
      "questions",
      ArrayOf(
        ObjectSchema(
          name="question",
          fields=(
            Field("id", STRING),
            Field("questionText", _text("Markdown+LaTeX question text")),
            Field(
              "choices",
              ArrayOf(
                ObjectSchema(
                  name="quiz_choice",
                  fields=(
                    Field("id", STRING),
                    Field("text", _text("Markdown+LaTeX choice text")),
                    Field("correct", BOOLEAN),
                    Field("explanation", _text("Why this choice is correct or incorrect")),
                  ),
                ),
                min_items=4,
              ),
            ),
            Field("topic", _text("The specific sub-topic this question tests")),
            Field("difficulty", EnumOf(("easy", "medium", "hard"))),
          ),
        ),
        min_items=1,
      ),
    ),
  ),
)

TRIVIA_SCHEMA = ObjectSchema(
  name="trivia",
  fields=(
    Field(
      "slides",
      ArrayOf(
        ObjectSchema(
          name="trivia_slide",
          fields=(
            Field("title", _text("Short catchy title for the trivia slide")),
            Field("fact", _text("2-4 sentences about a fun fact or surprising connection")),
            Field("funRating", EnumOf(("mind-blowing", "cool", "neat"))),
          ),
        )
      ),
    ),
  ),
)

SCHEMAS: dict[str, ObjectSchema] = {schema.name: schema for schema in (LESSON_CONTENT_SCHEMA, QUIZ_SCHEMA, TRIVIA_SCHEMA)}


def get_schema(name: str) -> ObjectSchema:
  """Look up a registered generation schema by name."""
  try:
    return SCHEMAS[name]
  except KeyError as exc:
    raise ValueError(f"Unknown generation schema: {name}") from exc
