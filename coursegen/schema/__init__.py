"""Schema package exports."""

from .coercion import UnwrapResult, coerce, coerce_with_report, unwrap_envelope
from .issues import ValidationIssue, kind_of
from .shapes import ArrayOf, EnumOf, Field, ObjectSchema, Scalar

__all__ = ["ArrayOf", "EnumOf", "Field", "ObjectSchema", "Scalar", "UnwrapResult", "ValidationIssue", "coerce", "coerce_with_report", "kind_of", "unwrap_envelope"]
