"""Content sandbox exports."""

from .expressions import CompiledExpression, CompileError, compile_expression, compile_parametric_surface, compile_vector_field
from .visualizations import SectionValidationResult, validate_sections, validate_visualization_section

__all__ = ["CompileError", "CompiledExpression", "SectionValidationResult", "compile_expression", "compile_parametric_surface", "compile_vector_field", "validate_sections", "validate_visualization_section"]
