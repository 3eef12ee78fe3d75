from .pipeline import (
    ValidationContext,
    ValidationPipeline,
    ValidationRule,
    create_context,
    validate_explain_query,
    validate_query,
    validate_query_block,
    validate_query_content,
)

__all__ = [
    "ValidationContext",
    "ValidationPipeline",
    "ValidationRule",
    "create_context",
    "validate_explain_query",
    "validate_query",
    "validate_query_block",
    "validate_query_content",
]
