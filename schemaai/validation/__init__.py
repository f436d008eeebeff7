from schemaai.validation.report import ValidationIssue, ValidationReport
from schemaai.validation.rules import TYPE_RULES, TypeRule
from schemaai.validation.validator import SchemaValidator, value_is_empty

__all__ = [
    "ValidationIssue",
    "ValidationReport",
    "TYPE_RULES",
    "TypeRule",
    "SchemaValidator",
    "value_is_empty",
]
