"""Structural validation of questions, templates and rule sets."""

from kiosk_form.validation.checks import (
    ValidationResult,
    validate_consultation_rules,
    validate_question,
    validate_rule_set,
    validate_template,
)

__all__ = [
    "ValidationResult",
    "validate_consultation_rules",
    "validate_question",
    "validate_rule_set",
    "validate_template",
]
