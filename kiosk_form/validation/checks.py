"""Structural validation for questions, templates and rule sets.

Every check runs; problems are returned as data so a caller sees the
complete list at once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from kiosk_form.registry.models import (
    CamelModel,
    DepartmentRuleSet,
    QuestionTemplate,
    QuestionType,
    TemplateQuestion,
)

if TYPE_CHECKING:
    from kiosk_form.filtering.models import FilteredQuestion


class ValidationResult(CamelModel):
    """Outcome of a structural check."""

    is_valid: bool
    errors: list[str]

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=errors)


def _type_errors(question: TemplateQuestion | FilteredQuestion) -> list[str]:
    """Checks that depend on the question type."""
    errors: list[str] = []
    question_type = question.type

    match question_type:
        case None:
            pass
        case QuestionType.MULTIPLE_CHOICE:
            if not question.options:
                errors.append("Multiple choice questions must have options")
        case QuestionType.RATING | QuestionType.SCALE:
            if question.min_value is None or question.max_value is None:
                errors.append("Rating/scale questions must have min and max values")
            if (
                question.min_value is not None
                and question.max_value is not None
                and question.min_value >= question.max_value
            ):
                errors.append("Min value must be less than max value")
        case (
            QuestionType.TEXT
            | QuestionType.YES_NO
            | QuestionType.EMAIL
            | QuestionType.PHONE
            | QuestionType.DATE
        ):
            pass
        case _:
            assert_never(question_type)

    return errors


def validate_question(question: TemplateQuestion | FilteredQuestion) -> ValidationResult:
    """Validate the structure of a single question.

    Checks:
    1. Title is non-empty after trimming
    2. Type is present
    3. Multiple choice questions have options
    4. Rating/scale questions have both bounds, and min < max
    5. Order index is non-negative

    Args:
        question: A template, active or filtered question.

    Returns:
        ValidationResult listing every problem found.
    """
    errors: list[str] = []

    if not question.title or not question.title.strip():
        errors.append("Question title is required")

    if question.type is None:
        errors.append("Question type is required")

    errors.extend(_type_errors(question))

    if question.order_index < 0:
        errors.append("Order index must be non-negative")

    return ValidationResult.from_errors(errors)


def validate_consultation_rules(rule_set: DepartmentRuleSet) -> ValidationResult:
    """Check a rule set for duplicate or out-of-range consultation numbers.

    Every occurrence of a consultation number beyond its first is reported,
    so a number used three times yields two errors.
    """
    errors: list[str] = []
    seen: set[int] = set()

    for rule in rule_set.rules:
        number = rule.consultation_number
        if number in seen:
            errors.append(f"Duplicate consultation number: {number}")
        seen.add(number)

        if number < 1:
            errors.append(f"Invalid consultation number: {number}. Must be >= 1")

    return ValidationResult.from_errors(errors)


def validate_rule_set(rule_set: DepartmentRuleSet) -> ValidationResult:
    """Full write-time check of a rule set."""
    errors: list[str] = []

    if not rule_set.department:
        errors.append("Department is required")
    if not rule_set.rules:
        errors.append("At least one rule is required")
    if not rule_set.default_template_id:
        errors.append("Default template ID is required")

    for position, rule in enumerate(rule_set.rules, 1):
        if not rule.template_id:
            errors.append(f"Rule {position}: Template ID is required")

    errors.extend(validate_consultation_rules(rule_set).errors)
    return ValidationResult.from_errors(errors)


def validate_template(template: QuestionTemplate) -> ValidationResult:
    """Full write-time check of a template and each of its questions."""
    errors: list[str] = []

    if not template.name.strip():
        errors.append("Template name is required")
    if not template.department.strip():
        errors.append("Department is required")

    number_range = template.consultation_number_range
    if number_range.min < 1:
        errors.append("Minimum consultation number must be at least 1")
    if number_range.max is not None and number_range.max < number_range.min:
        errors.append("Maximum consultation number cannot be less than minimum")

    if not template.questions:
        errors.append("Template must have at least one question")

    for position, question in enumerate(template.questions, 1):
        result = validate_question(question)
        if not result.is_valid:
            errors.append(f"Question {position}: {', '.join(result.errors)}")

    return ValidationResult.from_errors(errors)
