"""Tests for registry models."""

import pytest
from pydantic import ValidationError

from kiosk_form.registry import (
    ActiveQuestion,
    ConsultationRule,
    ConsultationType,
    DepartmentRuleSet,
    QuestionTemplate,
    QuestionType,
    TemplateQuestion,
    normalize_department,
)


class TestQuestionModels:
    """Tests for TemplateQuestion and ActiveQuestion."""

    def test_accepts_camel_case_keys(self) -> None:
        """Test that stored camelCase keys populate snake_case fields."""
        question = TemplateQuestion.model_validate(
            {
                "type": "multipleChoice",
                "title": "Pick one",
                "options": ["a", "b"],
                "orderIndex": 3,
                "minValue": None,
            }
        )

        assert question.type == QuestionType.MULTIPLE_CHOICE
        assert question.order_index == 3
        assert question.options == ["a", "b"]

    def test_dumps_camel_case_keys(self) -> None:
        """Test that by_alias dumps use camelCase."""
        question = TemplateQuestion(
            type=QuestionType.RATING, title="Rate", min_value=1, max_value=5
        )
        data = question.model_dump(mode="json", by_alias=True)

        assert data["minValue"] == 1
        assert data["maxValue"] == 5
        assert data["orderIndex"] == 0
        assert data["type"] == "rating"

    def test_structurally_invalid_question_still_loads(self) -> None:
        """Test that a multiple choice question without options is accepted on load."""
        question = TemplateQuestion(type=QuestionType.MULTIPLE_CHOICE, title="Pick")
        assert question.options is None

    def test_unknown_type_rejected(self) -> None:
        """Test that an unknown question type is a parse error."""
        with pytest.raises(ValidationError):
            TemplateQuestion.model_validate({"type": "slider", "title": "x"})

    def test_active_question_defaults(self) -> None:
        """Test ActiveQuestion defaults to active with no ID."""
        question = ActiveQuestion(type=QuestionType.TEXT, title="Hello")
        assert question.is_active is True
        assert question.id is None


class TestTemplateModels:
    """Tests for QuestionTemplate and DepartmentRuleSet."""

    def test_template_defaults(self) -> None:
        """Test QuestionTemplate defaults."""
        template = QuestionTemplate(id="t", name="T", department="general")

        assert template.consultation_type == ConsultationType.REGULAR
        assert template.consultation_number_range.min == 1
        assert template.consultation_number_range.max is None
        assert template.is_default is False
        assert template.questions == []

    def test_consultation_type_values(self) -> None:
        """Test the stored spelling of consultation types."""
        template = QuestionTemplate.model_validate(
            {"id": "t", "name": "T", "department": "x", "consultationType": "follow-up"}
        )
        assert template.consultation_type == ConsultationType.FOLLOW_UP

    def test_rule_set_department_normalized(self) -> None:
        """Test that rule set departments are lower-cased and trimmed."""
        rule_set = DepartmentRuleSet(department="  Cardiology ")
        assert rule_set.department == "cardiology"

    def test_get_rule(self) -> None:
        """Test looking up the rule for a visit number."""
        rule_set = DepartmentRuleSet(
            department="cardiology",
            rules=[
                ConsultationRule(consultation_number=1, template_id="t1"),
                ConsultationRule(consultation_number=2, template_id="t2"),
            ],
        )

        assert rule_set.get_rule(2).template_id == "t2"
        assert rule_set.get_rule(3) is None

    def test_normalize_department(self) -> None:
        """Test department normalization."""
        assert normalize_department(" ENT ") == "ent"
