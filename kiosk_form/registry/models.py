"""Pydantic models for question templates, rule sets and active questions.

Field names are snake_case; the stored JSON form uses camelCase aliases
(``orderIndex``, ``isDefault``, ...) and either spelling is accepted on input.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Input kinds a kiosk question can take."""

    TEXT = "text"
    RATING = "rating"
    MULTIPLE_CHOICE = "multipleChoice"
    YES_NO = "yesNo"
    SCALE = "scale"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"


class ConsultationType(str, Enum):
    """Visit classification a template is written for."""

    FIRST_VISIT = "first-visit"
    FOLLOW_UP = "follow-up"
    REGULAR = "regular"
    CUSTOM = "custom"


def normalize_department(department: str) -> str:
    """Normalize a department name to its lookup key."""
    return department.strip().lower()


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class QuestionRules(CamelModel):
    """Free-text answer constraints."""

    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None


class TemplateQuestion(CamelModel):
    """A question definition inside a template.

    Construction does not enforce structural rules (options for multiple
    choice, bounds for rating/scale, non-negative order). Those are checked
    by ``kiosk_form.validation.validate_question``, which reports a bad
    stored question instead of rejecting it on load.
    """

    type: QuestionType | None = None
    title: str = ""
    description: str | None = None
    required: bool = False
    options: list[str] | None = None
    min_value: int | None = None
    max_value: int | None = None
    order_index: int = 0
    placeholder: str | None = None
    validation: QuestionRules | None = None


class ActiveQuestion(TemplateQuestion):
    """A question in the live set rendered on the kiosk."""

    id: str | None = None
    is_active: bool = True


class ConsultationNumberRange(CamelModel):
    """Visit numbers a template is intended for."""

    min: int = 1
    max: int | None = None


class QuestionTemplate(CamelModel):
    """A named, reusable questionnaire scoped to a department and visit type."""

    id: str
    name: str
    description: str | None = None
    department: str
    consultation_type: ConsultationType = ConsultationType.REGULAR
    consultation_number_range: ConsultationNumberRange = Field(
        default_factory=ConsultationNumberRange
    )
    is_default: bool = False
    questions: list[TemplateQuestion] = Field(default_factory=list)
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConsultationRule(CamelModel):
    """Maps one visit number to a template."""

    consultation_number: int
    template_id: str
    template_name: str = ""
    description: str = ""


class DepartmentRuleSet(CamelModel):
    """Per-department routing from visit number to template."""

    department: str
    rules: list[ConsultationRule] = Field(default_factory=list)
    default_template_id: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("department")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_department(value)

    def get_rule(self, consultation_number: int) -> ConsultationRule | None:
        """Get the first rule targeting a visit number."""
        for rule in self.rules:
            if rule.consultation_number == consultation_number:
                return rule
        return None
