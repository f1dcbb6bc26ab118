"""View models produced by the question filter."""

from typing import Literal

from pydantic import Field, PositiveInt

from kiosk_form.registry.models import CamelModel, QuestionRules, QuestionType

SortKey = Literal["orderIndex", "title", "type"]
SortOrder = Literal["asc", "desc"]


class FilteredQuestion(CamelModel):
    """A template or active question normalized for rendering.

    ``id`` is ``template_<templateId>_<index>`` for template questions (a
    display handle, stable only within one call) or the persistent ID of an
    active question.
    """

    id: str
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
    is_from_template: bool
    template_id: str | None = None
    template_name: str | None = None


class FilterOptions(CamelModel):
    """How to filter, sort and truncate a question list."""

    include_optional: bool = True
    max_questions: PositiveInt | None = None
    exclude_types: set[QuestionType] = Field(default_factory=set)
    sort_by: SortKey = "orderIndex"
    sort_order: SortOrder = "asc"


class QuestionStats(CamelModel):
    """Aggregate counts over a question list."""

    total: int
    required: int
    optional: int
    by_type: dict[str, int]
