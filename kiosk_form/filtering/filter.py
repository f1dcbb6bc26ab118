"""Filtering, ordering and statistics for question lists.

The filter is a pure transformation: no store access, no side effects,
and the same input and options always give the same output.
"""

from collections.abc import Callable, Sequence
from typing import Any

from kiosk_form.filtering.models import (
    FilteredQuestion,
    FilterOptions,
    QuestionStats,
    SortKey,
)
from kiosk_form.registry.models import ActiveQuestion, TemplateQuestion
from kiosk_form.validation.checks import ValidationResult, validate_question

_QUESTION_FIELDS = (
    "type",
    "title",
    "description",
    "required",
    "options",
    "min_value",
    "max_value",
    "order_index",
    "placeholder",
    "validation",
)

_SORT_KEYS: dict[SortKey, Callable[[FilteredQuestion], Any]] = {
    "orderIndex": lambda q: q.order_index,
    "title": lambda q: q.title.casefold(),
    "type": lambda q: q.type.value if q.type is not None else "",
}


def _question_fields(question: TemplateQuestion) -> dict[str, Any]:
    return {name: getattr(question, name) for name in _QUESTION_FIELDS}


class QuestionFilter:
    """Turns raw template or active questions into filtered, ordered views."""

    def filter_template_questions(
        self,
        questions: Sequence[TemplateQuestion],
        template_id: str,
        template_name: str,
        options: FilterOptions | None = None,
    ) -> list[FilteredQuestion]:
        """Filter, sort and truncate a template's questions.

        Args:
            questions: Raw template questions, in template order.
            template_id: ID of the template the questions belong to.
            template_name: Name of the template, copied onto each view.
            options: Filter options. Defaults to ``FilterOptions()``.

        Returns:
            FilteredQuestions tagged ``is_from_template=True``.
        """
        options = options or FilterOptions()
        views = [
            FilteredQuestion(
                id=f"template_{template_id}_{index}",
                is_from_template=True,
                template_id=template_id,
                template_name=template_name,
                **_question_fields(question),
            )
            for index, question in enumerate(questions)
            if self._keep(question, options)
        ]
        return self._order(views, options)

    def filter_active_questions(
        self,
        questions: Sequence[ActiveQuestion],
        options: FilterOptions | None = None,
    ) -> list[FilteredQuestion]:
        """Filter, sort and truncate live questions, dropping inactive ones.

        Returns:
            FilteredQuestions tagged ``is_from_template=False``.
        """
        options = options or FilterOptions()
        views = [
            FilteredQuestion(
                id=question.id or "",
                is_from_template=False,
                **_question_fields(question),
            )
            for question in questions
            if question.is_active and self._keep(question, options)
        ]
        return self._order(views, options)

    def _keep(self, question: TemplateQuestion, options: FilterOptions) -> bool:
        if not options.include_optional and not question.required:
            return False
        if question.type is not None and question.type in options.exclude_types:
            return False
        return True

    def _order(
        self, questions: list[FilteredQuestion], options: FilterOptions
    ) -> list[FilteredQuestion]:
        # sorted() is stable with reverse=True too: ties keep input order
        ordered = sorted(
            questions,
            key=_SORT_KEYS[options.sort_by],
            reverse=options.sort_order == "desc",
        )
        if options.max_questions is not None:
            ordered = ordered[: options.max_questions]
        return ordered

    def validate_question(
        self, question: TemplateQuestion | FilteredQuestion
    ) -> ValidationResult:
        """Validate a single question's structure. See ``validate_question``."""
        return validate_question(question)

    def reorder_questions(
        self, questions: Sequence[FilteredQuestion]
    ) -> list[FilteredQuestion]:
        """Renumber ``order_index`` to ``0..n-1`` following the current order.

        Ties on ``order_index`` keep their relative input order, so applying
        this twice gives the same result as applying it once.
        """
        ordered = sorted(questions, key=lambda q: q.order_index)
        return [
            question.model_copy(update={"order_index": position})
            for position, question in enumerate(ordered)
        ]

    def get_question_stats(
        self, questions: Sequence[TemplateQuestion | FilteredQuestion]
    ) -> QuestionStats:
        """Count questions by requiredness and type."""
        required = 0
        by_type: dict[str, int] = {}

        for question in questions:
            if question.required:
                required += 1
            type_name = question.type.value if question.type is not None else "unknown"
            by_type[type_name] = by_type.get(type_name, 0) + 1

        return QuestionStats(
            total=len(questions),
            required=required,
            optional=len(questions) - required,
            by_type=by_type,
        )
