"""Template applier: materializes template questions into the active set.

Each template question is handled on its own. A validation failure or a
rejected write is recorded against that question and the next one is
processed, so partial success is a normal outcome. Only a failure to load
the template (or to deactivate existing questions when replacing) aborts
the whole application.
"""

import threading
from collections.abc import Sequence
from typing import Literal

import structlog
from pydantic import Field
from structlog.typing import FilteringBoundLogger

from kiosk_form.filtering.filter import QuestionFilter
from kiosk_form.registry.models import (
    ActiveQuestion,
    CamelModel,
    QuestionTemplate,
    QuestionType,
    TemplateQuestion,
)
from kiosk_form.registry.stores import ActiveQuestionStore, StoreError, TemplateStore

TEMPLATE_NOT_FOUND = "Template not found"


class ApplyOptions(CamelModel):
    """Options for applying a template."""

    replace_existing: bool = False
    preserve_order: bool = True
    skip_validation: bool = False
    created_by: str = "admin"


class QuestionOutcome(CamelModel):
    """Result of applying one template question."""

    index: int  # 1-based position in the template
    question_id: str | None = None
    error: str | None = None

    @property
    def created(self) -> bool:
        return self.question_id is not None


class ApplicationResult(CamelModel):
    """Summary of a template application."""

    success: bool = False
    applied_questions: int = 0
    skipped_questions: int = 0
    errors: list[str] = Field(default_factory=list)
    created_question_ids: list[str] = Field(default_factory=list)

    @classmethod
    def failed(cls, error: str) -> "ApplicationResult":
        return cls(success=False, errors=[error])

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[QuestionOutcome]) -> "ApplicationResult":
        """Fold per-question outcomes into a summary."""
        result = cls()
        for outcome in outcomes:
            if outcome.created:
                result.applied_questions += 1
                result.created_question_ids.append(outcome.question_id)
            else:
                result.skipped_questions += 1
                result.errors.append(f"Question {outcome.index}: {outcome.error}")
        result.success = result.applied_questions > 0
        return result

    def merge(self, other: "ApplicationResult") -> None:
        """Add another result's counts, errors and IDs to this one."""
        self.applied_questions += other.applied_questions
        self.skipped_questions += other.skipped_questions
        self.errors.extend(other.errors)
        self.created_question_ids.extend(other.created_question_ids)
        self.success = self.applied_questions > 0


class PreviewEntry(CamelModel):
    """Dry-run verdict for one template question."""

    index: int
    title: str
    type: QuestionType | None
    required: bool
    valid: bool
    errors: list[str]


class PreviewResult(CamelModel):
    """Dry-run of a template application."""

    success: bool
    questions_to_create: int = 0
    questions_with_errors: int = 0
    errors: list[str] = Field(default_factory=list)
    preview: list[PreviewEntry] = Field(default_factory=list)


class QuestionConflict(CamelModel):
    """A template question clashing with an active question."""

    template_question_index: int
    template_question_title: str
    existing_question_id: str | None
    existing_question_title: str
    conflict_type: Literal["title", "order"]


class CompatibilityResult(CamelModel):
    """Conflicts between a template and the active question set."""

    success: bool
    compatible: bool
    conflicts: list[QuestionConflict] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class TemplateApplier:
    """Applies templates to the active question set.

    Applications through one applier are serialized by an internal lock so
    a "replace existing" deactivation never interleaves with another
    call's inserts. Applications through different appliers (or processes)
    targeting the same store are not coordinated.
    """

    def __init__(
        self,
        templates: TemplateStore,
        questions: ActiveQuestionStore,
        question_filter: QuestionFilter | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the applier.

        Args:
            templates: Store to load templates from.
            questions: Active question store to write to.
            question_filter: Filter used for validation. Defaults to a new one.
            logger: Structured logger. Defaults to this module's structlog logger.
        """
        self.templates = templates
        self.questions = questions
        self.question_filter = question_filter or QuestionFilter()
        self.log = logger if logger is not None else structlog.get_logger(__name__)
        self._lock = threading.RLock()

    def apply_template(
        self, template_id: str, options: ApplyOptions | None = None
    ) -> ApplicationResult:
        """Create active questions from a template.

        Args:
            template_id: ID of the template to apply.
            options: Replace/merge, order and validation options.

        Returns:
            ApplicationResult; ``success`` is true when at least one
            question was created.
        """
        options = options or ApplyOptions()
        log = self.log.bind(template_id=template_id, created_by=options.created_by)

        with self._lock:
            try:
                template = self.templates.find_template_by_id(template_id)
                if template is None:
                    log.warning("template_not_found")
                    return ApplicationResult.failed(TEMPLATE_NOT_FOUND)

                if options.replace_existing:
                    deactivated = self.questions.deactivate_all()
                    log.info("active_questions_deactivated", count=deactivated)
            except StoreError as e:
                log.error("template_application_failed", error=str(e))
                return ApplicationResult.failed(f"Template application failed: {e}")

            outcomes = [
                self._apply_question(position, question, options, log)
                for position, question in enumerate(template.questions)
            ]

        result = ApplicationResult.from_outcomes(outcomes)
        log.info(
            "template_applied",
            applied=result.applied_questions,
            skipped=result.skipped_questions,
        )
        return result

    def _apply_question(
        self,
        position: int,
        question: TemplateQuestion,
        options: ApplyOptions,
        log: FilteringBoundLogger,
    ) -> QuestionOutcome:
        index = position + 1

        if not options.skip_validation:
            validation = self.question_filter.validate_question(question)
            if not validation.is_valid:
                return QuestionOutcome(index=index, error=", ".join(validation.errors))

        active = ActiveQuestion(
            **question.model_dump(exclude={"order_index"}),
            order_index=question.order_index if options.preserve_order else position,
            is_active=True,
        )
        try:
            question_id = self.questions.create(active)
        except StoreError as e:
            log.warning("question_write_failed", index=index, error=str(e))
            return QuestionOutcome(index=index, error=str(e))
        return QuestionOutcome(index=index, question_id=question_id)

    def apply_multiple_templates(
        self, template_ids: Sequence[str], options: ApplyOptions | None = None
    ) -> ApplicationResult:
        """Apply several templates in order and sum their results.

        Only the first template may replace existing questions; later
        templates always merge so they cannot wipe out earlier ones.
        """
        options = options or ApplyOptions()
        combined = ApplicationResult()

        with self._lock:
            for position, template_id in enumerate(template_ids):
                template_options = options.model_copy(
                    update={"replace_existing": options.replace_existing and position == 0}
                )
                combined.merge(self.apply_template(template_id, template_options))

        return combined

    def preview_template_application(self, template_id: str) -> PreviewResult:
        """Validate every template question without creating anything."""
        try:
            template = self.templates.find_template_by_id(template_id)
        except StoreError as e:
            return PreviewResult(success=False, errors=[f"Preview failed: {e}"])
        if template is None:
            return PreviewResult(success=False, errors=[TEMPLATE_NOT_FOUND])

        result = PreviewResult(success=True)
        for position, question in enumerate(template.questions, 1):
            validation = self.question_filter.validate_question(question)
            result.preview.append(
                PreviewEntry(
                    index=position,
                    title=question.title,
                    type=question.type,
                    required=question.required,
                    valid=validation.is_valid,
                    errors=validation.errors,
                )
            )
            if validation.is_valid:
                result.questions_to_create += 1
            else:
                result.questions_with_errors += 1
        return result

    def get_template_compatibility(self, template_id: str) -> CompatibilityResult:
        """Compare a template against the active questions.

        Each template question is checked for a case-insensitive title match
        and for an equal ``order_index``; each kind reports the first active
        question that matches, so one template question yields zero, one or
        two conflicts.
        """
        try:
            template = self.templates.find_template_by_id(template_id)
            if template is None:
                return CompatibilityResult(
                    success=False, compatible=False, recommendations=[TEMPLATE_NOT_FOUND]
                )
            existing = self.questions.list_active()
        except StoreError as e:
            return CompatibilityResult(
                success=False,
                compatible=False,
                recommendations=[f"Compatibility check failed: {e}"],
            )

        conflicts = self._find_conflicts(template, existing)

        recommendations: list[str] = []
        if conflicts:
            recommendations.append("Consider using replaceExisting option to avoid conflicts")
            recommendations.append("Review question titles and order indices for duplicates")
        if existing:
            recommendations.append(f"{len(existing)} active questions will be affected")

        return CompatibilityResult(
            success=True,
            compatible=not conflicts,
            conflicts=conflicts,
            recommendations=recommendations,
        )

    def _find_conflicts(
        self, template: QuestionTemplate, existing: Sequence[ActiveQuestion]
    ) -> list[QuestionConflict]:
        conflicts: list[QuestionConflict] = []

        for position, question in enumerate(template.questions, 1):
            title = question.title.casefold()
            by_title = next((q for q in existing if q.title.casefold() == title), None)
            if by_title is not None:
                conflicts.append(self._conflict(position, question, by_title, "title"))

            by_order = next(
                (q for q in existing if q.order_index == question.order_index), None
            )
            if by_order is not None:
                conflicts.append(self._conflict(position, question, by_order, "order"))

        return conflicts

    @staticmethod
    def _conflict(
        position: int,
        question: TemplateQuestion,
        existing: ActiveQuestion,
        conflict_type: Literal["title", "order"],
    ) -> QuestionConflict:
        return QuestionConflict(
            template_question_index=position,
            template_question_title=question.title,
            existing_question_id=existing.id,
            existing_question_title=existing.title,
            conflict_type=conflict_type,
        )
