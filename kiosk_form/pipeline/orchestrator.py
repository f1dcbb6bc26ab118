"""Pipeline wiring stores to the resolver, filter and applier.

Also owns the kiosk read path: resolve a template for a consultation and
render its questions, or fall back to the live active questions.
"""

from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field, computed_field
from structlog.typing import FilteringBoundLogger

from kiosk_form.application.applier import TemplateApplier
from kiosk_form.filtering.filter import QuestionFilter
from kiosk_form.filtering.models import FilteredQuestion, FilterOptions
from kiosk_form.registry.files import FileRegistry
from kiosk_form.registry.models import CamelModel
from kiosk_form.resolution.resolver import (
    ConsultationContext,
    RuleResolver,
    SelectionSource,
)

# Used when no template resolves and the active question set is rendered.
GENERAL_QUESTIONNAIRE = "general"


class PipelineConfig(BaseModel):
    """Configuration for the pipeline."""

    registry_path: Path
    schema_dir: Path | None = None
    validate_schemas: bool = True
    filter_options: FilterOptions = Field(default_factory=FilterOptions)


class ConsultationQuestionnaire(CamelModel):
    """Questions to show a patient for one consultation."""

    consultation_number: int
    department: str
    questionnaire_type: str
    source: SelectionSource
    template_id: str | None = None
    template_name: str | None = None
    rule_description: str | None = None
    questions: list[FilteredQuestion]

    @computed_field
    @property
    def total_questions(self) -> int:
        return len(self.questions)


class Pipeline:
    """Resolves, filters and applies templates against one store.

    The store must implement the rule-set, template and active-question
    protocols. By default it is a ``FileRegistry`` built from the config.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        store: Any = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration. Required unless ``store`` is given.
            store: Store implementing all three store protocols. If not
                provided, a FileRegistry at ``config.registry_path``.
            logger: Structured logger passed on to the resolver and applier.

        Raises:
            ValueError: If neither config nor store is given.
        """
        if config is None and store is None:
            raise ValueError("Pipeline needs a config or a store")

        self.config = config
        if store is None:
            store = FileRegistry(
                config.registry_path,
                schema_dir=config.schema_dir,
                validate=config.validate_schemas,
            )
        self.store = store
        self.log = logger if logger is not None else structlog.get_logger(__name__)

        self.question_filter = QuestionFilter()
        self.resolver = RuleResolver(store, store, logger=self.log)
        self.applier = TemplateApplier(
            store, store, question_filter=self.question_filter, logger=self.log
        )

    @property
    def filter_options(self) -> FilterOptions:
        return self.config.filter_options if self.config else FilterOptions()

    def questionnaire_for(self, context: ConsultationContext) -> ConsultationQuestionnaire:
        """Build the questionnaire a patient sees for a consultation.

        A resolved template with questions is rendered; otherwise the active
        questions are. Either list is filtered, sorted and truncated with the
        configured ``filter_options``.

        Raises:
            StoreError: If the active question set cannot be read.
        """
        selection = self.resolver.select_template(context)
        template = selection.template

        if template is not None and template.questions:
            questions = self.question_filter.filter_template_questions(
                template.questions, template.id, template.name, self.filter_options
            )
            return ConsultationQuestionnaire(
                consultation_number=context.consultation_number,
                department=context.department,
                questionnaire_type=selection.questionnaire_type,
                source=selection.source,
                template_id=template.id,
                template_name=template.name,
                rule_description=selection.rule_description,
                questions=questions,
            )

        self.log.info(
            "active_questions_fallback",
            department=context.department,
            consultation_number=context.consultation_number,
        )
        questions = self.question_filter.filter_active_questions(
            self.store.list_active(), self.filter_options
        )
        return ConsultationQuestionnaire(
            consultation_number=context.consultation_number,
            department=context.department,
            questionnaire_type=GENERAL_QUESTIONNAIRE,
            source=selection.source,
            questions=questions,
        )
