"""Rule resolver: picks the template for a consultation.

Resolution walks a fixed chain and stops at the first tier that yields a
template:

1. Department rule for the exact consultation number
2. Department rule set's default template
3. Default template scoped to the department
4. Any default template
5. Nothing (``template=None``, ``questionnaire_type="default"``)

Missing rule sets, dangling template references and missing defaults fall
through to the next tier. A store failure aborts the chain and yields the
exhausted result; the kiosk must always be able to render something.
"""

from enum import Enum

import structlog
from pydantic import BaseModel, PositiveInt
from structlog.typing import FilteringBoundLogger

from kiosk_form.registry.models import (
    ConsultationRule,
    ConsultationType,
    DepartmentRuleSet,
    QuestionTemplate,
    normalize_department,
)
from kiosk_form.registry.stores import (
    RuleSetStore,
    StoreError,
    TemplateNotFoundError,
    TemplateStore,
)
from kiosk_form.validation.checks import ValidationResult, validate_consultation_rules

GENERAL_DEPARTMENT = "general"


class SelectionSource(str, Enum):
    """Which tier of the chain produced a template."""

    CONSULTATION_RULE = "consultation-rule"
    DEFAULT_TEMPLATE = "default-template"
    FALLBACK = "fallback"


class ConsultationContext(BaseModel):
    """A patient checking in for visit N in a department."""

    consultation_number: PositiveInt
    department: str
    patient_id: str


class TemplateSelection(BaseModel):
    """The resolved template and its provenance."""

    template: QuestionTemplate | None
    questionnaire_type: str
    source: SelectionSource
    rule_description: str | None = None

    @classmethod
    def exhausted(cls) -> "TemplateSelection":
        """No template configured anywhere."""
        return cls(template=None, questionnaire_type="default", source=SelectionSource.FALLBACK)

    @classmethod
    def of(
        cls,
        template: QuestionTemplate,
        source: SelectionSource,
        rule_description: str | None = None,
    ) -> "TemplateSelection":
        return cls(
            template=template,
            questionnaire_type=template.consultation_type.value,
            source=source,
            rule_description=rule_description,
        )


class RuleResolver:
    """Maps (department, consultation number) to a question template."""

    def __init__(
        self,
        rule_sets: RuleSetStore,
        templates: TemplateStore,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            rule_sets: Store of department rule sets.
            templates: Store of question templates.
            logger: Structured logger. Defaults to this module's structlog logger.
        """
        self.rule_sets = rule_sets
        self.templates = templates
        self.log = logger if logger is not None else structlog.get_logger(__name__)

    def select_template(self, context: ConsultationContext) -> TemplateSelection:
        """Select the template for a consultation.

        Args:
            context: Consultation number, department and patient.

        Returns:
            TemplateSelection with the template (or None) and its source tier.
        """
        log = self.log.bind(
            department=normalize_department(context.department),
            consultation_number=context.consultation_number,
            patient_id=context.patient_id,
        )
        try:
            selection = self._resolve(context, log)
        except StoreError as e:
            log.error("template_resolution_failed", error=str(e), error_type=type(e).__name__)
            return TemplateSelection.exhausted()

        log.info(
            "template_selected",
            source=selection.source.value,
            template_id=selection.template.id if selection.template else None,
        )
        return selection

    def _resolve(
        self, context: ConsultationContext, log: FilteringBoundLogger
    ) -> TemplateSelection:
        department = normalize_department(context.department)

        rule_set = self.rule_sets.find_rule_set(department)
        if rule_set is None:
            log.debug("rule_set_missing")
        else:
            selection = self._from_rule_set(rule_set, context.consultation_number, log)
            if selection is not None:
                return selection

        template = self.templates.find_template(is_default=True, department=department)
        if template is not None:
            return TemplateSelection.of(template, SelectionSource.FALLBACK)
        log.debug("department_default_missing")

        template = self.templates.find_template(is_default=True)
        if template is not None:
            return TemplateSelection.of(template, SelectionSource.FALLBACK)
        log.debug("global_default_missing")

        return TemplateSelection.exhausted()

    def _from_rule_set(
        self,
        rule_set: DepartmentRuleSet,
        consultation_number: int,
        log: FilteringBoundLogger,
    ) -> TemplateSelection | None:
        rule = rule_set.get_rule(consultation_number)
        if rule is not None:
            template = self.templates.find_template_by_id(rule.template_id)
            if template is not None:
                return TemplateSelection.of(
                    template, SelectionSource.CONSULTATION_RULE, rule.description
                )
            log.debug("rule_template_missing", template_id=rule.template_id)

        if rule_set.default_template_id:
            template = self.templates.find_template_by_id(rule_set.default_template_id)
            if template is not None:
                return TemplateSelection.of(template, SelectionSource.DEFAULT_TEMPLATE)
            log.debug("rule_set_default_missing", template_id=rule_set.default_template_id)

        return None

    @staticmethod
    def get_consultation_type(consultation_number: int) -> str:
        """Classify a visit by number: 1 first-visit, 2 follow-up, else regular."""
        if consultation_number == 1:
            return ConsultationType.FIRST_VISIT.value
        if consultation_number == 2:
            return ConsultationType.FOLLOW_UP.value
        return ConsultationType.REGULAR.value

    def validate_consultation_rules(self, rule_set: DepartmentRuleSet) -> ValidationResult:
        """Check a rule set for duplicate or invalid consultation numbers."""
        return validate_consultation_rules(rule_set)

    def get_available_templates(self, department: str) -> list[QuestionTemplate]:
        """Templates usable by a department: its own plus ``general``, newest first."""
        return self.templates.list_templates(
            departments=[normalize_department(department), GENERAL_DEPARTMENT]
        )

    def build_default_rules(self, department: str, created_by: str) -> DepartmentRuleSet:
        """Draft a rule set covering first, second and third visits.

        For each visit type the department's own template is preferred,
        then any default template of that type. The draft is returned, not
        stored; saving it is the caller's decision.

        Raises:
            TemplateNotFoundError: If no first-visit template exists.
            StoreError: If the template store fails.
        """
        department = normalize_department(department)
        first_visit = self._template_for_type(department, ConsultationType.FIRST_VISIT)
        follow_up = self._template_for_type(department, ConsultationType.FOLLOW_UP)
        regular = self._template_for_type(department, ConsultationType.REGULAR)

        if first_visit is None:
            raise TemplateNotFoundError("No first-visit template found")

        planned = [
            (1, first_visit, "First visit comprehensive feedback"),
            (2, follow_up, "Follow-up visit feedback"),
            (3, regular, "Regular visit feedback (3rd+ consultation)"),
        ]
        rules = [
            ConsultationRule(
                consultation_number=number,
                template_id=template.id,
                template_name=template.name,
                description=description,
            )
            for number, template, description in planned
            if template is not None
        ]

        return DepartmentRuleSet(
            department=department,
            rules=rules,
            default_template_id=(regular or first_visit).id,
            created_by=created_by,
        )

    def _template_for_type(
        self, department: str, consultation_type: ConsultationType
    ) -> QuestionTemplate | None:
        template = self.templates.find_template(
            department=department, consultation_type=consultation_type
        )
        if template is None:
            template = self.templates.find_template(
                is_default=True, consultation_type=consultation_type
            )
        return template
