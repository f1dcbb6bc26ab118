"""In-memory store implementing all three store protocols."""

import uuid
from collections.abc import Iterable

from kiosk_form.registry.models import (
    ActiveQuestion,
    ConsultationType,
    DepartmentRuleSet,
    QuestionTemplate,
    normalize_department,
)
from kiosk_form.registry.stores import matches_filter, most_recent_first


class InMemoryStore:
    """Holds rule sets, templates and active questions in dicts.

    Useful for tests and for embedding the resolver in a process that
    already has its data loaded.
    """

    def __init__(
        self,
        rule_sets: Iterable[DepartmentRuleSet] = (),
        templates: Iterable[QuestionTemplate] = (),
        questions: Iterable[ActiveQuestion] = (),
    ) -> None:
        self._rule_sets: dict[str, DepartmentRuleSet] = {}
        self._templates: dict[str, QuestionTemplate] = {}
        self._questions: dict[str, ActiveQuestion] = {}

        for rule_set in rule_sets:
            self.add_rule_set(rule_set)
        for template in templates:
            self.add_template(template)
        for question in questions:
            self.create(question)

    def add_rule_set(self, rule_set: DepartmentRuleSet) -> None:
        """Add or replace the rule set for its department."""
        self._rule_sets[rule_set.department] = rule_set

    def add_template(self, template: QuestionTemplate) -> None:
        """Add or replace a template by ID."""
        self._templates[template.id] = template

    def all_questions(self) -> list[ActiveQuestion]:
        """Every stored question, active or not, in insertion order."""
        return list(self._questions.values())

    # RuleSetStore

    def find_rule_set(self, department: str) -> DepartmentRuleSet | None:
        return self._rule_sets.get(normalize_department(department))

    # TemplateStore

    def find_template_by_id(self, template_id: str) -> QuestionTemplate | None:
        return self._templates.get(template_id)

    def find_template(
        self,
        is_default: bool | None = None,
        department: str | None = None,
        consultation_type: ConsultationType | None = None,
    ) -> QuestionTemplate | None:
        candidates = [
            t
            for t in self._templates.values()
            if matches_filter(t, is_default, department, consultation_type)
        ]
        ordered = most_recent_first(candidates)
        return ordered[0] if ordered else None

    def list_templates(
        self, departments: Iterable[str] | None = None
    ) -> list[QuestionTemplate]:
        templates = list(self._templates.values())
        if departments is not None:
            wanted = {normalize_department(d) for d in departments}
            templates = [
                t for t in templates if normalize_department(t.department) in wanted
            ]
        return most_recent_first(templates)

    # ActiveQuestionStore

    def list_active(self) -> list[ActiveQuestion]:
        return [q for q in self._questions.values() if q.is_active]

    def deactivate_all(self) -> int:
        changed = 0
        for question_id, question in self._questions.items():
            if question.is_active:
                self._questions[question_id] = question.model_copy(
                    update={"is_active": False}
                )
                changed += 1
        return changed

    def create(self, question: ActiveQuestion) -> str:
        question_id = question.id or uuid.uuid4().hex
        self._questions[question_id] = question.model_copy(update={"id": question_id})
        return question_id
