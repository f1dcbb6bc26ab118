"""Store protocols consumed by the resolver and the applier.

Stores own persistence; this package only reads rule sets and templates
and writes to the active question set through these calls.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, runtime_checkable

from kiosk_form.registry.models import (
    ActiveQuestion,
    ConsultationType,
    DepartmentRuleSet,
    QuestionTemplate,
    normalize_department,
)


class StoreError(Exception):
    """Base class for store failures."""

    pass


class StoreUnavailableError(StoreError):
    """Raised when a store cannot be reached."""

    pass


class StoreDataError(StoreError):
    """Raised when stored data is malformed."""

    pass


class QuestionWriteError(StoreError):
    """Raised when a single question write is rejected."""

    pass


class TemplateNotFoundError(Exception):
    """Raised when a required template does not exist."""

    pass


@runtime_checkable
class RuleSetStore(Protocol):
    """Read access to department rule sets."""

    def find_rule_set(self, department: str) -> DepartmentRuleSet | None:
        """Find the rule set for a department (case-insensitive)."""
        ...


@runtime_checkable
class TemplateStore(Protocol):
    """Read access to question templates."""

    def find_template_by_id(self, template_id: str) -> QuestionTemplate | None:
        """Find a template by ID."""
        ...

    def find_template(
        self,
        is_default: bool | None = None,
        department: str | None = None,
        consultation_type: ConsultationType | None = None,
    ) -> QuestionTemplate | None:
        """Find the first template matching every given filter.

        When several match, the most recently created wins
        (see ``most_recent_first``).
        """
        ...

    def list_templates(
        self, departments: Iterable[str] | None = None
    ) -> list[QuestionTemplate]:
        """List templates, optionally restricted to departments, newest first."""
        ...


@runtime_checkable
class ActiveQuestionStore(Protocol):
    """Read/write access to the live question set."""

    def list_active(self) -> list[ActiveQuestion]:
        """List questions with ``is_active`` set."""
        ...

    def deactivate_all(self) -> int:
        """Clear ``is_active`` on every question. Returns the number changed."""
        ...

    def create(self, question: ActiveQuestion) -> str:
        """Persist a question and return its ID.

        Raises:
            QuestionWriteError: If this question is rejected.
            StoreUnavailableError: If the store cannot be reached.
        """
        ...


def _recency_key(template: QuestionTemplate) -> tuple[bool, float, str]:
    created = template.created_at
    stamp = -created.timestamp() if isinstance(created, datetime) else 0.0
    return (created is None, stamp, template.id)


def most_recent_first(templates: Iterable[QuestionTemplate]) -> list[QuestionTemplate]:
    """Order templates by ``created_at`` descending, then ``id`` ascending.

    Templates without ``created_at`` come last. This is the tie-break used
    whenever more than one template satisfies a default lookup.
    """
    return sorted(templates, key=_recency_key)


def matches_filter(
    template: QuestionTemplate,
    is_default: bool | None = None,
    department: str | None = None,
    consultation_type: ConsultationType | None = None,
) -> bool:
    """Check a template against ``TemplateStore.find_template`` filters."""
    if is_default is not None and template.is_default != is_default:
        return False
    if department is not None and normalize_department(
        template.department
    ) != normalize_department(department):
        return False
    if consultation_type is not None and template.consultation_type != consultation_type:
        return False
    return True
