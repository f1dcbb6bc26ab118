"""Data model and stores for templates, rule sets and active questions."""

from kiosk_form.registry.files import FileRegistry
from kiosk_form.registry.memory import InMemoryStore
from kiosk_form.registry.models import (
    ActiveQuestion,
    ConsultationNumberRange,
    ConsultationRule,
    ConsultationType,
    DepartmentRuleSet,
    QuestionRules,
    QuestionTemplate,
    QuestionType,
    TemplateQuestion,
    normalize_department,
)
from kiosk_form.registry.stores import (
    ActiveQuestionStore,
    QuestionWriteError,
    RuleSetStore,
    StoreDataError,
    StoreError,
    StoreUnavailableError,
    TemplateNotFoundError,
    TemplateStore,
    most_recent_first,
)

__all__ = [
    "FileRegistry",
    "InMemoryStore",
    "ActiveQuestion",
    "ConsultationNumberRange",
    "ConsultationRule",
    "ConsultationType",
    "DepartmentRuleSet",
    "QuestionRules",
    "QuestionTemplate",
    "QuestionType",
    "TemplateQuestion",
    "normalize_department",
    "ActiveQuestionStore",
    "RuleSetStore",
    "TemplateStore",
    "StoreError",
    "StoreUnavailableError",
    "StoreDataError",
    "QuestionWriteError",
    "TemplateNotFoundError",
    "most_recent_first",
]
