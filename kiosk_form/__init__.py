"""kiosk-form: template resolution and application for kiosk feedback questionnaires."""

__version__ = "0.1.0"

from kiosk_form.registry import (
    FileRegistry,
    InMemoryStore,
    QuestionTemplate,
    TemplateQuestion,
)
from kiosk_form.filtering import FilteredQuestion, FilterOptions, QuestionFilter
from kiosk_form.resolution import (
    ConsultationContext,
    RuleResolver,
    SelectionSource,
    TemplateSelection,
)
from kiosk_form.application import ApplicationResult, ApplyOptions, TemplateApplier
from kiosk_form.pipeline import ConsultationQuestionnaire, Pipeline, PipelineConfig
from kiosk_form.callable import CallableResult, execute

__all__ = [
    "__version__",
    "FileRegistry",
    "InMemoryStore",
    "QuestionTemplate",
    "TemplateQuestion",
    "FilteredQuestion",
    "FilterOptions",
    "QuestionFilter",
    "ConsultationContext",
    "RuleResolver",
    "SelectionSource",
    "TemplateSelection",
    "ApplicationResult",
    "ApplyOptions",
    "TemplateApplier",
    "ConsultationQuestionnaire",
    "Pipeline",
    "PipelineConfig",
    "CallableResult",
    "execute",
]
