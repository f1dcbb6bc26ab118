"""Applying templates to the active question set."""

from kiosk_form.application.applier import (
    ApplicationResult,
    ApplyOptions,
    CompatibilityResult,
    PreviewEntry,
    PreviewResult,
    QuestionConflict,
    QuestionOutcome,
    TemplateApplier,
)

__all__ = [
    "ApplicationResult",
    "ApplyOptions",
    "CompatibilityResult",
    "PreviewEntry",
    "PreviewResult",
    "QuestionConflict",
    "QuestionOutcome",
    "TemplateApplier",
]
