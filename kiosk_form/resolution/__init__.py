"""Template resolution for consultations."""

from kiosk_form.resolution.resolver import (
    ConsultationContext,
    RuleResolver,
    SelectionSource,
    TemplateSelection,
)

__all__ = [
    "ConsultationContext",
    "RuleResolver",
    "SelectionSource",
    "TemplateSelection",
]
