"""Pipeline wiring stores to resolution, filtering and application."""

from kiosk_form.pipeline.orchestrator import (
    ConsultationQuestionnaire,
    Pipeline,
    PipelineConfig,
)

__all__ = [
    "ConsultationQuestionnaire",
    "Pipeline",
    "PipelineConfig",
]
