"""Tests for the pipeline and the kiosk read path."""

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from kiosk_form.filtering import FilterOptions
from kiosk_form.pipeline import Pipeline, PipelineConfig
from kiosk_form.registry import InMemoryStore, QuestionTemplate
from kiosk_form.resolution import ConsultationContext, SelectionSource


def context(consultation_number: int, department: str = "cardiology") -> ConsultationContext:
    return ConsultationContext(
        consultation_number=consultation_number,
        department=department,
        patient_id="patient-7",
    )


class TestPipeline:
    """Tests for Pipeline construction and wiring."""

    def test_requires_config_or_store(self) -> None:
        """Test a pipeline needs somewhere to read from."""
        with pytest.raises(ValueError, match="config or a store"):
            Pipeline()

    def test_uses_given_store(self, store: InMemoryStore) -> None:
        """Test an injected store is shared by resolver and applier."""
        pipeline = Pipeline(store=store)

        assert pipeline.resolver.templates is store
        assert pipeline.applier.questions is store
        assert pipeline.applier.question_filter is pipeline.question_filter


class TestQuestionnaireFor:
    """Tests for questionnaire_for."""

    def test_first_visit_from_registry(self, registry_path: Path) -> None:
        """Test a first cardiology visit renders the rule's template."""
        pipeline = Pipeline(PipelineConfig(registry_path=registry_path))
        result = pipeline.questionnaire_for(context(1))

        assert result.template_id == "cardiology-first"
        assert result.questionnaire_type == "first-visit"
        assert result.source == SelectionSource.CONSULTATION_RULE
        assert result.rule_description == "First visit comprehensive feedback"
        assert result.total_questions == 3
        assert [q.id for q in result.questions] == [
            "template_cardiology-first_0",
            "template_cardiology-first_1",
            "template_cardiology-first_2",
        ]

    def test_follow_up_uses_rule_set_default(self, registry_path: Path) -> None:
        """Test a later visit renders the rule set's default template."""
        pipeline = Pipeline(PipelineConfig(registry_path=registry_path))
        result = pipeline.questionnaire_for(context(2))

        assert result.template_id == "cardiology-default"
        assert result.source == SelectionSource.DEFAULT_TEMPLATE

    def test_dangling_rules_fall_back_to_global_default(self, registry_path: Path) -> None:
        """Test dermatology's missing templates fall through to the global default."""
        pipeline = Pipeline(PipelineConfig(registry_path=registry_path))
        result = pipeline.questionnaire_for(context(1, "dermatology"))

        assert result.template_id == "general-default"
        assert result.source == SelectionSource.FALLBACK

    def test_filter_options_applied(self, registry_path: Path) -> None:
        """Test the configured filter options shape the questionnaire."""
        config = PipelineConfig(
            registry_path=registry_path,
            filter_options=FilterOptions(include_optional=False),
        )
        result = Pipeline(config).questionnaire_for(context(1))

        assert [q.title for q in result.questions] == [
            "How would you rate your overall experience?"
        ]

    def test_active_questions_fallback(self, registry_path: Path) -> None:
        """Test that with no template the active questions are rendered."""
        for path in (registry_path / "templates").glob("*.json"):
            path.unlink()
        pipeline = Pipeline(PipelineConfig(registry_path=registry_path))

        with capture_logs() as logs:
            result = pipeline.questionnaire_for(context(3))

        assert result.questionnaire_type == "general"
        assert result.template_id is None
        assert [q.id for q in result.questions] == ["q-staff", "q-wait"]
        assert not any(q.is_from_template for q in result.questions)
        assert "active_questions_fallback" in [e["event"] for e in logs]

    def test_active_fallback_honours_filter_options(
        self, tmp_path: Path, active_questions: list
    ) -> None:
        """Test the configured filter options also shape the active-question fallback."""
        config = PipelineConfig(
            registry_path=tmp_path,
            filter_options=FilterOptions(max_questions=1),
        )
        pipeline = Pipeline(config, store=InMemoryStore(questions=active_questions))
        result = pipeline.questionnaire_for(context(3))

        assert result.questionnaire_type == "general"
        assert [q.id for q in result.questions] == ["a2"]

    def test_active_fallback_required_only(self, active_questions: list) -> None:
        """Test include_optional=False drops optional active questions."""
        config = PipelineConfig(
            registry_path=Path("unused"),
            filter_options=FilterOptions(include_optional=False),
        )
        pipeline = Pipeline(config, store=InMemoryStore(questions=active_questions))

        assert [q.id for q in pipeline.questionnaire_for(context(1)).questions] == ["a2"]

    def test_template_without_questions_falls_back(
        self, active_questions: list
    ) -> None:
        """Test an empty template renders the active questions instead."""
        store = InMemoryStore(
            templates=[
                QuestionTemplate(id="empty", name="Empty", department="x", is_default=True)
            ],
            questions=active_questions,
        )
        result = Pipeline(store=store).questionnaire_for(context(1, "x"))

        assert result.questionnaire_type == "general"
        assert [q.id for q in result.questions] == ["a2", "a1"]

    def test_serialized_with_camel_case(self, store: InMemoryStore) -> None:
        """Test the questionnaire dumps camelCase keys."""
        result = Pipeline(store=store).questionnaire_for(context(1))
        data = result.model_dump(mode="json", by_alias=True)

        assert data["questionnaireType"] == "first-visit"
        assert data["templateId"] == "t1"
        assert data["questions"][0]["isFromTemplate"] is True
