"""Tests for the execute() interface."""

from pathlib import Path

import pytest

from kiosk_form import execute
from kiosk_form.callable import OPERATIONS
from kiosk_form.config import GlobalConfig, save_global_config
from kiosk_form.registry import FileRegistry


def params(registry_path: Path, operation: str, **kwargs) -> dict:
    return {
        "operation": operation,
        "config": {"registry_path": str(registry_path)},
        **kwargs,
    }


class TestExecuteInterface:
    """Tests for execute() function interface."""

    def test_returns_result_dict(self, registry_path: Path) -> None:
        """Test execute returns the CallableResult envelope."""
        result = execute(
            params(
                registry_path,
                "select_template",
                consultationNumber=1,
                department="Cardiology",
                patientId="p-1",
            )
        )

        assert result["schema_version"] == "1.0"
        assert result["operation"] == "select_template"
        data = result["data"]
        assert data["source"] == "consultation-rule"
        assert data["questionnaireType"] == "first-visit"
        assert data["ruleDescription"] == "First visit comprehensive feedback"
        assert data["template"]["id"] == "cardiology-first"
        assert data["template"]["consultationType"] == "first-visit"

    def test_select_template_exhausted(self, tmp_path: Path) -> None:
        """Test an empty registry yields no template."""
        registry = tmp_path / "empty"
        registry.mkdir()
        result = execute(
            params(
                registry,
                "select_template",
                consultationNumber=3,
                department="cardiology",
                patientId="p-1",
            )
        )

        assert result["data"] == {
            "template": None,
            "questionnaireType": "default",
            "source": "fallback",
            "ruleDescription": None,
        }

    def test_questionnaire(self, registry_path: Path) -> None:
        """Test the read path with filter options from config."""
        result = execute(
            {
                "operation": "questionnaire",
                "config": {
                    "registry_path": str(registry_path),
                    "filter_options": {"excludeTypes": ["multipleChoice", "text"]},
                },
                "consultationNumber": 1,
                "department": "cardiology",
                "patientId": "p-1",
            }
        )

        questions = result["data"]["questions"]
        assert [q["type"] for q in questions] == ["rating"]
        assert questions[0]["isFromTemplate"] is True
        assert questions[0]["templateId"] == "cardiology-first"

    def test_questionnaire_max_from_config_yaml(self, registry_path: Path) -> None:
        """Test max_questions in config.yaml truncates unless the caller sets it."""
        save_global_config(GlobalConfig(max_questions=1))
        base = params(
            registry_path,
            "questionnaire",
            consultationNumber=1,
            department="cardiology",
            patientId="p-1",
        )

        assert len(execute(base)["data"]["questions"]) == 1

        base["config"]["filter_options"] = {"maxQuestions": 2}
        assert len(execute(base)["data"]["questions"]) == 2

    def test_apply_template(self, registry_path: Path) -> None:
        """Test applying a template through execute."""
        result = execute(
            params(
                registry_path,
                "apply_template",
                templateId="broken-choice",
                options={"replaceExisting": True, "createdBy": "nurse-1"},
            )
        )

        data = result["data"]
        assert data["success"] is True
        assert data["appliedQuestions"] == 2
        assert data["skippedQuestions"] == 1
        assert data["errors"] == ["Question 2: Multiple choice questions must have options"]
        active = FileRegistry(registry_path).list_active()
        assert {q.id for q in active} == set(data["createdQuestionIds"])

    def test_apply_multiple_templates(self, registry_path: Path) -> None:
        """Test applying several templates through execute."""
        result = execute(
            params(
                registry_path,
                "apply_multiple_templates",
                templateIds=["cardiology-default", "general-default"],
            )
        )

        assert result["data"]["appliedQuestions"] == 4
        assert len(FileRegistry(registry_path).list_active()) == 6

    def test_preview_template(self, registry_path: Path) -> None:
        """Test preview through execute."""
        result = execute(params(registry_path, "preview_template", templateId="broken-choice"))

        data = result["data"]
        assert data["questionsToCreate"] == 2
        assert data["questionsWithErrors"] == 1
        assert data["preview"][1]["valid"] is False

    def test_template_compatibility(self, registry_path: Path) -> None:
        """Test compatibility through execute."""
        result = execute(
            params(registry_path, "template_compatibility", templateId="cardiology-first")
        )

        data = result["data"]
        assert data["success"] is True
        assert data["compatible"] is False
        assert {c["conflictType"] for c in data["conflicts"]} == {"order"}

    def test_validate_rules(self, registry_path: Path) -> None:
        """Test rule validation through execute."""
        result = execute(
            params(
                registry_path,
                "validate_rules",
                ruleSet={
                    "department": "ent",
                    "rules": [
                        {"consultationNumber": 2, "templateId": "a"},
                        {"consultationNumber": 2, "templateId": "b"},
                    ],
                },
            )
        )

        assert result["data"] == {
            "isValid": False,
            "errors": ["Duplicate consultation number: 2"],
        }

    def test_operations_registered(self) -> None:
        """Test every operation is available."""
        assert set(OPERATIONS) == {
            "select_template",
            "questionnaire",
            "apply_template",
            "apply_multiple_templates",
            "preview_template",
            "template_compatibility",
            "validate_rules",
        }


class TestExecuteErrors:
    """Tests for execute() parameter errors."""

    def test_missing_operation(self) -> None:
        """Test that operation is required."""
        with pytest.raises(ValueError, match="'operation' is required"):
            execute({})

    def test_unknown_operation(self, registry_path: Path) -> None:
        """Test an unknown operation."""
        with pytest.raises(ValueError, match="Unknown operation: score"):
            execute(params(registry_path, "score"))

    def test_missing_param(self, registry_path: Path) -> None:
        """Test a missing parameter names the key."""
        with pytest.raises(ValueError, match="'templateId' is required"):
            execute(params(registry_path, "apply_template"))

    def test_template_ids_must_be_list(self, registry_path: Path) -> None:
        """Test templateIds must be a list."""
        with pytest.raises(ValueError, match="must be a list"):
            execute(params(registry_path, "apply_multiple_templates", templateIds="a"))

    def test_invalid_consultation_number(self, registry_path: Path) -> None:
        """Test consultation numbers below one are rejected."""
        with pytest.raises(ValueError):
            execute(
                params(
                    registry_path,
                    "select_template",
                    consultationNumber=0,
                    department="cardiology",
                    patientId="p-1",
                )
            )

    def test_default_registry_from_env(
        self, registry_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the registry falls back to KIOSK_FORM_REGISTRY."""
        monkeypatch.setenv("KIOSK_FORM_REGISTRY", str(registry_path))
        result = execute({"operation": "preview_template", "templateId": "cardiology-first"})

        assert result["data"]["questionsToCreate"] == 3
