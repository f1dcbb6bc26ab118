"""Execute interface for the kiosk-form callable protocol.

Provides the in-proc execute() function the service layer calls directly
with a plain dict and gets a plain dict back.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from kiosk_form.application.applier import ApplyOptions
from kiosk_form.callable.result import CallableResult
from kiosk_form.config import get_registry_path, load_global_config
from kiosk_form.filtering.models import FilterOptions
from kiosk_form.pipeline import Pipeline, PipelineConfig
from kiosk_form.registry.models import DepartmentRuleSet
from kiosk_form.resolution.resolver import ConsultationContext


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _require(params: dict[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None:
        raise ValueError(f"'{key}' is required in params")
    return value


def _context(params: dict[str, Any]) -> ConsultationContext:
    return ConsultationContext(
        consultation_number=_require(params, "consultationNumber"),
        department=_require(params, "department"),
        patient_id=_require(params, "patientId"),
    )


def _select_template(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    selection = pipeline.resolver.select_template(_context(params))
    return {
        "template": _dump(selection.template) if selection.template else None,
        "questionnaireType": selection.questionnaire_type,
        "source": selection.source.value,
        "ruleDescription": selection.rule_description,
    }


def _questionnaire(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    return _dump(pipeline.questionnaire_for(_context(params)))


def _apply_options(params: dict[str, Any]) -> ApplyOptions:
    return ApplyOptions.model_validate(params.get("options") or {})


def _apply_template(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    result = pipeline.applier.apply_template(
        _require(params, "templateId"), _apply_options(params)
    )
    return _dump(result)


def _apply_multiple_templates(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    template_ids = _require(params, "templateIds")
    if not isinstance(template_ids, list):
        raise ValueError("'templateIds' must be a list")
    result = pipeline.applier.apply_multiple_templates(template_ids, _apply_options(params))
    return _dump(result)


def _preview_template(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    return _dump(pipeline.applier.preview_template_application(_require(params, "templateId")))


def _template_compatibility(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    return _dump(pipeline.applier.get_template_compatibility(_require(params, "templateId")))


def _validate_rules(pipeline: Pipeline, params: dict[str, Any]) -> dict[str, Any]:
    rule_set = DepartmentRuleSet.model_validate(_require(params, "ruleSet"))
    return _dump(pipeline.resolver.validate_consultation_rules(rule_set))


OPERATIONS: dict[str, Callable[[Pipeline, dict[str, Any]], dict[str, Any]]] = {
    "select_template": _select_template,
    "questionnaire": _questionnaire,
    "apply_template": _apply_template,
    "apply_multiple_templates": _apply_multiple_templates,
    "preview_template": _preview_template,
    "template_compatibility": _template_compatibility,
    "validate_rules": _validate_rules,
}


def execute(params: dict[str, Any]) -> dict[str, Any]:
    """Run one template resolution or application operation.

    Args:
        params: Dictionary containing:
            - operation: str - One of the keys of ``OPERATIONS``
            - consultationNumber, department, patientId - for
              ``select_template`` and ``questionnaire``
            - templateId - for ``apply_template``, ``preview_template``,
              ``template_compatibility``
            - templateIds - for ``apply_multiple_templates``
            - options: dict - ApplyOptions (``replaceExisting``,
              ``preserveOrder``, ``skipValidation``, ``createdBy``)
            - ruleSet: dict - for ``validate_rules``
            - config: dict - Optional configuration overrides:
                - registry_path: str - Registry directory
                - filter_options: dict - FilterOptions for the read path;
                  ``maxQuestions`` defaults to ``max_questions`` in config.yaml

    Returns:
        CallableResult dict with ``schema_version``, ``operation`` and ``data``.

    Raises:
        ValueError: If the operation is unknown or a parameter is missing.
        pydantic.ValidationError: If a parameter has the wrong shape.
    """
    operation = params.get("operation")
    if not operation:
        raise ValueError("'operation' is required in params")
    handler = OPERATIONS.get(operation)
    if handler is None:
        raise ValueError(
            f"Unknown operation: {operation}. Expected one of: {', '.join(OPERATIONS)}"
        )

    config = params.get("config", {})
    filter_options = FilterOptions.model_validate(config.get("filter_options") or {})
    if "max_questions" not in filter_options.model_fields_set:
        filter_options = filter_options.model_copy(
            update={"max_questions": load_global_config().max_questions}
        )
    pipeline_config = PipelineConfig(
        registry_path=Path(config.get("registry_path", get_registry_path())),
        filter_options=filter_options,
    )
    pipeline = Pipeline(pipeline_config)

    result = CallableResult(operation=operation, data=handler(pipeline, params))
    return result.to_dict()
