"""File registry for templates, rule sets and the active question set."""

import json
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import jsonschema
from pydantic import BaseModel, ValidationError

from kiosk_form.io import append_question, read_questions, write_questions
from kiosk_form.registry.models import (
    ActiveQuestion,
    ConsultationType,
    DepartmentRuleSet,
    QuestionTemplate,
    normalize_department,
)
from kiosk_form.registry.stores import (
    StoreDataError,
    StoreUnavailableError,
    matches_filter,
    most_recent_first,
)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"
TEMPLATE_SCHEMA = "question_template.schema.json"
RULE_SET_SCHEMA = "consultation_rules.schema.json"


class FileRegistry:
    """Registry backed by a directory of JSON documents.

    Layout:
        <registry_path>/templates/<template_id>.json
        <registry_path>/rule-sets/<department>.json
        <registry_path>/active-questions.jsonl

    Templates and rule sets are validated against the bundled JSON
    schemas on every read; nothing is cached, so edits made by other
    processes are seen immediately.
    """

    def __init__(
        self,
        registry_path: Path | str,
        schema_dir: Path | str | None = None,
        validate: bool = True,
    ) -> None:
        """Initialize the registry.

        Args:
            registry_path: Root directory of the registry.
            schema_dir: Directory holding the JSON schemas. Defaults to the
                schemas bundled with the package.
            validate: Whether to validate documents against the schemas.
        """
        self.registry_path = Path(registry_path)
        self.templates_path = self.registry_path / "templates"
        self.rule_sets_path = self.registry_path / "rule-sets"
        self.questions_path = self.registry_path / "active-questions.jsonl"

        self._template_schema: dict | None = None
        self._rule_set_schema: dict | None = None
        if validate:
            schema_root = Path(schema_dir) if schema_dir else SCHEMA_DIR
            with open(schema_root / TEMPLATE_SCHEMA, encoding="utf-8") as f:
                self._template_schema = json.load(f)
            with open(schema_root / RULE_SET_SCHEMA, encoding="utf-8") as f:
                self._rule_set_schema = json.load(f)

    def _ensure_available(self) -> None:
        if not self.registry_path.is_dir():
            raise StoreUnavailableError(f"Registry not found: {self.registry_path}")

    def _load(
        self,
        path: Path,
        schema: dict | None,
        model: type[BaseModel],
        defaults: dict[str, Any] | None = None,
    ) -> Any:
        """Load, schema-check and parse a single JSON document."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreDataError(f"Invalid JSON in {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StoreDataError(f"Invalid UTF-8 in {path}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read {path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreDataError(f"Expected a JSON object in {path}")
        if defaults:
            data = {**defaults, **data}

        if schema:
            try:
                jsonschema.validate(data, schema)
            except jsonschema.ValidationError as e:
                raise StoreDataError(f"Schema validation failed for {path}: {e.message}") from e

        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise StoreDataError(f"Invalid document {path}: {e}") from e

    def _load_template(self, path: Path) -> QuestionTemplate:
        return self._load(path, self._template_schema, QuestionTemplate, {"id": path.stem})

    # RuleSetStore

    def find_rule_set(self, department: str) -> DepartmentRuleSet | None:
        self._ensure_available()
        key = normalize_department(department)
        if not key or "/" in key or "\\" in key or key.startswith("."):
            return None
        path = self.rule_sets_path / f"{key}.json"
        if not path.exists():
            return None
        return self._load(path, self._rule_set_schema, DepartmentRuleSet, {"department": key})

    def list_rule_sets(self) -> list[DepartmentRuleSet]:
        """List every rule set, sorted by department."""
        self._ensure_available()
        if not self.rule_sets_path.exists():
            return []
        return [
            self._load(p, self._rule_set_schema, DepartmentRuleSet, {"department": p.stem})
            for p in sorted(self.rule_sets_path.glob("*.json"))
        ]

    # TemplateStore

    def find_template_by_id(self, template_id: str) -> QuestionTemplate | None:
        self._ensure_available()
        if not template_id or "/" in template_id or "\\" in template_id:
            return None
        path = self.templates_path / f"{template_id}.json"
        if not path.exists():
            return None
        return self._load_template(path)

    def _all_templates(self) -> list[QuestionTemplate]:
        self._ensure_available()
        if not self.templates_path.exists():
            return []
        return [self._load_template(p) for p in sorted(self.templates_path.glob("*.json"))]

    def find_template(
        self,
        is_default: bool | None = None,
        department: str | None = None,
        consultation_type: ConsultationType | None = None,
    ) -> QuestionTemplate | None:
        candidates = [
            t
            for t in self._all_templates()
            if matches_filter(t, is_default, department, consultation_type)
        ]
        ordered = most_recent_first(candidates)
        return ordered[0] if ordered else None

    def list_templates(
        self, departments: Iterable[str] | None = None
    ) -> list[QuestionTemplate]:
        templates = self._all_templates()
        if departments is not None:
            wanted = {normalize_department(d) for d in departments}
            templates = [
                t for t in templates if normalize_department(t.department) in wanted
            ]
        return most_recent_first(templates)

    # ActiveQuestionStore

    def _read_questions(self) -> list[ActiveQuestion]:
        self._ensure_available()
        try:
            return read_questions(self.questions_path)
        except ValueError as e:
            raise StoreDataError(f"{self.questions_path}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read {self.questions_path}: {e}") from e

    def all_questions(self) -> list[ActiveQuestion]:
        """Every stored question, active or not, in file order."""
        return self._read_questions()

    def list_active(self) -> list[ActiveQuestion]:
        return [q for q in self._read_questions() if q.is_active]

    def deactivate_all(self) -> int:
        questions = self._read_questions()
        changed = sum(1 for q in questions if q.is_active)
        if changed:
            try:
                write_questions(
                    self.questions_path,
                    [q.model_copy(update={"is_active": False}) for q in questions],
                )
            except OSError as e:
                raise StoreUnavailableError(
                    f"Cannot write {self.questions_path}: {e}"
                ) from e
        return changed

    def create(self, question: ActiveQuestion) -> str:
        self._ensure_available()
        question_id = question.id or uuid.uuid4().hex
        try:
            append_question(self.questions_path, question.model_copy(update={"id": question_id}))
        except OSError as e:
            raise StoreUnavailableError(f"Cannot write {self.questions_path}: {e}") from e
        return question_id
