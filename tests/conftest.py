"""Pytest configuration and shared fixtures."""

import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest
import structlog

from kiosk_form.registry import (
    ActiveQuestion,
    ConsultationRule,
    ConsultationType,
    DepartmentRuleSet,
    InMemoryStore,
    QuestionTemplate,
    QuestionType,
    TemplateQuestion,
)


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def registry_path(fixtures_dir: Path, tmp_path: Path) -> Path:
    """Return a writable copy of the fixture registry."""
    dest = tmp_path / "registry"
    shutil.copytree(fixtures_dir / "registry", dest)
    return dest


@pytest.fixture(autouse=True)
def kiosk_form_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the kiosk-form home at a temp dir and clear env overrides."""
    home = tmp_path / "home"
    monkeypatch.setenv("KIOSK_FORM_HOME", str(home))
    monkeypatch.delenv("KIOSK_FORM_REGISTRY", raising=False)
    monkeypatch.delenv("KIOSK_FORM_LOG_LEVEL", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration made by a test."""
    yield
    structlog.reset_defaults()


def _stamp(day: int) -> datetime:
    return datetime(2024, 1, day, 9, 0, tzinfo=timezone.utc)


def _rating(title: str, order_index: int = 0, required: bool = True) -> TemplateQuestion:
    return TemplateQuestion(
        type=QuestionType.RATING,
        title=title,
        required=required,
        min_value=1,
        max_value=5,
        order_index=order_index,
    )


def _text(title: str, order_index: int = 0, required: bool = False) -> TemplateQuestion:
    return TemplateQuestion(
        type=QuestionType.TEXT, title=title, required=required, order_index=order_index
    )


@pytest.fixture
def first_visit_template() -> QuestionTemplate:
    """Cardiology first-visit template targeted by a consultation rule."""
    return QuestionTemplate(
        id="t1",
        name="Cardiology First Visit",
        department="cardiology",
        consultation_type=ConsultationType.FIRST_VISIT,
        questions=[_rating("Overall experience"), _text("Comments", order_index=1)],
        created_at=_stamp(1),
    )


@pytest.fixture
def department_default_template() -> QuestionTemplate:
    """Cardiology default template named by the rule set."""
    return QuestionTemplate(
        id="t2",
        name="Cardiology Regular",
        department="cardiology",
        consultation_type=ConsultationType.REGULAR,
        is_default=True,
        questions=[_rating("Were you seen on time?")],
        created_at=_stamp(2),
    )


@pytest.fixture
def global_default_template() -> QuestionTemplate:
    """Default template of the general department."""
    return QuestionTemplate(
        id="g",
        name="General Feedback",
        department="general",
        consultation_type=ConsultationType.REGULAR,
        is_default=True,
        questions=[_rating("How satisfied were you?")],
        created_at=_stamp(3),
    )


@pytest.fixture
def cardiology_rules() -> DepartmentRuleSet:
    """Rule set: visit 1 goes to t1, everything else to t2."""
    return DepartmentRuleSet(
        department="cardiology",
        rules=[
            ConsultationRule(
                consultation_number=1,
                template_id="t1",
                template_name="Cardiology First Visit",
                description="First visit comprehensive feedback",
            )
        ],
        default_template_id="t2",
    )


@pytest.fixture
def store(
    cardiology_rules: DepartmentRuleSet,
    first_visit_template: QuestionTemplate,
    department_default_template: QuestionTemplate,
    global_default_template: QuestionTemplate,
) -> InMemoryStore:
    """In-memory store with the cardiology scenario loaded."""
    return InMemoryStore(
        rule_sets=[cardiology_rules],
        templates=[
            first_visit_template,
            department_default_template,
            global_default_template,
        ],
    )


@pytest.fixture
def active_questions() -> list[ActiveQuestion]:
    """Two live questions and one retired one."""
    return [
        ActiveQuestion(
            id="a1",
            type=QuestionType.TEXT,
            title="Overall experience",
            order_index=5,
        ),
        ActiveQuestion(
            id="a2",
            type=QuestionType.YES_NO,
            title="Were the staff friendly?",
            required=True,
            order_index=0,
        ),
        ActiveQuestion(
            id="a3",
            type=QuestionType.TEXT,
            title="Retired",
            order_index=9,
            is_active=False,
        ),
    ]
