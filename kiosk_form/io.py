"""Reading and writing the active question set as JSONL."""

import json
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from kiosk_form.registry.models import ActiveQuestion


def read_questions(path: Path | str) -> list[ActiveQuestion]:
    """Read active questions from a JSONL file.

    A missing file is an empty question set.

    Args:
        path: Path to the JSONL file.

    Returns:
        Questions in file order.

    Raises:
        ValueError: If a line is not valid JSON or not a valid question.
    """
    path = Path(path)
    if not path.exists():
        return []

    questions: list[ActiveQuestion] = []
    with open(path, encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                questions.append(ActiveQuestion.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                raise ValueError(f"Invalid question on line {line_num}: {e}") from e
    return questions


def write_questions(path: Path | str, questions: Iterable[ActiveQuestion]) -> int:
    """Rewrite a JSONL file with the given questions.

    Returns:
        Number of questions written.
    """
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for question in questions:
            f.write(_dump(question) + "\n")
            count += 1
    return count


def append_question(path: Path | str, question: ActiveQuestion) -> None:
    """Append one question to a JSONL file."""
    with open(path, "a", encoding="utf-8") as f:
        f.write(_dump(question) + "\n")


def _dump(question: ActiveQuestion) -> str:
    return json.dumps(
        question.model_dump(mode="json", by_alias=True, exclude_none=True),
        ensure_ascii=False,
    )
