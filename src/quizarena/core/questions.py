"""Question model and content-source loading.

A question set is validated once, when it is loaded into a match: it must be
non-empty, schema-valid, long enough for the match, and every
``correct_index`` must point inside its ``options``. Anything else raises
QuestionLoadError, which the match controller turns into its Error phase.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import yaml

from quizarena.core.schemas import bundled_schema, schema_errors

logger = logging.getLogger(__name__)


class QuestionLoadError(ValueError):
    """Question content is missing, malformed, or too short for the match."""


@dataclass(frozen=True)
class Question:
    """One multiple-choice question. Immutable once loaded into a match."""

    id: str
    prompt: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str | None = None
    difficulty: str = "medium"
    category: str = "general"
    language: str = "en"

    def is_correct(self, option: int) -> bool:
        return option == self.correct_index


def questions_from_records(records) -> tuple[Question, ...]:
    """Build questions from raw dicts (as parsed from JSON/YAML)."""
    errors = schema_errors(records, bundled_schema("questions"))
    if errors:
        raise QuestionLoadError("Malformed question set: " + "; ".join(errors))

    questions = []
    seen: set[str] = set()
    for raw in records:
        qid = str(raw["id"])
        if qid in seen:
            raise QuestionLoadError(f"Duplicate question id: {qid!r}")
        seen.add(qid)
        options = tuple(raw["options"])
        if raw["correct_index"] >= len(options):
            raise QuestionLoadError(
                f"Question {qid!r}: correct_index {raw['correct_index']} "
                f"out of range for {len(options)} options"
            )
        questions.append(
            Question(
                id=qid,
                prompt=raw["prompt"],
                options=options,
                correct_index=raw["correct_index"],
                explanation=raw.get("explanation"),
                difficulty=raw.get("difficulty", "medium"),
                category=raw.get("category", "general"),
                language=raw.get("language", "en"),
            )
        )
    return tuple(questions)


def load_questions(path: Path) -> tuple[Question, ...]:
    """Load a question set from a ``.json`` or ``.yaml``/``.yml`` file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                records = yaml.safe_load(f)
            else:
                records = json.load(f)
    except OSError as e:
        raise QuestionLoadError(f"Cannot read question file {path}: {e}") from e
    except (UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise QuestionLoadError(f"Cannot parse question file {path}: {e}") from e

    questions = questions_from_records(records)
    logger.debug("Loaded %d questions from %s", len(questions), path)
    return questions


def select_questions(questions: Iterable[Question], count: int) -> tuple[Question, ...]:
    """Take the first ``count`` questions, failing if there are too few.

    Questions built by hand rather than through ``questions_from_records``
    are bounds-checked here as well, and ids must be unique.
    """
    selected = tuple(questions)[:count]
    if not selected:
        raise QuestionLoadError("Question set is empty")
    if len(selected) < count:
        raise QuestionLoadError(
            f"Match needs {count} questions, content source supplied {len(selected)}"
        )
    seen: set[str] = set()
    for q in selected:
        if q.id in seen:
            raise QuestionLoadError(f"Duplicate question id: {q.id!r}")
        seen.add(q.id)
        if len(q.options) < 2 or not 0 <= q.correct_index < len(q.options):
            raise QuestionLoadError(
                f"Question {q.id!r}: correct_index {q.correct_index} "
                f"out of range for {len(q.options)} options"
            )
    return selected


class FileQuestionSource:
    """Content source that reads a question file once and caches it."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._questions: tuple[Question, ...] | None = None

    def __call__(self, question_count: int) -> tuple[Question, ...]:
        if self._questions is None:
            self._questions = load_questions(self._path)
        return select_questions(self._questions, question_count)
