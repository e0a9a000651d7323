"""Shared test fixtures for quizarena."""

import pytest

from quizarena.config import MatchConfig
from quizarena.core.questions import Question
from quizarena.core.scheduler import ManualScheduler
from quizarena.match import MatchController, MatchListener


class RecordingListener(MatchListener):
    """Keeps every callback for later assertions."""

    def __init__(self):
        self.phases = []
        self.completed = []
        self.abandoned = 0
        self.errors = []

    def on_phase_change(self, phase, question_index, remaining_ms, score):
        self.phases.append((phase, question_index, remaining_ms, score))

    def on_completed(self, result):
        self.completed.append(result)

    def on_abandoned(self):
        self.abandoned += 1

    def on_error(self, reason):
        self.errors.append(reason)


def build_questions(count: int = 10) -> tuple[Question, ...]:
    return tuple(
        Question(
            id=f"q{i}",
            prompt=f"Question {i}?",
            options=("A", "B", "C", "D"),
            correct_index=i % 4,
        )
        for i in range(count)
    )


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def questions():
    return build_questions(10)


@pytest.fixture
def match_config():
    return MatchConfig(
        question_count=10,
        time_per_question_ms=10000,
        review_delay_ms=2000,
        base_points=100,
        bonus_per_second=10,
    )


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def controller(scheduler, questions, listener):
    """A controller in Idle whose content source serves ``questions``."""
    return MatchController(
        "player_a", lambda count: questions, scheduler, listener=listener
    )


@pytest.fixture
def tmp_output(tmp_path):
    """Provide a temporary output directory for test runs."""
    return tmp_path / "output"
