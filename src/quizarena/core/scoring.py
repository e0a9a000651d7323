"""ScoringPolicy — points for one answer.

points = base_points + floor(remaining_ms / 1000) * bonus_per_second
for a correct answer, 0 otherwise. No negative marking: a wrong answer
scores exactly like a timeout.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quizarena.config import MatchConfig


@dataclass(frozen=True)
class ScoringPolicy:
    base_points: int = 100
    bonus_per_second: int = 10

    @classmethod
    def from_config(cls, config: MatchConfig) -> ScoringPolicy:
        return cls(
            base_points=config.base_points,
            bonus_per_second=config.bonus_per_second,
        )

    def points(self, is_correct: bool, remaining_ms: int) -> int:
        """Score an answer, evaluated at the moment it was given."""
        if not is_correct:
            return 0
        whole_seconds = max(0, remaining_ms) // 1000
        return self.base_points + whole_seconds * self.bonus_per_second

    def max_points(self, time_per_question_ms: int) -> int:
        """Best possible score for a single question."""
        return self.points(True, time_per_question_ms)
