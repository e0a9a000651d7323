"""Post-match achievements and answer streaks.

Achievements are cosmetic: they are computed from a finished ResponseLog
and never feed into score or ranking.
"""

from __future__ import annotations

from typing import Sequence

from quizarena.core.response_log import ResponseRecord

PERFECT_SCORE = "Perfect Score"
SPEED_DEMON = "Speed Demon"
COMEBACK_KID = "Comeback Kid"
CONSISTENCY_KING = "Consistency King"
LAST_SECOND_HERO = "Last Second Hero"

_SPEED_DEMON_SHARE = 0.8
_CONSISTENCY_WINDOW_MS = 2000
_LAST_SECOND_MS = 1000


def best_streak(records: Sequence[ResponseRecord]) -> int:
    """Longest run of consecutive correct answers."""
    best = current = 0
    for r in records:
        current = current + 1 if r.is_correct else 0
        best = max(best, current)
    return best


def detect_achievements(
    records: Sequence[ResponseRecord],
    question_count: int,
    time_per_question_ms: int,
) -> tuple[str, ...]:
    if not records:
        return ()

    earned = []
    correct = [r for r in records if r.is_correct]

    if len(correct) == question_count:
        earned.append(PERFECT_SCORE)

    fast = [r for r in correct if r.response_time_ms < time_per_question_ms / 2]
    if len(fast) >= question_count * _SPEED_DEMON_SHARE:
        earned.append(SPEED_DEMON)

    half = question_count // 2
    first_half_wrong = sum(1 for r in records[:half] if not r.is_correct)
    second_half_correct = sum(1 for r in records[half:] if r.is_correct)
    if first_half_wrong >= 2 and second_half_correct >= 3:
        earned.append(COMEBACK_KID)

    if correct:
        times = [r.response_time_ms for r in correct]
        if max(times) - min(times) <= _CONSISTENCY_WINDOW_MS:
            earned.append(CONSISTENCY_KING)

    last_second = [
        r for r in correct
        if time_per_question_ms - r.response_time_ms < _LAST_SECOND_MS
    ]
    if len(last_second) >= 3:
        earned.append(LAST_SECOND_HERO)

    return tuple(earned)
