"""PlayerMatchResult — one participant's outcome, handed to the host shell."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from quizarena.core.achievements import best_streak, detect_achievements
from quizarena.core.response_log import ResponseLog, ResponseRecord


class PlayerStatus(Enum):
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    ERROR = "error"


@dataclass(frozen=True)
class PlayerMatchResult:
    """Read-only result snapshot.

    ``rank`` and ``prize_amount`` stay unset until the whole participant
    set has been ranked; RankingEngine and PrizeAllocator return updated
    copies rather than mutating this one.
    """

    player_id: str
    join_order: int
    status: PlayerStatus
    records: tuple[ResponseRecord, ...]
    total_score: int
    correct_count: int
    avg_response_time_ms: float
    best_streak: int = 0
    achievements: tuple[str, ...] = ()
    rank: int | None = None
    prize_amount: Decimal = field(default_factory=lambda: Decimal("0"))

    @property
    def prize_eligible(self) -> bool:
        return self.status is PlayerStatus.COMPLETED

    @classmethod
    def from_log(
        cls,
        player_id: str,
        join_order: int,
        status: PlayerStatus,
        log: ResponseLog,
        time_per_question_ms: int,
    ) -> PlayerMatchResult:
        records = log.records
        achievements: tuple[str, ...] = ()
        if status is PlayerStatus.COMPLETED:
            achievements = detect_achievements(
                records, log.question_count, time_per_question_ms
            )
        return cls(
            player_id=player_id,
            join_order=join_order,
            status=status,
            records=records,
            total_score=log.total_score,
            correct_count=log.correct_count,
            avg_response_time_ms=log.average_response_time_ms,
            best_streak=best_streak(records),
            achievements=achievements,
        )

    def to_dict(self) -> dict:
        """Serializable summary (no per-question records)."""
        return {
            "player_id": self.player_id,
            "join_order": self.join_order,
            "status": self.status.value,
            "total_score": self.total_score,
            "correct_count": self.correct_count,
            "answered": len(self.records),
            "avg_response_time_ms": self.avg_response_time_ms,
            "best_streak": self.best_streak,
            "achievements": list(self.achievements),
            "rank": self.rank,
            "prize_amount": str(self.prize_amount),
        }
