"""RankingEngine — deterministic final standings for one match instance.

Ordering key, in priority order:
    1. total_score, descending
    2. avg_response_time_ms, ascending
    3. join order, ascending

Only prize-eligible (completed) players are ranked; they receive contiguous
1-based ranks with no ties. Abandoned and errored players are kept in the
output for audit with ``rank=None``. The same input always yields the same
ranks, because payouts depend on them.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from quizarena.results import PlayerMatchResult


def ranking_key(result: PlayerMatchResult) -> tuple:
    return (-result.total_score, result.avg_response_time_ms, result.join_order)


class RankingEngine:
    """Assigns ranks across all participants of one match instance."""

    def rank(self, results: Iterable[PlayerMatchResult]) -> list[PlayerMatchResult]:
        """Return ranked copies: eligible players by rank, then the rest by join order."""
        results = list(results)
        player_ids = [r.player_id for r in results]
        if len(set(player_ids)) != len(player_ids):
            raise ValueError("Duplicate player ids in ranking input")

        eligible = sorted((r for r in results if r.prize_eligible), key=ranking_key)
        excluded = sorted(
            (r for r in results if not r.prize_eligible), key=lambda r: r.join_order
        )

        ranked = [replace(r, rank=i) for i, r in enumerate(eligible, start=1)]
        ranked.extend(replace(r, rank=None) for r in excluded)
        return ranked
