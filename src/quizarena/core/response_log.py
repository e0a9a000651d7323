"""ResponseLog — append-only per-player record of question outcomes.

Exactly one ResponseRecord per question. A second record for the same
question is a controller bug, signalled with DuplicateResponseError and
never applied.
"""

from __future__ import annotations

from dataclasses import dataclass


class DuplicateResponseError(RuntimeError):
    """A record for this question is already in the log."""


@dataclass(frozen=True)
class ResponseRecord:
    """Outcome of one question for one player. Frozen at creation."""

    question_id: str
    question_index: int
    selected_option: int | None  # None = timed out
    is_correct: bool
    response_time_ms: int
    points: int

    @property
    def timed_out(self) -> bool:
        return self.selected_option is None


class ResponseLog:
    """Records for one player's match, plus the statistics derived from them."""

    def __init__(self, question_count: int, time_per_question_ms: int) -> None:
        self._question_count = question_count
        self._time_per_question_ms = time_per_question_ms
        self._records: list[ResponseRecord] = []
        self._by_question: dict[str, ResponseRecord] = {}

    def append(self, record: ResponseRecord) -> None:
        if record.question_id in self._by_question:
            raise DuplicateResponseError(
                f"Question {record.question_id!r} already has a response"
            )
        if len(self._records) >= self._question_count:
            raise DuplicateResponseError(
                f"Log already holds {self._question_count} responses"
            )
        if not 0 <= record.response_time_ms <= self._time_per_question_ms:
            raise ValueError(
                f"response_time_ms {record.response_time_ms} outside "
                f"[0, {self._time_per_question_ms}]"
            )
        self._records.append(record)
        self._by_question[record.question_id] = record

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._by_question

    @property
    def records(self) -> tuple[ResponseRecord, ...]:
        return tuple(self._records)

    @property
    def question_count(self) -> int:
        return self._question_count

    @property
    def is_complete(self) -> bool:
        return len(self._records) == self._question_count

    # ------------------------------------------------------------------
    # Derived statistics
    # ------------------------------------------------------------------

    @property
    def total_score(self) -> int:
        return sum(r.points for r in self._records)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self._records if r.is_correct)

    @property
    def average_response_time_ms(self) -> float:
        """Mean response time over *all* questions of the match.

        Unanswered questions (timeouts, or questions never reached) count
        as the full per-question duration, so slow or absent play ranks
        lower in the tie-break.
        """
        missing = self._question_count - len(self._records)
        total = sum(r.response_time_ms for r in self._records)
        total += missing * self._time_per_question_ms
        return total / self._question_count
