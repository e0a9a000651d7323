"""MatchController — drives one player's match through its question phases.

Phases:

    Idle -> Loading -> Playing(i) -> Reviewing(i) -> Playing(i+1) ... -> Calculating -> Completed
                  \\-> Error
    (any non-terminal phase) --user exit--> Abandoned

Everything that happens to a match is an event dispatched through
``MatchController.dispatch``. The (phase, event type) pair selects the
handler; pairs not in the transition table are ignored. Timer and
review-delay callbacks carry the epoch that was current when they were
scheduled, and the epoch advances whenever a question is resolved or the
match ends, so a late callback can never touch a later question. Together
with the single cooperative scheduler this "first event wins" rule is the
whole concurrency discipline: no locks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Sequence, Union

from quizarena.config import MatchConfig
from quizarena.core.questions import Question, QuestionLoadError, select_questions
from quizarena.core.response_log import (
    DuplicateResponseError,
    ResponseLog,
    ResponseRecord,
)
from quizarena.core.scheduler import Cancellable, Scheduler
from quizarena.core.scoring import ScoringPolicy
from quizarena.core.timer import QuestionTimer
from quizarena.results import PlayerMatchResult, PlayerStatus

logger = logging.getLogger(__name__)

ContentSource = Callable[[int], Sequence[Question]]


class Phase(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    REVIEWING = "reviewing"
    CALCULATING = "calculating"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.COMPLETED, Phase.ABANDONED, Phase.ERROR)


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class LoadQuestions:
    pass


@dataclass(frozen=True)
class QuestionsReady:
    questions: tuple[Question, ...]


@dataclass(frozen=True)
class LoadFailed:
    reason: str


@dataclass(frozen=True)
class AnswerSubmitted:
    option: int


@dataclass(frozen=True)
class TimerTick:
    epoch: int
    remaining_ms: int


@dataclass(frozen=True)
class TimerExpired:
    epoch: int


@dataclass(frozen=True)
class ReviewElapsed:
    epoch: int


@dataclass(frozen=True)
class ResultsComputed:
    result: PlayerMatchResult


@dataclass(frozen=True)
class UserExit:
    pass


MatchEvent = Union[
    LoadQuestions,
    QuestionsReady,
    LoadFailed,
    AnswerSubmitted,
    TimerTick,
    TimerExpired,
    ReviewElapsed,
    ResultsComputed,
    UserExit,
]


@dataclass(frozen=True)
class MatchSnapshot:
    """Read-only view of a match for rendering."""

    phase: Phase
    question_index: int | None = None
    remaining_ms: int = 0
    score: int = 0
    epoch: int = 0
    last_record: ResponseRecord | None = None


class MatchListener:
    """Host-shell callbacks. Every method defaults to a no-op."""

    def on_phase_change(
        self, phase: Phase, question_index: int | None, remaining_ms: int, score: int
    ) -> None:
        """Called on every transition and on every countdown tick."""

    def on_completed(self, result: PlayerMatchResult) -> None:
        pass

    def on_abandoned(self) -> None:
        pass

    def on_error(self, reason: str) -> None:
        pass


class MatchController:
    """State machine for one player's match."""

    _TRANSITIONS: dict[tuple[Phase, type], str] = {
        (Phase.IDLE, LoadQuestions): "_load",
        (Phase.LOADING, QuestionsReady): "_begin",
        (Phase.LOADING, LoadFailed): "_fail",
        (Phase.PLAYING, AnswerSubmitted): "_answer",
        (Phase.PLAYING, TimerTick): "_tick",
        (Phase.PLAYING, TimerExpired): "_expire",
        (Phase.REVIEWING, ReviewElapsed): "_advance",
        (Phase.CALCULATING, ResultsComputed): "_complete",
    }

    def __init__(
        self,
        player_id: str,
        content_source: ContentSource,
        scheduler: Scheduler,
        listener: MatchListener | None = None,
        join_order: int = 0,
    ) -> None:
        self._player_id = player_id
        self._content_source = content_source
        self._scheduler = scheduler
        self._listener = listener or MatchListener()
        self._join_order = join_order

        # Set in start()
        self._config: MatchConfig | None = None
        self._scoring: ScoringPolicy | None = None
        self._log: ResponseLog | None = None
        self._timer: QuestionTimer | None = None

        self._questions: tuple[Question, ...] = ()
        self._state = MatchSnapshot(phase=Phase.IDLE)
        self._epoch = 0
        self._review_handle: Cancellable | None = None
        self._result: PlayerMatchResult | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def join_order(self) -> int:
        return self._join_order

    @property
    def snapshot(self) -> MatchSnapshot:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def current_question(self) -> Question | None:
        if self._state.phase in (Phase.PLAYING, Phase.REVIEWING):
            return self._questions[self._state.question_index]
        return None

    @property
    def records(self) -> tuple[ResponseRecord, ...]:
        return self._log.records if self._log is not None else ()

    @property
    def result(self) -> PlayerMatchResult | None:
        """Final result once the match is terminal, else None."""
        return self._result

    def start(self, config: MatchConfig) -> None:
        """Begin the match. Only valid once, from Idle."""
        if self._state.phase is not Phase.IDLE:
            raise RuntimeError(
                f"Match for {self._player_id} already started "
                f"(phase={self._state.phase.value})"
            )
        self._config = config
        self._scoring = ScoringPolicy.from_config(config)
        self._log = ResponseLog(config.question_count, config.time_per_question_ms)
        self._timer = QuestionTimer(self._scheduler, tick_ms=config.tick_ms)
        self.dispatch(LoadQuestions())

    def answer(self, option: int) -> None:
        """Submit the player's choice for the current question.

        Ignored unless a question is in play; only the first answer counts.
        """
        if self._state.phase is Phase.PLAYING:
            question = self.current_question
            if not 0 <= option < len(question.options):
                raise ValueError(
                    f"Option {option} out of range for {len(question.options)} options"
                )
        self.dispatch(AnswerSubmitted(option))

    def exit(self) -> None:
        """Player leaves the match."""
        self.dispatch(UserExit())

    def close(self) -> None:
        """Host teardown: abandon a running match, then drop every pending callback."""
        if not self._state.phase.is_terminal:
            self.exit()
        self._cancel_timers()

    def dispatch(self, event: MatchEvent) -> None:
        phase = self._state.phase
        if isinstance(event, UserExit):
            handler_name = None if phase.is_terminal else "_abandon"
        else:
            handler_name = self._TRANSITIONS.get((phase, type(event)))

        if handler_name is None:
            logger.debug(
                "%s: ignoring %s in phase %s",
                self._player_id, type(event).__name__, phase.value,
            )
            return

        epoch = getattr(event, "epoch", None)
        if epoch is not None and epoch != self._epoch:
            logger.debug(
                "%s: dropping stale %s (epoch %d, current %d)",
                self._player_id, type(event).__name__, epoch, self._epoch,
            )
            return

        getattr(self, handler_name)(event)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _load(self, event: LoadQuestions) -> None:
        self._set_state(phase=Phase.LOADING)
        count = self._config.question_count
        try:
            questions = select_questions(self._content_source(count), count)
        except QuestionLoadError as e:
            self.dispatch(LoadFailed(reason=str(e)))
            return
        except Exception as exc:
            # Any content-source failure still ends the match in Error
            logger.error(
                "%s: content source failed", self._player_id, exc_info=True
            )
            self.dispatch(LoadFailed(reason=f"{type(exc).__name__}: {exc}"))
            return
        self.dispatch(QuestionsReady(questions=questions))

    def _fail(self, event: LoadFailed) -> None:
        logger.warning("%s: question load failed: %s", self._player_id, event.reason)
        self._epoch += 1
        self._result = self._build_result(PlayerStatus.ERROR)
        self._set_state(phase=Phase.ERROR, epoch=self._epoch)
        self._listener.on_error(event.reason)

    def _begin(self, event: QuestionsReady) -> None:
        self._questions = event.questions
        self._play(0)

    def _play(self, index: int) -> None:
        self._epoch += 1
        epoch = self._epoch
        duration = self._config.time_per_question_ms
        self._timer.start(
            duration,
            on_tick=lambda remaining: self.dispatch(TimerTick(epoch, remaining)),
            on_expire=lambda: self.dispatch(TimerExpired(epoch)),
        )
        self._set_state(
            phase=Phase.PLAYING,
            question_index=index,
            remaining_ms=duration,
            epoch=epoch,
            last_record=None,
        )

    def _tick(self, event: TimerTick) -> None:
        self._set_state(remaining_ms=event.remaining_ms)

    def _answer(self, event: AnswerSubmitted) -> None:
        remaining = self._timer.remaining_ms()
        if remaining <= 0:
            # Deadline already passed; the expiry happened first.
            self._resolve(None, 0)
        else:
            self._resolve(event.option, remaining)

    def _expire(self, event: TimerExpired) -> None:
        self._resolve(None, 0)

    def _resolve(self, option: int | None, remaining_ms: int) -> None:
        """Write the record for the current question and move to review."""
        self._timer.stop()
        index = self._state.question_index
        question = self._questions[index]
        duration = self._config.time_per_question_ms

        is_correct = option is not None and question.is_correct(option)
        record = ResponseRecord(
            question_id=question.id,
            question_index=index,
            selected_option=option,
            is_correct=is_correct,
            response_time_ms=duration - remaining_ms,
            points=self._scoring.points(is_correct, remaining_ms),
        )
        try:
            self._log.append(record)
        except DuplicateResponseError:
            logger.error(
                "%s: discarding duplicate response for question %s",
                self._player_id, question.id, exc_info=True,
            )

        self._epoch += 1
        epoch = self._epoch
        self._review_handle = self._scheduler.call_later(
            self._config.review_delay_ms,
            lambda: self.dispatch(ReviewElapsed(epoch)),
        )
        self._set_state(
            phase=Phase.REVIEWING,
            remaining_ms=remaining_ms,
            score=self._log.total_score,
            epoch=epoch,
            last_record=record,
        )

    def _advance(self, event: ReviewElapsed) -> None:
        self._review_handle = None
        next_index = self._state.question_index + 1
        if next_index < len(self._questions):
            self._play(next_index)
            return
        self._set_state(phase=Phase.CALCULATING, remaining_ms=0)
        self.dispatch(ResultsComputed(result=self._build_result(PlayerStatus.COMPLETED)))

    def _complete(self, event: ResultsComputed) -> None:
        self._result = event.result
        logger.info(
            "%s: match completed, score=%d correct=%d",
            self._player_id, event.result.total_score, event.result.correct_count,
        )
        self._set_state(phase=Phase.COMPLETED)
        self._listener.on_completed(event.result)

    def _abandon(self, event: UserExit) -> None:
        logger.info(
            "%s: abandoned during %s (question %s)",
            self._player_id, self._state.phase.value, self._state.question_index,
        )
        self._cancel_timers()
        self._epoch += 1
        self._result = self._build_result(PlayerStatus.ABANDONED)
        self._set_state(phase=Phase.ABANDONED, epoch=self._epoch)
        self._listener.on_abandoned()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, **changes) -> None:
        previous = self._state.phase
        self._state = replace(self._state, **changes)
        state = self._state
        if state.phase is not previous:
            logger.debug(
                "%s: %s -> %s (question %s)",
                self._player_id, previous.value, state.phase.value, state.question_index,
            )
        self._listener.on_phase_change(
            state.phase, state.question_index, state.remaining_ms, state.score
        )

    def _cancel_timers(self) -> None:
        if self._timer is not None:
            self._timer.stop()
        if self._review_handle is not None:
            self._review_handle.cancel()
            self._review_handle = None

    def _build_result(self, status: PlayerStatus) -> PlayerMatchResult:
        if self._log is None:
            return PlayerMatchResult(
                player_id=self._player_id,
                join_order=self._join_order,
                status=status,
                records=(),
                total_score=0,
                correct_count=0,
                avg_response_time_ms=0.0,
            )
        return PlayerMatchResult.from_log(
            self._player_id,
            self._join_order,
            status,
            self._log,
            self._config.time_per_question_ms,
        )
