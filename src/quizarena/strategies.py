"""Scripted players for offline contest simulation and testing.

Each strategy matches the signature:
    (question: Question, context: dict) -> Decision

``context`` carries ``rng`` (an isolated random.Random), ``index`` (question
index), ``time_limit_ms`` and ``params`` (the player's config entries).

Strategies:
- sharp_strategy: answers correctly (with probability ``accuracy``) after ``delay_ms``.
- random_strategy: picks a random option at a random moment.
- slowpoke_strategy: answers correctly ``margin_ms`` before the deadline.
- idle_strategy: never answers; every question times out.
- quitter_strategy: plays like sharp until question ``exit_at``, then leaves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from quizarena.core.questions import Question
from quizarena.core.scheduler import Cancellable, Scheduler
from quizarena.match import MatchController, MatchListener, Phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """What a scripted player does for one question."""

    option: int | None = None  # None = no answer
    delay_ms: int = 0
    exit: bool = False


Strategy = Callable[[Question, dict[str, Any]], Decision]


def _wrong_option(question: Question, rng) -> int:
    choices = [i for i in range(len(question.options)) if i != question.correct_index]
    return rng.choice(choices)


def sharp_strategy(question: Question, context: dict[str, Any]) -> Decision:
    """Mostly right, fairly quick. ``delay_ms`` ± ``jitter_ms``."""
    rng = context["rng"]
    params = context["params"]
    delay = params.get("delay_ms", 1500)
    jitter = params.get("jitter_ms", 0)
    if jitter:
        delay += rng.randint(-jitter, jitter)
    if rng.random() < params.get("accuracy", 1.0):
        option = question.correct_index
    else:
        option = _wrong_option(question, rng)
    return Decision(option=option, delay_ms=max(0, delay))


def random_strategy(question: Question, context: dict[str, Any]) -> Decision:
    rng = context["rng"]
    return Decision(
        option=rng.randrange(len(question.options)),
        delay_ms=rng.randint(0, context["time_limit_ms"] - 1),
    )


def slowpoke_strategy(question: Question, context: dict[str, Any]) -> Decision:
    margin = context["params"].get("margin_ms", 800)
    return Decision(
        option=question.correct_index,
        delay_ms=max(0, context["time_limit_ms"] - margin),
    )


def idle_strategy(question: Question, context: dict[str, Any]) -> Decision:
    return Decision()


def quitter_strategy(question: Question, context: dict[str, Any]) -> Decision:
    params = context["params"]
    if context["index"] >= params.get("exit_at", 3):
        return Decision(exit=True, delay_ms=params.get("exit_delay_ms", 500))
    return sharp_strategy(question, context)


STRATEGY_REGISTRY: dict[str, Strategy] = {
    "sharp": sharp_strategy,
    "random": random_strategy,
    "slowpoke": slowpoke_strategy,
    "idle": idle_strategy,
    "quitter": quitter_strategy,
}


def get_strategy(name: str) -> Strategy:
    strategy = STRATEGY_REGISTRY.get(name)
    if strategy is None:
        raise ValueError(
            f"Unknown strategy: {name!r}. Available: {list(STRATEGY_REGISTRY)}"
        )
    return strategy


class SimulatedPlayer(MatchListener):
    """Drives a MatchController from a strategy, on the match's own scheduler.

    Each scheduled action remembers which question it was meant for and is
    dropped if that question is no longer in play.
    """

    def __init__(
        self,
        strategy: Strategy,
        scheduler: Scheduler,
        rng,
        params: dict[str, Any] | None = None,
    ) -> None:
        self._strategy = strategy
        self._scheduler = scheduler
        self._rng = rng
        self._params = params or {}
        self._controller: MatchController | None = None
        self._seen_index: int | None = None
        self._pending: Cancellable | None = None

    def bind(self, controller: MatchController) -> None:
        self._controller = controller

    def on_phase_change(self, phase, question_index, remaining_ms, score) -> None:
        if phase is not Phase.PLAYING or question_index == self._seen_index:
            return
        self._seen_index = question_index
        question = self._controller.current_question
        decision = self._strategy(
            question,
            {
                "rng": self._rng,
                "index": question_index,
                "time_limit_ms": remaining_ms,
                "params": self._params,
            },
        )
        if decision.exit:
            self._pending = self._scheduler.call_later(
                decision.delay_ms, self._leave, question_index
            )
        elif decision.option is not None:
            self._pending = self._scheduler.call_later(
                decision.delay_ms, self._act, question_index, decision.option
            )

    def on_completed(self, result) -> None:
        self._cancel()

    def on_abandoned(self) -> None:
        self._cancel()

    def on_error(self, reason) -> None:
        self._cancel()

    def _still_on(self, question_index: int) -> bool:
        snap = self._controller.snapshot
        return snap.phase is Phase.PLAYING and snap.question_index == question_index

    def _act(self, question_index: int, option: int) -> None:
        self._pending = None
        if self._still_on(question_index):
            self._controller.answer(option)

    def _leave(self, question_index: int) -> None:
        self._pending = None
        if self._still_on(question_index):
            self._controller.exit()

    def _cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
