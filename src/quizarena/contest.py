"""ContestSession — runs every participant of one pool instance.

Each participant gets an independent MatchController on the shared
scheduler. Once every participant has reached a terminal phase the session
settles: RankingEngine orders the completed players, PrizeAllocator maps
ranks to the pool's reward table, and the audit log is written. Nothing is
ranked or paid while any match is still running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Callable

from quizarena.config import ContestConfig, MatchConfig, PlayerConfig
from quizarena.core.questions import FileQuestionSource
from quizarena.core.scheduler import ManualScheduler, Scheduler
from quizarena.core.seed import SeedManager
from quizarena.core.telemetry import ResponseEntry, TelemetryLogger
from quizarena.match import ContentSource, MatchController, MatchListener
from quizarena.prizes import ContestPool, PrizeAllocator
from quizarena.ranking import RankingEngine
from quizarena.results import PlayerMatchResult
from quizarena.strategies import SimulatedPlayer, get_strategy

logger = logging.getLogger(__name__)


class ContestNotSettledError(RuntimeError):
    """Ranking was requested while some participant is still playing."""


@dataclass
class ContestResult:
    """Final standings of one pool instance."""

    contest_id: str
    pool: ContestPool
    standings: list[PlayerMatchResult]  # ranked players first, then unranked
    telemetry_path: Path | None = None

    @property
    def total_paid(self) -> Decimal:
        return sum((r.prize_amount for r in self.standings), Decimal("0"))

    def for_player(self, player_id: str) -> PlayerMatchResult:
        for r in self.standings:
            if r.player_id == player_id:
                return r
        raise KeyError(player_id)


class _SeatListener(MatchListener):
    """Forwards a match's callbacks to the host listener and the session."""

    def __init__(self, session: ContestSession, inner: MatchListener | None) -> None:
        self._session = session
        self._inner = inner or MatchListener()

    def on_phase_change(self, phase, question_index, remaining_ms, score) -> None:
        self._inner.on_phase_change(phase, question_index, remaining_ms, score)

    def on_completed(self, result) -> None:
        self._inner.on_completed(result)
        self._session._on_terminal()

    def on_abandoned(self) -> None:
        self._inner.on_abandoned()
        self._session._on_terminal()

    def on_error(self, reason) -> None:
        self._inner.on_error(reason)
        self._session._on_terminal()


class ContestSession:
    """One contest pool instance: join players, start, settle."""

    def __init__(
        self,
        contest_id: str,
        config: MatchConfig,
        pool: ContestPool,
        content_source: ContentSource,
        scheduler: Scheduler,
        telemetry_dir: Path | None = None,
        on_settled: Callable[[ContestResult], None] | None = None,
    ) -> None:
        self.contest_id = contest_id
        self.config = config
        self.pool = pool
        self._content_source = content_source
        self._scheduler = scheduler
        self._telemetry_dir = telemetry_dir
        self._on_settled = on_settled
        self._controllers: list[MatchController] = []
        self._started = False
        self._result: ContestResult | None = None
        self._ranking = RankingEngine()
        self._allocator = PrizeAllocator(pool)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def controllers(self) -> list[MatchController]:
        return list(self._controllers)

    @property
    def all_terminal(self) -> bool:
        return bool(self._controllers) and all(
            c.phase.is_terminal for c in self._controllers
        )

    @property
    def result(self) -> ContestResult | None:
        return self._result

    def join(self, player_id: str, listener: MatchListener | None = None) -> MatchController:
        """Seat a player. Join order is the final tie-break, so it is recorded here."""
        if self._started:
            raise RuntimeError(f"Contest {self.contest_id} already started")
        if any(c.player_id == player_id for c in self._controllers):
            raise ValueError(f"Player {player_id!r} already joined")
        if len(self._controllers) >= self.pool.player_count:
            raise RuntimeError(
                f"Contest {self.contest_id} is full ({self.pool.player_count} players)"
            )
        controller = MatchController(
            player_id,
            self._content_source,
            self._scheduler,
            listener=_SeatListener(self, listener),
            join_order=len(self._controllers),
        )
        self._controllers.append(controller)
        return controller

    def start(self) -> None:
        if self._started:
            raise RuntimeError(f"Contest {self.contest_id} already started")
        if not self._controllers:
            raise RuntimeError(f"Contest {self.contest_id} has no players")
        self._started = True
        logger.info(
            "Contest %s: starting %d matches (pool %s)",
            self.contest_id, len(self._controllers), self.pool.pool_id,
        )
        for controller in self._controllers:
            # Players who left the lobby before the start stay abandoned
            if not controller.phase.is_terminal:
                controller.start(self.config)
        self._on_terminal()

    def close(self) -> None:
        """Host teardown: abandon unfinished matches and cancel their timers."""
        for controller in self._controllers:
            controller.close()

    def settle(self) -> ContestResult:
        """Rank and allocate prizes. Only valid once every match is terminal."""
        if self._result is not None:
            return self._result
        unfinished = [
            c.player_id for c in self._controllers if not c.phase.is_terminal
        ]
        if unfinished or not self._controllers:
            raise ContestNotSettledError(
                f"Contest {self.contest_id}: still playing: {unfinished}"
            )

        results = [c.result for c in self._controllers]
        ranked = self._ranking.rank(results)
        standings = self._allocator.allocate(ranked)

        telemetry_path = None
        if self._telemetry_dir is not None:
            telemetry_path = self._write_telemetry(standings)

        self._result = ContestResult(
            contest_id=self.contest_id,
            pool=self.pool,
            standings=standings,
            telemetry_path=telemetry_path,
        )
        logger.info(
            "Contest %s settled: %d ranked, %s paid of %s",
            self.contest_id,
            sum(1 for r in standings if r.rank is not None),
            self._result.total_paid,
            self.pool.net_prize_pool,
        )
        if self._on_settled is not None:
            self._on_settled(self._result)
        return self._result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_terminal(self) -> None:
        if self._started and self.all_terminal and self._result is None:
            self.settle()

    def _write_telemetry(self, standings: list[PlayerMatchResult]) -> Path:
        telemetry = TelemetryLogger(self._telemetry_dir, self.contest_id)
        time_limit = self.config.time_per_question_ms
        for result in sorted(standings, key=lambda r: r.join_order):
            for record in result.records:
                telemetry.log_response(
                    ResponseEntry.from_record(result.player_id, record, time_limit)
                )
        telemetry.finalize_contest(
            standings=[r.to_dict() for r in standings],
            pool={
                "pool_id": self.pool.pool_id,
                "entry_fee": str(self.pool.entry_fee),
                "player_count": self.pool.player_count,
                "net_prize_pool": str(self.pool.net_prize_pool),
                "rewards": [str(r) for r in self.pool.rewards],
                "winner_count": self.pool.winner_count,
            },
            extra={
                "match_config": {
                    "question_count": self.config.question_count,
                    "time_per_question_ms": self.config.time_per_question_ms,
                    "review_delay_ms": self.config.review_delay_ms,
                    "base_points": self.config.base_points,
                    "bonus_per_second": self.config.bonus_per_second,
                },
                "total_paid": str(sum((r.prize_amount for r in standings), Decimal("0"))),
            },
        )
        return telemetry.file_path


class ContestRunner:
    """Runs a whole contest offline from a ContestConfig.

    Every player is a scripted SimulatedPlayer, and everything runs on a
    virtual-clock scheduler, so identical configs produce identical results.
    """

    def __init__(self, config: ContestConfig, telemetry_dir: Path | None = None) -> None:
        self.config = config
        self.seed_mgr = SeedManager(config.seed)
        self.telemetry_dir = telemetry_dir or self._resolve_telemetry_dir()
        self.scheduler = ManualScheduler()

    def run(self) -> ContestResult:
        session = ContestSession(
            contest_id=self.config.name,
            config=self.config.match,
            pool=self.config.pool,
            content_source=FileQuestionSource(self.config.questions_path),
            scheduler=self.scheduler,
            telemetry_dir=self.telemetry_dir,
        )
        for player_id, pcfg in self.config.players.items():
            bot = self._build_player(player_id, pcfg)
            bot.bind(session.join(player_id, listener=bot))

        session.start()
        self.scheduler.run_until_idle()
        return session.settle()

    def _resolve_telemetry_dir(self) -> Path:
        if self.config.output_dir:
            return Path(self.config.output_dir) / "telemetry"
        return Path("output") / "telemetry"

    def _build_player(self, player_id: str, pcfg: PlayerConfig) -> SimulatedPlayer:
        strategy = get_strategy(pcfg.strategy)
        seed = self.seed_mgr.get_player_seed(self.config.name, player_id)
        return SimulatedPlayer(
            strategy,
            self.scheduler,
            self.seed_mgr.get_rng(seed),
            params=pcfg.params,
        )
