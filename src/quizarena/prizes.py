"""ContestPool definitions and PrizeAllocator.

A pool's reward table is fixed when the pool is defined. Well-formedness
(including "rewards never exceed the net prize pool") is checked when a
ContestPool is constructed, so every pool that exists in the system already
satisfies it; PrizeAllocator itself is a plain table lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Sequence

import yaml

from quizarena.core.schemas import bundled_schema, schema_errors
from quizarena.results import PlayerMatchResult

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_DEFAULT_PLATFORM_FEE_PERCENT = Decimal("10")


class InvalidPoolError(ValueError):
    """Pool definition is not well formed."""


def _money(value) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidPoolError(f"Not a monetary amount: {value!r}") from e


@dataclass(frozen=True)
class ContestPool:
    """An externally defined contest pool. Read-only input to prize allocation."""

    pool_id: str
    entry_fee: Decimal
    player_count: int
    net_prize_pool: Decimal
    rewards: tuple[Decimal, ...]
    winner_count: int | None = None
    name: str = ""
    platform_fee: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(self, "entry_fee", _money(self.entry_fee))
        object.__setattr__(self, "net_prize_pool", _money(self.net_prize_pool))
        object.__setattr__(self, "platform_fee", _money(self.platform_fee))
        object.__setattr__(self, "rewards", tuple(_money(r) for r in self.rewards))
        if self.winner_count is None:
            object.__setattr__(self, "winner_count", len(self.rewards))
        self._validate()

    @property
    def total_pool(self) -> Decimal:
        return self.entry_fee * self.player_count

    def _validate(self) -> None:
        pid = self.pool_id
        if self.entry_fee < 0:
            raise InvalidPoolError(f"Pool {pid}: negative entry fee")
        if self.player_count < 2:
            raise InvalidPoolError(f"Pool {pid}: needs at least 2 players")
        if self.net_prize_pool < 0:
            raise InvalidPoolError(f"Pool {pid}: negative net prize pool")
        if self.net_prize_pool > self.total_pool:
            raise InvalidPoolError(
                f"Pool {pid}: net prize pool {self.net_prize_pool} exceeds "
                f"collected entry fees {self.total_pool}"
            )
        if not 1 <= self.winner_count <= len(self.rewards):
            raise InvalidPoolError(
                f"Pool {pid}: winner count {self.winner_count} does not fit "
                f"a reward table of {len(self.rewards)}"
            )
        if self.winner_count > self.player_count:
            raise InvalidPoolError(
                f"Pool {pid}: {self.winner_count} winners but only "
                f"{self.player_count} players"
            )
        paid = self.rewards[: self.winner_count]
        if any(r < 0 for r in paid):
            raise InvalidPoolError(f"Pool {pid}: negative reward")
        if any(a < b for a, b in zip(paid, paid[1:])):
            raise InvalidPoolError(f"Pool {pid}: rewards must not increase with rank")
        if sum(paid, Decimal("0")) > self.net_prize_pool:
            raise InvalidPoolError(
                f"Pool {pid}: rewards {sum(paid)} exceed net prize pool "
                f"{self.net_prize_pool}"
            )

    @classmethod
    def from_split(
        cls,
        pool_id: str,
        entry_fee,
        player_count: int,
        split: Sequence,
        platform_fee_percent=_DEFAULT_PLATFORM_FEE_PERCENT,
        name: str = "",
        winner_count: int | None = None,
    ) -> ContestPool:
        """Derive a pool from a percentage split of the net prize pool.

        Each reward is rounded down to the cent, so the table can never
        pay out more than the net pool. Without an explicit ``winner_count``
        only the positive shares are paid.
        """
        shares = [_money(s) for s in split]
        if sum(shares, Decimal("0")) > 100:
            raise InvalidPoolError(f"Pool {pool_id}: split adds up to more than 100%")
        entry_fee = _money(entry_fee)
        total = entry_fee * player_count
        platform_fee = (total * _money(platform_fee_percent) / 100).quantize(
            _CENT, rounding=ROUND_HALF_UP
        )
        net = total - platform_fee
        rewards = tuple(
            (net * share / 100).quantize(_CENT, rounding=ROUND_DOWN)
            for share in shares
        )
        return cls(
            pool_id=pool_id,
            entry_fee=entry_fee,
            player_count=player_count,
            net_prize_pool=net,
            rewards=rewards,
            winner_count=winner_count or sum(1 for r in rewards if r > 0) or None,
            name=name,
            platform_fee=platform_fee,
        )


def pool_from_dict(pool_id: str, raw: dict) -> ContestPool:
    """Build a pool from a config mapping (explicit rewards or a split)."""
    errors = schema_errors(raw, bundled_schema("pool"))
    if errors:
        raise InvalidPoolError(f"Pool {pool_id}: " + "; ".join(errors))

    pool_id = raw.get("id", pool_id)
    if "split" in raw:
        return ContestPool.from_split(
            pool_id=pool_id,
            entry_fee=raw["entry_fee"],
            player_count=raw["player_count"],
            split=raw["split"],
            platform_fee_percent=raw.get(
                "platform_fee_percent", _DEFAULT_PLATFORM_FEE_PERCENT
            ),
            name=raw.get("name", ""),
            winner_count=raw.get("winner_count"),
        )
    return ContestPool(
        pool_id=pool_id,
        entry_fee=raw["entry_fee"],
        player_count=raw["player_count"],
        net_prize_pool=raw["net_prize_pool"],
        rewards=tuple(raw["rewards"]),
        winner_count=raw.get("winner_count"),
        name=raw.get("name", ""),
        platform_fee=raw.get("platform_fee", 0),
    )


def load_pools(path: Path) -> dict[str, ContestPool]:
    """Load a YAML pool catalog: ``pools: {<id>: {...}, ...}``."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    pools = {}
    for pool_id, p in raw.get("pools", {}).items():
        pools[str(pool_id)] = pool_from_dict(str(pool_id), p)
    logger.debug("Loaded %d pools from %s", len(pools), path)
    return pools


class PrizeAllocator:
    """Maps a final rank to the pool's reward for that rank."""

    def __init__(self, pool: ContestPool) -> None:
        self._pool = pool

    @property
    def pool(self) -> ContestPool:
        return self._pool

    def prize_for(self, rank: int | None) -> Decimal:
        """Reward for ``rank``; zero for unranked players and ranks past the winners."""
        if rank is None or rank < 1 or rank > self._pool.winner_count:
            return Decimal("0")
        return self._pool.rewards[rank - 1]

    def allocate(
        self, ranked: Sequence[PlayerMatchResult]
    ) -> list[PlayerMatchResult]:
        """Return copies of ``ranked`` with ``prize_amount`` filled in."""
        return [replace(r, prize_amount=self.prize_for(r.rank)) for r in ranked]
