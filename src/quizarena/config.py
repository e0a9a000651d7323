"""Contest configuration loader."""

import yaml
from dataclasses import dataclass, field
from pathlib import Path

from quizarena.prizes import ContestPool, load_pools, pool_from_dict


@dataclass(frozen=True)
class MatchConfig:
    """Per-match timing and scoring constants. Immutable for the match's lifetime."""

    question_count: int = 10
    time_per_question_ms: int = 10000
    review_delay_ms: int = 2000
    base_points: int = 100
    bonus_per_second: int = 10
    tick_ms: int = 100

    def __post_init__(self) -> None:
        if self.question_count < 1:
            raise ValueError(f"question_count must be >= 1, got {self.question_count}")
        if self.time_per_question_ms <= 0:
            raise ValueError(
                f"time_per_question_ms must be > 0, got {self.time_per_question_ms}"
            )
        if self.review_delay_ms < 0:
            raise ValueError(f"review_delay_ms must be >= 0, got {self.review_delay_ms}")
        if self.base_points < 0 or self.bonus_per_second < 0:
            raise ValueError("scoring constants must be >= 0")
        if self.tick_ms <= 0:
            raise ValueError(f"tick_ms must be > 0, got {self.tick_ms}")


@dataclass
class PlayerConfig:
    name: str
    strategy: str  # see quizarena.strategies
    params: dict = field(default_factory=dict)


@dataclass
class ContestConfig:
    name: str
    seed: int
    questions_path: Path
    match: MatchConfig
    pool: ContestPool
    players: dict[str, PlayerConfig] = field(default_factory=dict)
    output_dir: Path | None = None


def load_config(path: Path) -> ContestConfig:
    """Load a contest config from YAML file.

    Relative paths (questions file, pool catalog) resolve against the
    directory holding the config file.
    """
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)

    base_dir = path.resolve().parent
    c = raw["contest"]
    m = raw.get("match", {})

    match = MatchConfig(
        question_count=m.get("question_count", 10),
        time_per_question_ms=m.get("time_per_question_ms", 10000),
        review_delay_ms=m.get("review_delay_ms", 2000),
        base_points=m.get("base_points", 100),
        bonus_per_second=m.get("bonus_per_second", 10),
        tick_ms=m.get("tick_ms", 100),
    )

    # Inline pool definition wins over a catalog reference
    if "pool" in raw:
        pool = pool_from_dict(c.get("pool", c["name"]), raw["pool"])
    elif "pools_file" in raw:
        catalog = load_pools(base_dir / raw["pools_file"])
        pool_id = c.get("pool")
        if pool_id not in catalog:
            raise ValueError(
                f"Unknown pool: {pool_id!r}. Available: {list(catalog)}"
            )
        pool = catalog[pool_id]
    else:
        raise ValueError("Config needs either a 'pool' or a 'pools_file' section")

    players = {}
    for name, p in raw.get("players", {}).items():
        params = {k: v for k, v in p.items() if k != "strategy"}
        players[name] = PlayerConfig(name=name, strategy=p["strategy"], params=params)

    if len(players) > pool.player_count:
        raise ValueError(
            f"{len(players)} players configured but pool {pool.pool_id} "
            f"seats {pool.player_count}"
        )

    output_dir = raw.get("output_dir")
    return ContestConfig(
        name=c["name"],
        seed=c["seed"],
        questions_path=base_dir / c["questions"],
        match=match,
        pool=pool,
        players=players,
        output_dir=Path(output_dir) if output_dir else None,
    )
