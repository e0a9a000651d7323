"""Tests for contest config loading."""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from quizarena.config import MatchConfig, PlayerConfig, load_config

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "contest.yaml.example"


def _write(tmp_path, raw):
    path = tmp_path / "contest.yaml"
    path.write_text(yaml.safe_dump(raw, sort_keys=False))
    return path


def _minimal(**overrides):
    raw = {
        "contest": {"name": "mini", "seed": 1, "questions": "qs.json"},
        "pool": {"entry_fee": 5, "player_count": 4, "split": [60, 40]},
        "players": {
            "a": {"strategy": "sharp", "delay_ms": 900},
            "b": {"strategy": "idle"},
        },
    }
    raw.update(overrides)
    return raw


class TestMatchConfig:
    def test_defaults(self):
        mc = MatchConfig()
        assert mc.question_count == 10
        assert mc.time_per_question_ms == 10000
        assert mc.review_delay_ms == 2000
        assert mc.tick_ms == 100

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"question_count": 0},
            {"time_per_question_ms": 0},
            {"review_delay_ms": -1},
            {"base_points": -5},
            {"tick_ms": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            MatchConfig(**kwargs)


class TestLoadConfig:
    def test_example_config_loads(self):
        config = load_config(EXAMPLE_CONFIG)
        assert config.name == "test-run"
        assert config.seed == 42
        assert config.pool.pool_id == "S4"
        assert config.pool.rewards[0] == Decimal("450")
        assert config.match.question_count == 10
        assert config.questions_path.exists()
        assert config.output_dir is None

    def test_players_keep_file_order(self):
        config = load_config(EXAMPLE_CONFIG)
        assert list(config.players) == [
            "ada", "grace", "linus", "margaret", "ken", "dennis",
        ]
        assert config.players["ada"] == PlayerConfig(
            name="ada", strategy="sharp", params={"delay_ms": 1800, "jitter_ms": 400}
        )
        assert config.players["dennis"].params == {}

    def test_inline_pool(self, tmp_path):
        config = load_config(_write(tmp_path, _minimal()))
        assert config.pool.pool_id == "mini"
        assert config.pool.net_prize_pool == Decimal("18.00")
        assert config.questions_path == tmp_path.resolve() / "qs.json"
        assert config.match == MatchConfig()

    def test_unknown_pool_in_catalog(self, tmp_path):
        (tmp_path / "pools.yaml").write_text(
            yaml.safe_dump({"pools": {"S1": {
                "entry_fee": 10, "player_count": 10,
                "net_prize_pool": 90, "rewards": [45, 27, 18],
            }}})
        )
        raw = _minimal(pools_file="pools.yaml")
        del raw["pool"]
        raw["contest"]["pool"] = "XX"
        with pytest.raises(ValueError, match="Unknown pool"):
            load_config(_write(tmp_path, raw))

    def test_pool_required(self, tmp_path):
        raw = _minimal()
        del raw["pool"]
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, raw))

    def test_more_players_than_seats(self, tmp_path):
        raw = _minimal(pool={"entry_fee": 5, "player_count": 2, "split": [100]})
        raw["players"]["c"] = {"strategy": "idle"}
        with pytest.raises(ValueError, match="seats"):
            load_config(_write(tmp_path, raw))

    def test_output_dir(self, tmp_path):
        config = load_config(_write(tmp_path, _minimal(output_dir="runs")))
        assert config.output_dir == Path("runs")
