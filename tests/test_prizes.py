"""Tests for ContestPool definitions and PrizeAllocator."""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from quizarena.prizes import (
    ContestPool,
    InvalidPoolError,
    PrizeAllocator,
    load_pools,
    pool_from_dict,
)
from quizarena.results import PlayerMatchResult, PlayerStatus

EXAMPLE_POOLS = Path(__file__).resolve().parent.parent / "pools.yaml.example"


def _result(player_id, rank, status=PlayerStatus.COMPLETED):
    return PlayerMatchResult(
        player_id=player_id,
        join_order=0,
        status=status,
        records=(),
        total_score=0,
        correct_count=0,
        avg_response_time_ms=0.0,
        rank=rank,
    )


@pytest.fixture
def premium_pool():
    return ContestPool.from_split("S4", 100, 10, [50, 30, 20], platform_fee_percent=10)


class TestFromSplit:
    def test_fifty_thirty_twenty_after_fee(self, premium_pool):
        assert premium_pool.total_pool == Decimal("1000")
        assert premium_pool.platform_fee == Decimal("100")
        assert premium_pool.net_prize_pool == Decimal("900")
        assert premium_pool.rewards == (
            Decimal("450"), Decimal("270"), Decimal("180"),
        )
        assert premium_pool.winner_count == 3

    def test_rewards_round_down_to_the_cent(self):
        pool = ContestPool.from_split("tiny", "0.33", 3, [50, 50], platform_fee_percent=0)
        assert pool.net_prize_pool == Decimal("0.99")
        assert pool.rewards == (Decimal("0.49"), Decimal("0.49"))
        assert sum(pool.rewards) <= pool.net_prize_pool

    def test_split_over_hundred_rejected(self):
        with pytest.raises(InvalidPoolError):
            ContestPool.from_split("x", 10, 10, [60, 50])

    def test_zero_shares_are_not_winners(self):
        pool = ContestPool.from_split("x", 10, 10, [70, 30, 0])
        assert pool.winner_count == 2


class TestPoolValidation:
    def test_valid_explicit_pool(self):
        pool = ContestPool("S1", 10, 10, 90, (45, 27, 18))
        assert pool.rewards == (Decimal("45"), Decimal("27"), Decimal("18"))
        assert pool.winner_count == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"rewards": (45, 50, 18)},  # increasing
            {"rewards": (45, 27, 19)},  # exceeds net
            {"net_prize_pool": 101},  # exceeds collected fees
            {"player_count": 1},
            {"entry_fee": -1},
            {"rewards": (45, 27, 18), "winner_count": 4},
            {"rewards": (45, 27, -1)},
        ],
    )
    def test_malformed_pools_rejected(self, kwargs):
        base = dict(
            pool_id="bad", entry_fee=10, player_count=10,
            net_prize_pool=90, rewards=(45, 27, 18),
        )
        base.update(kwargs)
        with pytest.raises(InvalidPoolError):
            ContestPool(**base)

    def test_more_winners_than_players(self):
        with pytest.raises(InvalidPoolError):
            ContestPool("duel", 10, 2, 18, (6, 6, 6))

    def test_not_a_number(self):
        with pytest.raises(InvalidPoolError):
            ContestPool("bad", "ten", 10, 90, (45,))


class TestPoolCatalog:
    def test_load_example_catalog(self):
        pools = load_pools(EXAMPLE_POOLS)
        assert set(pools) == {"S1", "S4", "L2", "D1"}
        assert pools["S1"].name == "Starter Quiz"
        assert pools["L2"].rewards[0] == Decimal("562.5")
        assert pools["D1"].rewards == (Decimal("18.00"),)
        assert pools["S4"].rewards == (Decimal("450"), Decimal("270"), Decimal("180"))

    def test_explicit_winner_count(self, tmp_path):
        path = tmp_path / "pools.yaml"
        path.write_text(yaml.safe_dump({"pools": {
            "top2": {
                "entry_fee": 10, "player_count": 10, "net_prize_pool": 90,
                "rewards": [50, 30, 10], "winner_count": 2,
            },
            "split2": {
                "entry_fee": 10, "player_count": 10,
                "split": [50, 30, 20], "winner_count": 2,
            },
        }}))
        pools = load_pools(path)
        assert pools["top2"].winner_count == 2
        assert PrizeAllocator(pools["top2"]).prize_for(3) == Decimal("0")
        assert pools["split2"].winner_count == 2
        assert PrizeAllocator(pools["split2"]).prize_for(2) == Decimal("27")
        assert PrizeAllocator(pools["split2"]).prize_for(3) == Decimal("0")

    def test_winner_count_must_be_positive(self):
        raw = {"entry_fee": 10, "player_count": 10, "split": [100], "winner_count": 0}
        with pytest.raises(InvalidPoolError):
            pool_from_dict("x", raw)

    def test_rewards_and_split_together_rejected(self):
        raw = {
            "entry_fee": 10, "player_count": 10,
            "net_prize_pool": 90, "rewards": [45], "split": [50],
        }
        with pytest.raises(InvalidPoolError):
            pool_from_dict("x", raw)

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidPoolError):
            pool_from_dict("x", {"entry_fee": 1, "player_count": 2, "split": [100], "bonus": 1})

    def test_empty_catalog(self, tmp_path):
        path = tmp_path / "pools.yaml"
        path.write_text(yaml.safe_dump({}))
        assert load_pools(path) == {}


class TestPrizeAllocator:
    def test_prize_for_rank(self, premium_pool):
        allocator = PrizeAllocator(premium_pool)
        assert allocator.prize_for(1) == Decimal("450")
        assert allocator.prize_for(2) == Decimal("270")
        assert allocator.prize_for(3) == Decimal("180")
        assert allocator.prize_for(4) == Decimal("0")
        assert allocator.prize_for(None) == Decimal("0")
        assert allocator.prize_for(0) == Decimal("0")

    def test_allocate_returns_updated_copies(self, premium_pool):
        ranked = [_result(f"p{i}", i) for i in range(1, 6)]
        ranked.append(_result("gone", None, PlayerStatus.ABANDONED))
        paid = PrizeAllocator(premium_pool).allocate(ranked)
        assert [r.prize_amount for r in paid] == [
            Decimal("450"), Decimal("270"), Decimal("180"),
            Decimal("0"), Decimal("0"), Decimal("0"),
        ]
        assert ranked[0].prize_amount == Decimal("0")

    def test_total_never_exceeds_net_pool(self, premium_pool):
        ranked = [_result(f"p{i}", i) for i in range(1, 11)]
        paid = PrizeAllocator(premium_pool).allocate(ranked)
        assert sum(r.prize_amount for r in paid) <= premium_pool.net_prize_pool
