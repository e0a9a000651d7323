"""Per-player random streams for simulated contests.

Every scripted player draws from its own ``random.Random``. Its seed is a
keyed hash of (contest id, player id) under the contest seed, so a player's
choices depend only on those three values: seating, removing or renaming
another player leaves them unchanged.
"""

import hashlib
import hmac
import random


class SeedManager:
    def __init__(self, contest_seed: int):
        self._key = contest_seed.to_bytes(8, byteorder="big", signed=True)

    def get_player_seed(self, contest_id: str, player_id: str) -> int:
        """First 8 bytes of HMAC-SHA256(contest seed, "contest:player")."""
        message = f"{contest_id}:{player_id}".encode("utf-8")
        return int.from_bytes(
            hmac.new(self._key, message, hashlib.sha256).digest()[:8], "big"
        )

    def get_rng(self, player_seed: int) -> random.Random:
        # A private instance; the module-level generator is never reseeded
        return random.Random(player_seed)
