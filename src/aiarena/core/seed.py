"""SeedManager — deterministic, HMAC-derived seeds per match repetition.

Seeds are derived via HMAC-SHA256 so adding/removing specs or repetitions
never shifts seeds for other matches.
"""

import hashlib
import hmac
import random


class SeedManager:
    """Produces deterministic, isolated seeds and Random instances."""

    def __init__(self, batch_seed: int):
        self._batch_seed = batch_seed

    def get_match_seed(self, game: str, spec_index: int, repetition: int, salt: str = "") -> int:
        """Derive a seed via HMAC. Same inputs always produce the same seed."""
        key = self._batch_seed.to_bytes(8, byteorder="big", signed=True)
        msg = f"{game}:{spec_index}:{repetition}:{salt}".encode("utf-8")
        digest = hmac.new(key, msg, hashlib.sha256).digest()
        # 63 bits keeps the seed valid for providers that want a signed int64
        return int.from_bytes(digest[:8], byteorder="big") >> 1

    def get_rng(self, match_seed: int) -> random.Random:
        """Return an isolated Random instance. Never touches global state."""
        return random.Random(match_seed)
