"""
Deterministic Random Source

Seeded, reproducible pseudorandom sequences for synthetic data generation.
Each DeterministicRandom owns its own numpy Generator; nothing here touches
the global numpy random state, wall-clock time or OS entropy.
"""

import hashlib
from typing import Any

import numpy as np

from harness_errors import InvalidInputError

SEED_SPACE = 2 ** 32


class DeterministicRandom:
    """
    Reproducible pseudorandom source.

    Given the same 32-bit seed, the sequence returned by next() is identical
    across runs and processes.

    Args:
        seed: Integer seed in [0, 2**32)
    """

    def __init__(self, seed: int):
        if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
            raise InvalidInputError(f"Seed must be an integer, got {type(seed).__name__}")
        if not 0 <= int(seed) < SEED_SPACE:
            raise InvalidInputError(f"Seed must be in [0, 2**32), got {seed}")

        self.seed = int(seed)
        self._rng = np.random.Generator(np.random.PCG64(self.seed))

    def next(self) -> float:
        """Next value in [0, 1)."""
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        """Value in [low, high)."""
        return low + (high - low) * self.next()

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high], both ends inclusive."""
        if high < low:
            raise InvalidInputError(f"randint bounds reversed: low={low}, high={high}")
        return int(self._rng.integers(low, high, endpoint=True))

    def __repr__(self) -> str:
        return f"DeterministicRandom(seed={self.seed})"


def _canonical(value: Any) -> str:
    if value is None:
        return "~"
    if hasattr(value, "value"):  # Enum members hash by their value
        value = value.value
    if isinstance(value, float):
        return repr(value)
    return str(value)


def derive_seed(base_seed: int, *identity: Any) -> int:
    """
    Derive a 32-bit seed from a base seed and a record's logical identity.

    The result depends only on the arguments, so two calls with the same
    identity fields always yield the same seed.

    Args:
        base_seed: Generator-level base seed
        *identity: Fields the caller treats as the record's identity

    Returns:
        Seed in [0, 2**32)
    """
    digest = hashlib.sha256()
    digest.update(str(int(base_seed)).encode("utf-8"))
    for field_value in identity:
        digest.update(b"\x1f")
        digest.update(_canonical(field_value).encode("utf-8"))

    return int.from_bytes(digest.digest()[:4], "big")
