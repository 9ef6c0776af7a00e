"""
Tests for the deterministic random source and seed derivation.
"""

import unittest

import numpy as np

from harness_errors import InvalidInputError
from synthetic.random_source import DeterministicRandom, derive_seed
from synthetic.models import GEXRegimeType


class TestDeterministicRandom(unittest.TestCase):
    """Sequences depend on the seed only."""

    def test_same_seed_same_sequence(self):
        first = DeterministicRandom(54321)
        second = DeterministicRandom(54321)
        self.assertEqual([first.next() for _ in range(20)], [second.next() for _ in range(20)])

    def test_different_seeds_differ(self):
        first = [DeterministicRandom(1).next() for _ in range(5)]
        second = [DeterministicRandom(2).next() for _ in range(5)]
        self.assertNotEqual(first, second)

    def test_values_in_unit_interval(self):
        rng = DeterministicRandom(7)
        for _ in range(1000):
            value = rng.next()
            self.assertGreaterEqual(value, 0.0)
            self.assertLess(value, 1.0)

    def test_uniform_bounds(self):
        rng = DeterministicRandom(11)
        for _ in range(500):
            value = rng.uniform(10_000_000, 20_000_000)
            self.assertGreaterEqual(value, 10_000_000)
            self.assertLess(value, 20_000_000)

    def test_randint_inclusive(self):
        rng = DeterministicRandom(3)
        values = {rng.randint(0, 2) for _ in range(300)}
        self.assertEqual(values, {0, 1, 2})

    def test_independent_of_global_numpy_state(self):
        np.random.seed(0)
        first = DeterministicRandom(99).next()
        np.random.seed(12345)
        np.random.random(10)
        second = DeterministicRandom(99).next()
        self.assertEqual(first, second)

    def test_invalid_seeds_rejected(self):
        for seed in (-1, 2 ** 32, 1.5, "42", True):
            with self.assertRaises(InvalidInputError):
                DeterministicRandom(seed)

    def test_reversed_randint_bounds(self):
        with self.assertRaises(InvalidInputError):
            DeterministicRandom(1).randint(5, 1)


class TestDeriveSeed(unittest.TestCase):
    """Seed derivation is a pure function of identity fields."""

    def test_stable_for_same_identity(self):
        self.assertEqual(
            derive_seed(54321, "POSITIVE", "SPY", 45000),
            derive_seed(54321, "POSITIVE", "SPY", 45000),
        )

    def test_sensitive_to_each_field(self):
        base = derive_seed(54321, "POSITIVE", "SPY", 45000)
        self.assertNotEqual(base, derive_seed(54322, "POSITIVE", "SPY", 45000))
        self.assertNotEqual(base, derive_seed(54321, "NEGATIVE", "SPY", 45000))
        self.assertNotEqual(base, derive_seed(54321, "POSITIVE", "QQQ", 45000))
        self.assertNotEqual(base, derive_seed(54321, "POSITIVE", "SPY", 45001))

    def test_enum_hashes_like_its_value(self):
        self.assertEqual(
            derive_seed(1, GEXRegimeType.NEUTRAL, "SPY"),
            derive_seed(1, "NEUTRAL", "SPY"),
        )

    def test_field_boundaries_matter(self):
        self.assertNotEqual(derive_seed(1, "AB", "C"), derive_seed(1, "A", "BC"))

    def test_seed_in_32_bit_range(self):
        for i in range(100):
            seed = derive_seed(i, "x", i)
            self.assertGreaterEqual(seed, 0)
            self.assertLess(seed, 2 ** 32)


if __name__ == '__main__':
    unittest.main()
