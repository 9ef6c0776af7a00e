"""
Tests for regime-constrained GEX generation.
"""

import unittest

import pytest

from harness_errors import InvalidInputError
from synthetic import gex_generator
from synthetic.gex_generator import GEXGenerator, FLIP_NEAR_MAX_DISTANCE
from synthetic.models import GEXRegime, GEXRegimeType, SyntheticGEX
from validation.invariants import check_gex_invariants, check_regime_invariants


SPOTS = (("SPY", 450.0), ("QQQ", 380.0), ("SPX", 4500.0), ("IWM", 201.37))


def _all_regimes():
    return [
        GEXRegime(type=regime, symbol=symbol, spot_price=spot)
        for regime in GEXRegimeType
        for symbol, spot in SPOTS
    ]


class TestGEXGenerator(unittest.TestCase):

    def setUp(self):
        self.generator = GEXGenerator()

    def test_positive_spy_reference_case(self):
        regime = GEXRegime(type=GEXRegimeType.POSITIVE, symbol="SPY", spot_price=450.0)
        record = GEXGenerator(54321).generate(regime)

        self.assertGreater(record.data.total_gex, 2_000_000)
        self.assertLess(record.data.total_gex, 18_000_000)
        self.assertGreaterEqual(record.data.gamma_flip_level, 414.0)
        self.assertLess(record.data.gamma_flip_level, 436.5)

        again = GEXGenerator(54321).generate(regime)
        self.assertEqual(record.data, again.data)

    def test_regeneration_differs_only_in_generated_at(self):
        regime = GEXRegime(type=GEXRegimeType.NEGATIVE, symbol="QQQ", spot_price=380.0)
        first = self.generator.generate(regime)
        second = self.generator.generate(regime)

        self.assertEqual(first.data, second.data)
        self.assertEqual(first.symbol, second.symbol)
        self.assertEqual(first.metadata.provenance, second.metadata.provenance)

    def test_record_is_marked_synthetic(self):
        record = self.generator.generate(GEXRegime(type="NEUTRAL", symbol="SPY", spot_price=450.0))
        self.assertIsInstance(record, SyntheticGEX)
        self.assertTrue(record.synthetic)
        self.assertIs(record.metadata.synthetic, True)
        self.assertEqual(record.metadata.provenance.type, GEXRegimeType.NEUTRAL)

    def test_arithmetic_holds_for_every_regime(self):
        for record in self.generator.generate_batch(_all_regimes()):
            data = record.data
            self.assertGreater(data.call_gex, 0)
            self.assertLess(data.put_gex, 0)
            self.assertAlmostEqual(data.total_gex, data.call_gex + data.put_gex, delta=0.01)
            self.assertAlmostEqual(data.net_gex, data.call_gex - data.put_gex, delta=0.01)
            self.assertGreater(data.gamma_flip_level, 0)

    def test_regime_constraints(self):
        for record in self.generator.generate_batch(_all_regimes()):
            data = record.data
            spot = record.metadata.provenance.spot_price
            if record.regime is GEXRegimeType.POSITIVE:
                self.assertGreater(data.total_gex, 0)
                self.assertLess(data.gamma_flip_level, spot)
            elif record.regime is GEXRegimeType.NEGATIVE:
                self.assertLess(data.total_gex, 0)
                self.assertGreater(data.gamma_flip_level, spot)
            elif record.regime is GEXRegimeType.GAMMA_FLIP_NEAR:
                self.assertLessEqual(abs(data.gamma_flip_level - spot) / spot, FLIP_NEAR_MAX_DISTANCE)
            else:
                imbalance = abs(data.call_gex + data.put_gex) / (abs(data.call_gex) + abs(data.put_gex))
                self.assertLessEqual(imbalance, 0.01)

    def test_frame_passes_invariant_checks(self):
        df = gex_generator.to_frame(self.generator.generate_batch(_all_regimes()))
        self.assertEqual(len(df), len(GEXRegimeType) * len(SPOTS))
        check_gex_invariants(df)
        check_regime_invariants(df)

    def test_base_seed_changes_values(self):
        regime = GEXRegime(type=GEXRegimeType.POSITIVE, symbol="SPY", spot_price=450.0)
        self.assertNotEqual(
            GEXGenerator(1).generate(regime).data,
            GEXGenerator(2).generate(regime).data,
        )

    def test_accepts_dict_input(self):
        record = self.generator.generate({'type': 'POSITIVE', 'symbol': 'SPY', 'spot_price': 450.0})
        self.assertEqual(record.regime, GEXRegimeType.POSITIVE)

    def test_batch_preserves_order(self):
        regimes = list(reversed(_all_regimes()))
        records = self.generator.generate_batch(regimes)
        self.assertEqual([r.metadata.provenance for r in records], regimes)


class TestSuppliedFlipLevel:
    """A caller-supplied flip level is used verbatim when it fits the regime."""

    def test_supplied_flip_used(self, gex_gen):
        record = gex_gen.generate(GEXRegime(
            type=GEXRegimeType.POSITIVE, symbol="SPY", spot_price=450.0, gamma_flip_level=430.0
        ))
        assert record.data.gamma_flip_level == 430.0

    @pytest.mark.parametrize("regime_type, flip", [
        (GEXRegimeType.POSITIVE, 460.0),
        (GEXRegimeType.NEGATIVE, 440.0),
        (GEXRegimeType.GAMMA_FLIP_NEAR, 470.0),
        (GEXRegimeType.NEUTRAL, -1.0),
    ])
    def test_contradicting_flip_rejected(self, gex_gen, regime_type, flip):
        with pytest.raises(InvalidInputError):
            gex_gen.generate(GEXRegime(
                type=regime_type, symbol="SPY", spot_price=450.0, gamma_flip_level=flip
            ))


class TestInvalidRegimes:

    def test_unknown_regime_type(self, gex_gen):
        with pytest.raises(InvalidInputError):
            gex_gen.generate({'type': 'SIDEWAYS', 'symbol': 'SPY', 'spot_price': 450.0})

    @pytest.mark.parametrize("spot", [0, -10.0, None])
    def test_non_positive_spot(self, spot):
        with pytest.raises(InvalidInputError):
            GEXRegime(type=GEXRegimeType.POSITIVE, symbol="SPY", spot_price=spot)

    @pytest.mark.parametrize("spot", [float("inf"), float("nan"), "450"])
    def test_non_finite_spot(self, spot):
        with pytest.raises(InvalidInputError):
            GEXRegime(type=GEXRegimeType.POSITIVE, symbol="SPY", spot_price=spot)

    @pytest.mark.parametrize("flip", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_flip_level(self, flip):
        with pytest.raises(InvalidInputError):
            GEXRegime(type=GEXRegimeType.NEGATIVE, symbol="SPY", spot_price=450.0, gamma_flip_level=flip)

    def test_empty_symbol(self):
        with pytest.raises(InvalidInputError):
            GEXRegime(type=GEXRegimeType.POSITIVE, symbol="  ", spot_price=450.0)

    def test_wrong_input_type(self, gex_gen):
        with pytest.raises(InvalidInputError):
            gex_gen.generate(["POSITIVE", "SPY", 450.0])


if __name__ == '__main__':
    unittest.main()
