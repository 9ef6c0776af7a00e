"""
Tests for synthetic webhook generation and scenario builders.
"""

import unittest

import pytest

from harness_errors import InvalidInputError
from synthetic import webhook_generator
from synthetic.models import WebhookScenario, WebhookPattern, MarketSession, PATTERN_SIGNALS
from synthetic.scenarios import generate_scenario_series, regime_sweep, multi_agent_scenarios
from synthetic.webhook_generator import WebhookGenerator, strategy_name
from validation.invariants import check_ohlc_invariants


def _scenario(**overrides):
    fields = dict(
        symbol="SPY", timeframe="5m", session=MarketSession.RTH_OPEN,
        pattern=WebhookPattern.ORB_BREAKOUT, price=450.0, volume=5_000_000,
        timestamp=1704205800000,
    )
    fields.update(overrides)
    return WebhookScenario(**fields)


class TestWebhookGenerator(unittest.TestCase):

    def setUp(self):
        self.generator = WebhookGenerator()

    def test_same_scenario_same_payload(self):
        first = self.generator.generate(_scenario())
        second = WebhookGenerator().generate(_scenario())
        self.assertEqual(first.payload, second.payload)

    def test_payload_fields(self):
        record = self.generator.generate(_scenario())
        payload = record.payload
        self.assertEqual(payload.symbol, "SPY")
        self.assertEqual(payload.timeframe, "5m")
        self.assertEqual(payload.timestamp, 1704205800000)
        self.assertEqual(payload.volume, 5_000_000)
        self.assertEqual(payload.signal, "ORB_BREAK")
        self.assertEqual(payload.strategy, "RTH-OPEN-ORB-BREAKOUT")
        self.assertEqual(payload.signal_id, "SPY-5m-1704205800000")
        self.assertTrue(record.synthetic)
        self.assertEqual(record.scenario, _scenario())

    def test_ohlc_envelope_for_every_pattern(self):
        for pattern in WebhookPattern:
            for price in (450.0, 380.13, 4500.0, 12.01):
                payload = self.generator.generate(_scenario(pattern=pattern, price=price)).payload
                self.assertLessEqual(payload.low, min(payload.open, payload.close))
                self.assertGreaterEqual(payload.high, max(payload.open, payload.close))
                self.assertGreater(payload.low, 0)

    def test_prices_rounded_to_cents(self):
        payload = self.generator.generate(_scenario(price=451.237)).payload
        for value in (payload.open, payload.high, payload.low, payload.close):
            self.assertEqual(value, round(value, 2))

    def test_signal_matches_pattern(self):
        for pattern, signal in PATTERN_SIGNALS.items():
            self.assertEqual(self.generator.generate(_scenario(pattern=pattern)).payload.signal, signal)

    def test_fakeout_reverses(self):
        for ts in range(1704205800000, 1704205800000 + 20 * 300_000, 300_000):
            payload = self.generator.generate(_scenario(pattern=WebhookPattern.ORB_FAKEOUT, timestamp=ts)).payload
            broke_up = payload.high > payload.open * 1.002
            broke_down = payload.low < payload.open * 0.998
            self.assertTrue(broke_up or broke_down)
            if payload.close < payload.open:
                self.assertGreater(payload.high, payload.open)
            else:
                self.assertLess(payload.low, payload.open)

    def test_compression_is_tighter_than_expansion(self):
        def width(pattern):
            payload = self.generator.generate(_scenario(pattern=pattern)).payload
            return (payload.high - payload.low) / payload.open

        self.assertLess(width(WebhookPattern.VOL_COMPRESSION), width(WebhookPattern.VOL_EXPANSION))

    def test_subsecond_timestamp_shares_seed(self):
        first = self.generator.generate(_scenario(timestamp=1704205800000)).payload
        second = self.generator.generate(_scenario(timestamp=1704205800999)).payload
        self.assertEqual((first.open, first.high, first.low, first.close),
                         (second.open, second.high, second.low, second.close))

    def test_frame_is_time_indexed(self):
        records = self.generator.generate_batch(generate_scenario_series(12))
        df = webhook_generator.to_frame(records)
        self.assertEqual(len(df), 12)
        self.assertEqual(str(df.index.tz), 'UTC')
        self.assertTrue(df.index.is_monotonic_increasing)
        check_ohlc_invariants(df)


class TestInvalidScenarios:

    def test_unknown_pattern(self, webhook_gen):
        with pytest.raises(InvalidInputError):
            webhook_gen.generate({
                'symbol': 'SPY', 'timeframe': '5m', 'session': 'RTH_OPEN',
                'pattern': 'HEAD_AND_SHOULDERS', 'price': 450.0, 'volume': 1000,
                'timestamp': 1704205800000,
            })

    def test_unknown_session(self):
        with pytest.raises(InvalidInputError):
            _scenario(session="OVERNIGHT")

    @pytest.mark.parametrize("overrides", [
        {'price': 0},
        {'price': -1.0},
        {'price': float('inf')},
        {'price': float('nan')},
        {'volume': -5},
        {'symbol': ''},
        {'timeframe': ''},
        {'variant': 'C'},
    ])
    def test_bad_fields(self, overrides):
        with pytest.raises(InvalidInputError):
            _scenario(**overrides)

    def test_strategy_name(self):
        scenario = _scenario(session=MarketSession.POWER_HOUR, pattern=WebhookPattern.VOL_EXPANSION)
        assert strategy_name(scenario) == "POWER-HOUR-VOL-EXPANSION"


class TestScenarioBuilders:

    def test_series_is_deterministic(self):
        assert generate_scenario_series(10, seed=7) == generate_scenario_series(10, seed=7)

    def test_series_timestamps_increase(self):
        series = generate_scenario_series(20, timeframe="15m")
        stamps = [scenario.timestamp for scenario in series]
        assert stamps == sorted(stamps)
        assert stamps[1] - stamps[0] == 15 * 60 * 1000

    def test_series_covers_all_patterns(self):
        series = generate_scenario_series(len(WebhookPattern))
        assert {scenario.pattern for scenario in series} == set(WebhookPattern)

    def test_routing_seeds_optional(self):
        assert all(s.routing_seed is None for s in generate_scenario_series(5))
        assert all(s.routing_seed is not None for s in generate_scenario_series(5, routing_seeds=True))

    def test_unsupported_timeframe(self):
        with pytest.raises(InvalidInputError):
            generate_scenario_series(3, timeframe="5x")

    def test_regime_sweep(self):
        sweep = regime_sweep("QQQ", 380.0)
        assert len(sweep) == 4
        assert all(regime.symbol == "QQQ" for regime in sweep)

    def test_multi_agent_scenarios_forced_to_b(self):
        scenarios = multi_agent_scenarios()
        assert set(scenarios) == {
            "orb_ttm_alignment", "strat_continuation", "satyland_confirmation", "agent_disagreement"
        }
        assert all(scenario.variant == "B" for scenario in scenarios.values())


if __name__ == '__main__':
    unittest.main()
