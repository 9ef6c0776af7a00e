"""
Webhook Generator

Deterministic synthetic signal webhooks with pattern-shaped OHLC candles.
Every candle satisfies low <= min(open, close) and high >= max(open, close).
"""

import logging
import math
from typing import List, Sequence, Union, Dict, Any, Tuple

import pandas as pd

from harness_errors import InvalidInputError
from synthetic.models import (
    WebhookScenario, WebhookPattern, WebhookPayload, SyntheticWebhook,
    SyntheticMetadata, PATTERN_SIGNALS
)
from synthetic.random_source import DeterministicRandom, derive_seed

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_SEED = 12345

Candle = Tuple[float, float, float, float]


def _orb_breakout(rng: DeterministicRandom, open_price: float) -> Candle:
    bullish = rng.next() > 0.5
    move = rng.uniform(0.005, 0.015)
    if bullish:
        close = open_price * (1 + move)
        high = close * (1 + rng.uniform(0.001, 0.003))
        low = open_price * (1 - rng.uniform(0.001, 0.002))
    else:
        close = open_price * (1 - move)
        low = close * (1 - rng.uniform(0.001, 0.003))
        high = open_price * (1 + rng.uniform(0.001, 0.002))
    return open_price, high, low, close


def _orb_fakeout(rng: DeterministicRandom, open_price: float) -> Candle:
    # Breaks one way, closes the other
    fake_up = rng.next() > 0.5
    fake_move = rng.uniform(0.003, 0.008)
    reversal = rng.uniform(0.002, 0.006)
    if fake_up:
        high = open_price * (1 + fake_move)
        close = open_price * (1 - reversal)
        low = close * (1 - rng.uniform(0.001, 0.002))
    else:
        low = open_price * (1 - fake_move)
        close = open_price * (1 + reversal)
        high = close * (1 + rng.uniform(0.001, 0.002))
    return open_price, high, low, close


def _trend_continuation(rng: DeterministicRandom, open_price: float) -> Candle:
    bullish = rng.next() > 0.5
    move = rng.uniform(0.003, 0.008)
    if bullish:
        close = open_price * (1 + move)
        high = close * (1 + rng.uniform(0.0005, 0.001))
        low = open_price * (1 - rng.uniform(0.0005, 0.001))
    else:
        close = open_price * (1 - move)
        low = close * (1 - rng.uniform(0.0005, 0.001))
        high = open_price * (1 + rng.uniform(0.0005, 0.001))
    return open_price, high, low, close


def _ranged(rng: DeterministicRandom, open_price: float,
            range_low: float, range_high: float, close_share: float) -> Candle:
    candle_range = rng.uniform(range_low, range_high)
    close_range = candle_range * close_share
    close = open_price * (1 + rng.uniform(-close_range, close_range))
    high = open_price * (1 + candle_range)
    low = open_price * (1 - candle_range)
    return open_price, high, low, close


def _chop(rng: DeterministicRandom, open_price: float) -> Candle:
    return _ranged(rng, open_price, 0.001, 0.003, 1.0)


def _vol_compression(rng: DeterministicRandom, open_price: float) -> Candle:
    return _ranged(rng, open_price, 0.0005, 0.0015, 0.5)


def _vol_expansion(rng: DeterministicRandom, open_price: float) -> Candle:
    return _ranged(rng, open_price, 0.01, 0.025, 0.7)


PATTERN_BUILDERS = {
    WebhookPattern.ORB_BREAKOUT: _orb_breakout,
    WebhookPattern.ORB_FAKEOUT: _orb_fakeout,
    WebhookPattern.TREND_CONTINUATION: _trend_continuation,
    WebhookPattern.CHOP: _chop,
    WebhookPattern.VOL_COMPRESSION: _vol_compression,
    WebhookPattern.VOL_EXPANSION: _vol_expansion,
}


def strategy_name(scenario: WebhookScenario) -> str:
    """Strategy label, e.g. 'RTH-OPEN-ORB-BREAKOUT'."""
    session = scenario.session.value.replace('_', '-')
    pattern = scenario.pattern.value.replace('_', '-')
    return f"{session}-{pattern}"


class WebhookGenerator:
    """
    Deterministic webhook generator.

    Args:
        base_seed: Generator-level seed mixed into every derived record seed
    """

    def __init__(self, base_seed: int = DEFAULT_WEBHOOK_SEED):
        self.base_seed = base_seed

    def _rng_for(self, scenario: WebhookScenario) -> DeterministicRandom:
        seed = derive_seed(
            self.base_seed,
            scenario.symbol,
            scenario.timeframe,
            scenario.session,
            scenario.pattern,
            math.floor(scenario.price),
            math.floor(scenario.volume),
            scenario.timestamp // 1000,
        )
        return DeterministicRandom(seed)

    def generate(self, scenario: Union[WebhookScenario, Dict[str, Any]]) -> SyntheticWebhook:
        """
        Generate one webhook for a scenario.

        Raises:
            InvalidInputError: Unknown pattern/session or invalid numeric fields
        """
        if isinstance(scenario, dict):
            scenario = WebhookScenario(**scenario)
        if not isinstance(scenario, WebhookScenario):
            raise InvalidInputError(f"Expected WebhookScenario, got {type(scenario).__name__}")

        builder = PATTERN_BUILDERS.get(scenario.pattern)
        if builder is None:
            raise InvalidInputError(f"No candle builder for pattern: {scenario.pattern}")

        rng = self._rng_for(scenario)
        open_price, high, low, close = builder(rng, scenario.price)

        open_price = round(open_price, 2)
        close = round(close, 2)
        # Rounding must not break the OHLC envelope
        high = max(round(high, 2), open_price, close)
        low = min(round(low, 2), open_price, close)

        payload = WebhookPayload(
            symbol=scenario.symbol,
            timeframe=scenario.timeframe,
            timestamp=scenario.timestamp,
            open=open_price,
            high=high,
            low=low,
            close=close,
            volume=int(scenario.volume),
            session=scenario.session.value,
            pattern=scenario.pattern.value,
            signal=PATTERN_SIGNALS[scenario.pattern],
            strategy=strategy_name(scenario),
        )

        logger.debug(
            f"Generated {scenario.pattern.value} webhook {payload.signal_id}: "
            f"O={open_price} H={high} L={low} C={close}"
        )

        return SyntheticWebhook(payload=payload, metadata=SyntheticMetadata(provenance=scenario))

    def generate_batch(self, scenarios: Sequence[Union[WebhookScenario, Dict[str, Any]]]) -> List[SyntheticWebhook]:
        """Generate one webhook per scenario, preserving order."""
        return [self.generate(scenario) for scenario in scenarios]


def to_frame(records: Sequence[SyntheticWebhook]) -> pd.DataFrame:
    """
    Flatten webhook records into an OHLCV DataFrame indexed by UTC timestamp.

    Columns: symbol, timeframe, open, high, low, close, volume, pattern, signal
    """
    columns = ['symbol', 'timeframe', 'open', 'high', 'low', 'close', 'volume', 'pattern', 'signal']
    rows = [{column: getattr(record.payload, column) for column in columns} for record in records]
    df = pd.DataFrame(rows, columns=columns)
    df.index = pd.to_datetime([record.payload.timestamp for record in records], unit='ms', utc=True)
    df.index.name = 'timestamp'
    return df
