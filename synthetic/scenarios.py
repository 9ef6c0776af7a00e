"""
Scenario Builders

Deterministic scenario sequences for driving the harness: webhook scenario
series across patterns and sessions, GEX regime sweeps, and named
multi-agent scenarios.

All builders use DeterministicRandom so a given seed always yields the
same sequence.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from harness_errors import InvalidInputError
from synthetic.models import (
    GEXRegime, GEXRegimeType, WebhookScenario, WebhookPattern, MarketSession, InteractionType
)
from synthetic.random_source import DeterministicRandom

DEFAULT_START = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)
DEFAULT_SYMBOLS = ("SPY", "QQQ", "SPX")
BASE_PRICES = {"SPY": 450.0, "QQQ": 380.0, "SPX": 4500.0}


def _parse_timeframe(timeframe: str) -> int:
    """
    Parse timeframe string to minutes.

    Args:
        timeframe: String like "1m", "15m", "1h"

    Returns:
        Number of minutes
    """
    timeframe = timeframe.lower()

    try:
        if timeframe.endswith('m'):
            return int(timeframe[:-1])
        elif timeframe.endswith('h'):
            return int(timeframe[:-1]) * 60
        elif timeframe.endswith('d'):
            return int(timeframe[:-1]) * 1440
    except ValueError:
        pass
    raise InvalidInputError(f"Unsupported timeframe: {timeframe!r}")


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def generate_scenario_series(
    count: int = 10,
    symbols: Sequence[str] = DEFAULT_SYMBOLS,
    timeframe: str = "5m",
    start: datetime = DEFAULT_START,
    seed: int = 42,
    routing_seeds: bool = False,
) -> List[WebhookScenario]:
    """
    Generate a series of webhook scenarios cycling through patterns and sessions.

    Args:
        count: Number of scenarios
        symbols: Symbols to rotate through
        timeframe: Candle timeframe, also the spacing between timestamps
        start: Timestamp of the first scenario
        seed: Seed for price/volume jitter
        routing_seeds: Attach a routing_seed to each scenario

    Returns:
        List of WebhookScenario with strictly increasing timestamps
    """
    if count < 0:
        raise InvalidInputError(f"count must be non-negative, got {count}")
    if not symbols:
        raise InvalidInputError("At least one symbol is required")

    rng = DeterministicRandom(seed)
    step = timedelta(minutes=_parse_timeframe(timeframe))
    patterns = list(WebhookPattern)
    sessions = list(MarketSession)

    scenarios = []
    for i in range(count):
        symbol = symbols[i % len(symbols)]
        base = BASE_PRICES.get(symbol, 100.0)
        scenarios.append(WebhookScenario(
            symbol=symbol,
            timeframe=timeframe,
            session=sessions[(i // len(patterns)) % len(sessions)],
            pattern=patterns[i % len(patterns)],
            price=round(base * rng.uniform(0.98, 1.02), 2),
            volume=rng.randint(1_000_000, 10_000_000),
            timestamp=_to_ms(start + step * i),
            routing_seed=rng.randint(0, 10_000) if routing_seeds else None,
        ))
    return scenarios


def regime_sweep(symbol: str = "SPY", spot_price: float = 450.0) -> List[GEXRegime]:
    """One GEXRegime per regime type for a symbol."""
    return [GEXRegime(type=regime, symbol=symbol, spot_price=spot_price) for regime in GEXRegimeType]


def multi_agent_scenarios(timestamp: Optional[int] = None) -> Dict[str, WebhookScenario]:
    """
    Named scenarios exercising Engine B agent interactions.

    All are forced to variant B.
    """
    ts = timestamp if timestamp is not None else _to_ms(DEFAULT_START)
    return {
        "orb_ttm_alignment": WebhookScenario(
            symbol="SPY", timeframe="5m", session=MarketSession.RTH_OPEN,
            pattern=WebhookPattern.ORB_BREAKOUT, price=450.0, volume=5_000_000,
            timestamp=ts, variant="B", interaction_type=InteractionType.ORB_TTM_ALIGNMENT,
        ),
        "strat_continuation": WebhookScenario(
            symbol="QQQ", timeframe="15m", session=MarketSession.MID_DAY,
            pattern=WebhookPattern.TREND_CONTINUATION, price=380.0, volume=3_000_000,
            timestamp=ts + 60_000, variant="B",
        ),
        "satyland_confirmation": WebhookScenario(
            symbol="SPX", timeframe="5m", session=MarketSession.POWER_HOUR,
            pattern=WebhookPattern.VOL_EXPANSION, price=4500.0, volume=8_000_000,
            timestamp=ts + 120_000, variant="B", interaction_type=InteractionType.SATYLAND_CONFIRMATION,
        ),
        "agent_disagreement": WebhookScenario(
            symbol="SPY", timeframe="1m", session=MarketSession.MID_DAY,
            pattern=WebhookPattern.CHOP, price=451.0, volume=2_000_000,
            timestamp=ts + 180_000, variant="B", interaction_type=InteractionType.AGENT_DISAGREEMENT,
        ),
    }
