"""
Synthetic Data Generation

Deterministic, regime-constrained test data for the A/B harness.

Components:
- random_source: Seeded pseudorandom source and identity-based seed derivation
- models: Generator inputs and immutable synthetic records
- gex_generator: Gamma-exposure records per regime
- webhook_generator: Signal webhooks with pattern-shaped OHLC candles
- scenarios: Deterministic scenario series, regime sweeps and named scenarios
"""

from .random_source import DeterministicRandom, derive_seed
from .models import (
    GEXRegimeType,
    WebhookPattern,
    MarketSession,
    InteractionType,
    GEXRegime,
    WebhookScenario,
    SyntheticGEX,
    SyntheticWebhook,
)
from .gex_generator import GEXGenerator
from .webhook_generator import WebhookGenerator
from .scenarios import generate_scenario_series, regime_sweep, multi_agent_scenarios

__all__ = [
    'DeterministicRandom',
    'derive_seed',
    'GEXRegimeType',
    'WebhookPattern',
    'MarketSession',
    'InteractionType',
    'GEXRegime',
    'WebhookScenario',
    'SyntheticGEX',
    'SyntheticWebhook',
    'GEXGenerator',
    'WebhookGenerator',
    'generate_scenario_series',
    'regime_sweep',
    'multi_agent_scenarios',
]
