"""
GEX Generator

Regime-constrained synthetic gamma-exposure records. Every record satisfies:
- call_gex > 0 and put_gex < 0
- total_gex == call_gex + put_gex and net_gex == call_gex - put_gex
- the sign/magnitude and flip-level constraints of its regime

Values stay in the single/double-digit millions.
"""

import logging
import math
from typing import List, Sequence, Union, Dict, Any

import pandas as pd

from harness_errors import InvalidInputError
from synthetic.models import GEXRegime, GEXRegimeType, GEXData, SyntheticGEX, SyntheticMetadata
from synthetic.random_source import DeterministicRandom, derive_seed

logger = logging.getLogger(__name__)

DEFAULT_GEX_SEED = 54321
FLIP_NEAR_MAX_DISTANCE = 0.01  # fraction of spot


def _cents(value: float) -> int:
    return int(math.floor(value * 100))


class GEXGenerator:
    """
    Deterministic GEX record generator.

    Two calls with an identical GEXRegime return identical data; only
    metadata.generated_at differs.

    Args:
        base_seed: Generator-level seed mixed into every derived record seed
    """

    def __init__(self, base_seed: int = DEFAULT_GEX_SEED):
        self.base_seed = base_seed

    def _rng_for(self, regime: GEXRegime) -> DeterministicRandom:
        identity = [regime.type, regime.symbol, _cents(regime.spot_price)]
        if regime.gamma_flip_level is not None:
            identity.append(_cents(regime.gamma_flip_level))
        return DeterministicRandom(derive_seed(self.base_seed, *identity))

    def generate(self, regime: Union[GEXRegime, Dict[str, Any]]) -> SyntheticGEX:
        """
        Generate one GEX record for a regime.

        Args:
            regime: GEXRegime (or a dict with its fields)

        Returns:
            Immutable SyntheticGEX

        Raises:
            InvalidInputError: Unknown regime, bad spot price, or a supplied
                flip level that contradicts the regime
        """
        if isinstance(regime, dict):
            regime = GEXRegime(**regime)
        if not isinstance(regime, GEXRegime):
            raise InvalidInputError(f"Expected GEXRegime, got {type(regime).__name__}")

        self._check_supplied_flip(regime)
        rng = self._rng_for(regime)
        spot = regime.spot_price
        supplied_flip = regime.gamma_flip_level

        if regime.type is GEXRegimeType.POSITIVE:
            call_gex = rng.uniform(10_000_000, 20_000_000)
            put_gex = -rng.uniform(2_000_000, 8_000_000)
            flip = spot * rng.uniform(0.92, 0.97)
        elif regime.type is GEXRegimeType.NEGATIVE:
            call_gex = rng.uniform(2_000_000, 8_000_000)
            put_gex = -rng.uniform(10_000_000, 20_000_000)
            flip = spot * rng.uniform(1.03, 1.08)
        elif regime.type is GEXRegimeType.GAMMA_FLIP_NEAR:
            flip = spot * rng.uniform(0.996, 1.004)
            call_gex = rng.uniform(3_000_000, 10_000_000)
            put_gex = -rng.uniform(3_000_000, 10_000_000)
        elif regime.type is GEXRegimeType.NEUTRAL:
            magnitude = rng.uniform(3_000_000, 8_000_000)
            delta = rng.uniform(-500, 500)
            call_gex = magnitude + delta / 2
            put_gex = -(magnitude - delta / 2)
            flip = spot * rng.uniform(0.98, 1.02)
        else:
            raise InvalidInputError(f"Unknown GEX regime: {regime.type}")

        if supplied_flip is not None:
            flip = supplied_flip

        data = GEXData(
            total_gex=call_gex + put_gex,
            call_gex=call_gex,
            put_gex=put_gex,
            net_gex=call_gex - put_gex,
            gamma_flip_level=flip,
        )

        logger.debug(
            f"Generated {regime.type.value} GEX for {regime.symbol}: "
            f"total={data.total_gex:,.0f} flip={data.gamma_flip_level:.2f}"
        )

        return SyntheticGEX(
            symbol=regime.symbol,
            regime=regime.type,
            data=data,
            metadata=SyntheticMetadata(provenance=regime),
        )

    def generate_batch(self, regimes: Sequence[Union[GEXRegime, Dict[str, Any]]]) -> List[SyntheticGEX]:
        """Generate one record per regime, preserving order."""
        return [self.generate(regime) for regime in regimes]

    @staticmethod
    def _check_supplied_flip(regime: GEXRegime) -> None:
        flip = regime.gamma_flip_level
        if flip is None:
            return

        spot = regime.spot_price
        if not flip > 0:
            raise InvalidInputError(f"Gamma flip level must be positive, got {flip}")

        if regime.type is GEXRegimeType.POSITIVE and not flip < spot:
            raise InvalidInputError(
                f"POSITIVE regime requires flip level below spot ({flip} >= {spot})"
            )
        if regime.type is GEXRegimeType.NEGATIVE and not flip > spot:
            raise InvalidInputError(
                f"NEGATIVE regime requires flip level above spot ({flip} <= {spot})"
            )
        if regime.type is GEXRegimeType.GAMMA_FLIP_NEAR:
            distance = abs(flip - spot) / spot
            if distance > FLIP_NEAR_MAX_DISTANCE:
                raise InvalidInputError(
                    f"GAMMA_FLIP_NEAR requires flip within {FLIP_NEAR_MAX_DISTANCE:.0%} of spot, "
                    f"got {distance:.4%}"
                )


def to_frame(records: Sequence[SyntheticGEX]) -> pd.DataFrame:
    """
    Flatten GEX records into a DataFrame.

    Columns: symbol, regime, spot_price, total_gex, call_gex, put_gex,
    net_gex, gamma_flip_level
    """
    rows = []
    for record in records:
        row = {
            'symbol': record.symbol,
            'regime': record.regime.value,
            'spot_price': record.metadata.provenance.spot_price,
        }
        row.update(record.data.to_dict())
        rows.append(row)

    columns = [
        'symbol', 'regime', 'spot_price', 'total_gex', 'call_gex',
        'put_gex', 'net_gex', 'gamma_flip_level'
    ]
    return pd.DataFrame(rows, columns=columns)
