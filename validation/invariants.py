"""
Invariant Checks for Synthetic Data and Snapshots

Reusable invariant check functions over generator output frames and
captured snapshots. All functions raise AssertionError with descriptive
messages when an invariant is violated.
"""

import pandas as pd
import numpy as np

from orchestration.snapshot import SystemSnapshot

FLIP_NEAR_MAX_DISTANCE = 0.01
NEUTRAL_MAX_IMBALANCE = 0.01


def check_gex_invariants(gex_df: pd.DataFrame, epsilon: float = 0.01) -> None:
    """
    Validate arithmetic invariants of GEX records.

    Checks:
    1. call_gex > 0 and put_gex < 0
    2. |call_gex + put_gex - total_gex| < epsilon
    3. |call_gex - put_gex - net_gex| < epsilon

    Args:
        gex_df: Frame from gex_generator.to_frame()
        epsilon: Tolerance for floating-point comparisons

    Raises:
        AssertionError: When any GEX invariant is violated
    """
    if gex_df.empty:
        raise AssertionError("Cannot check GEX invariants on empty frame")

    bad_call = gex_df[gex_df['call_gex'] <= 0]
    if not bad_call.empty:
        row = bad_call.iloc[0]
        raise AssertionError(
            f"GEX invariant violated: call_gex must be positive!\n"
            f"  Row: {bad_call.index[0]} ({row['symbol']} {row['regime']})\n"
            f"  call_gex: {row['call_gex']:,.2f}"
        )

    bad_put = gex_df[gex_df['put_gex'] >= 0]
    if not bad_put.empty:
        row = bad_put.iloc[0]
        raise AssertionError(
            f"GEX invariant violated: put_gex must be negative!\n"
            f"  Row: {bad_put.index[0]} ({row['symbol']} {row['regime']})\n"
            f"  put_gex: {row['put_gex']:,.2f}"
        )

    total_diff = (gex_df['call_gex'] + gex_df['put_gex'] - gex_df['total_gex']).abs()
    if (total_diff >= epsilon).any():
        idx = total_diff.idxmax()
        raise AssertionError(
            f"GEX invariant violated: total_gex != call_gex + put_gex at row {idx}!\n"
            f"  call_gex: {gex_df.loc[idx, 'call_gex']:,.4f}\n"
            f"  put_gex: {gex_df.loc[idx, 'put_gex']:,.4f}\n"
            f"  total_gex: {gex_df.loc[idx, 'total_gex']:,.4f}\n"
            f"  Difference: {total_diff[idx]:.6f} (epsilon={epsilon})"
        )

    net_diff = (gex_df['call_gex'] - gex_df['put_gex'] - gex_df['net_gex']).abs()
    if (net_diff >= epsilon).any():
        idx = net_diff.idxmax()
        raise AssertionError(
            f"GEX invariant violated: net_gex != call_gex - put_gex at row {idx}!\n"
            f"  net_gex: {gex_df.loc[idx, 'net_gex']:,.4f}\n"
            f"  Difference: {net_diff[idx]:.6f} (epsilon={epsilon})"
        )


def check_regime_invariants(gex_df: pd.DataFrame) -> None:
    """
    Validate regime-specific constraints.

    Checks:
    1. POSITIVE: total_gex > 0 and flip below spot
    2. NEGATIVE: total_gex < 0 and flip above spot
    3. GAMMA_FLIP_NEAR: |flip - spot| / spot <= 1%
    4. NEUTRAL: |total_gex| small relative to mean(|call_gex|, |put_gex|)

    Raises:
        AssertionError: When any regime constraint is violated
    """
    if gex_df.empty:
        raise AssertionError("Cannot check regime invariants on empty frame")

    for idx, row in gex_df.iterrows():
        regime = row['regime']
        spot = row['spot_price']
        flip = row['gamma_flip_level']
        total = row['total_gex']

        if regime == 'POSITIVE':
            if not (total > 0 and flip < spot):
                raise AssertionError(
                    f"POSITIVE regime violated at row {idx}!\n"
                    f"  total_gex: {total:,.2f} (must be > 0)\n"
                    f"  flip: {flip:.2f}, spot: {spot:.2f} (flip must be below spot)"
                )
        elif regime == 'NEGATIVE':
            if not (total < 0 and flip > spot):
                raise AssertionError(
                    f"NEGATIVE regime violated at row {idx}!\n"
                    f"  total_gex: {total:,.2f} (must be < 0)\n"
                    f"  flip: {flip:.2f}, spot: {spot:.2f} (flip must be above spot)"
                )
        elif regime == 'GAMMA_FLIP_NEAR':
            distance = abs(flip - spot) / spot
            if distance > FLIP_NEAR_MAX_DISTANCE:
                raise AssertionError(
                    f"GAMMA_FLIP_NEAR regime violated at row {idx}!\n"
                    f"  flip: {flip:.2f}, spot: {spot:.2f}\n"
                    f"  Distance: {distance:.4%} (max {FLIP_NEAR_MAX_DISTANCE:.0%})"
                )
        elif regime == 'NEUTRAL':
            scale = (abs(row['call_gex']) + abs(row['put_gex'])) / 2
            if scale <= 0 or abs(total) / scale > NEUTRAL_MAX_IMBALANCE:
                raise AssertionError(
                    f"NEUTRAL regime violated at row {idx}!\n"
                    f"  total_gex: {total:,.2f}\n"
                    f"  Mean |call|,|put|: {scale:,.2f} (max imbalance {NEUTRAL_MAX_IMBALANCE:.0%})"
                )
        else:
            raise AssertionError(f"Unknown regime '{regime}' at row {idx}")


def check_ohlc_invariants(ohlc_df: pd.DataFrame) -> None:
    """
    Validate candle envelopes: low <= min(open, close) and high >= max(open, close).

    Raises:
        AssertionError: When any candle is malformed
    """
    if ohlc_df.empty:
        raise AssertionError("Cannot check OHLC invariants on empty frame")

    body_low = np.minimum(ohlc_df['open'], ohlc_df['close'])
    body_high = np.maximum(ohlc_df['open'], ohlc_df['close'])

    bad_low = ohlc_df[ohlc_df['low'] > body_low]
    if not bad_low.empty:
        row = bad_low.iloc[0]
        raise AssertionError(
            f"OHLC invariant violated: low above candle body at {bad_low.index[0]}!\n"
            f"  open: {row['open']:.2f} close: {row['close']:.2f} low: {row['low']:.2f}"
        )

    bad_high = ohlc_df[ohlc_df['high'] < body_high]
    if not bad_high.empty:
        row = bad_high.iloc[0]
        raise AssertionError(
            f"OHLC invariant violated: high below candle body at {bad_high.index[0]}!\n"
            f"  open: {row['open']:.2f} close: {row['close']:.2f} high: {row['high']:.2f}"
        )

    if (ohlc_df[['open', 'high', 'low', 'close']] <= 0).any().any():
        raise AssertionError("OHLC invariant violated: non-positive price found")


def check_snapshot_invariants(snapshot: SystemSnapshot) -> None:
    """
    Validate structural invariants of a captured snapshot.

    Checks:
    1. Counters are non-negative
    2. Shadow executions never called the broker
    3. Every engine decision has a routing decision for its signal
    4. External call counts are non-negative

    Raises:
        AssertionError: When any snapshot invariant is violated
    """
    if snapshot.webhook_processing_count < 0 or snapshot.enrichment_call_count < 0:
        raise AssertionError(
            f"Snapshot counters must be non-negative!\n"
            f"  processing: {snapshot.webhook_processing_count}\n"
            f"  enrichment: {snapshot.enrichment_call_count}"
        )

    broker = [e.signal_id for e in snapshot.shadow_executions if e.broker_api_called]
    if broker:
        raise AssertionError(
            f"Shadow executions called the broker!\n"
            f"  Signals: {', '.join(broker)}"
        )

    routed = {d.signal_id for d in snapshot.routing_decisions}
    unrouted = [
        d.signal_id for d in snapshot.engine_a_decisions + snapshot.engine_b_decisions
        if d.signal_id not in routed
    ]
    if unrouted:
        raise AssertionError(
            f"Decisions without a routing decision!\n"
            f"  Signals: {', '.join(unrouted)}"
        )

    negative = {k: v for k, v in snapshot.external_api_calls.items() if v < 0}
    if negative:
        raise AssertionError(f"Negative external call counts: {negative}")
