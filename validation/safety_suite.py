"""
Safety Suite - Harness Self-Check

Runs the harness against its own reference system and checks the
properties every test run depends on: generator invariants, rejection of
non-synthetic data, exact environment restore, outbound call blocking, and
replay determinism.

Usage:
    python -m validation.safety_suite
"""

import asyncio
import logging
import sys
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd

from . import invariants
from .determinism import validate_determinism
from .expectations import IngestionExpectation
from .validators import validate_webhook_ingestion

from harness_errors import SafetyViolation
from orchestration.context import TestConfig
from orchestration.interceptors import NetworkInterceptor, BlockedRequestError
from orchestration.orchestrator import TestOrchestrator
from orchestration.settings import HarnessSettings
from orchestration.snapshot import ENRICHMENT_SERVICE
from synthetic import gex_generator, webhook_generator
from synthetic.gex_generator import GEXGenerator
from synthetic.models import GEXRegime, GEXRegimeType
from synthetic.scenarios import generate_scenario_series, regime_sweep
from synthetic.webhook_generator import WebhookGenerator

logger = logging.getLogger(__name__)


async def _run_and_replay(
    orchestrator: TestOrchestrator,
    config: TestConfig,
    num_signals: int,
    seed: int,
) -> Tuple[Any, Any]:
    gex = GEXGenerator(orchestrator.settings.gex_seed)
    webhooks = WebhookGenerator(orchestrator.settings.webhook_seed)

    original = await orchestrator.setup_test(config)
    replay = None
    try:
        for regime in regime_sweep("SPY", 450.0)[:2]:
            await orchestrator.inject_gex(original, gex.generate(regime))
        for scenario in generate_scenario_series(num_signals, seed=seed, routing_seeds=True):
            await orchestrator.inject_webhook(original, webhooks.generate(scenario))
        await orchestrator.capture_state(original)

        replay = await orchestrator.replay_test(original)
        return original, replay
    finally:
        await orchestrator.teardown_test(original)
        if replay is not None:
            await orchestrator.teardown_test(replay)


def run_replay_consistency_test(
    num_signals: int = 12,
    seed: int = 42,
    settings: Optional[HarnessSettings] = None,
    verbose: bool = True,
) -> Dict[str, Any]:
    """
    Run a scenario, replay it into a fresh context and require identical decisions.

    Args:
        num_signals: Number of webhooks injected
        seed: Scenario series seed
        settings: Harness settings (defaults when None)
        verbose: Print detailed progress

    Returns:
        Dictionary with test ids, determinism result and snapshot counts

    Raises:
        AssertionError: When the replay diverges or a snapshot invariant fails
    """
    if verbose:
        print("\n" + "=" * 70)
        print("DIFFERENTIAL TEST: Original vs Replay Consistency")
        print("=" * 70)
        print(f"\n[1/3] Injecting {num_signals} synthetic webhooks...")

    orchestrator = TestOrchestrator(settings=settings or HarnessSettings(settle_delay=0.0))
    config = TestConfig(feature_flags={'engineB': True}, settle_delay=0.0)
    original, replay = asyncio.run(_run_and_replay(orchestrator, config, num_signals, seed))

    first = original.captured_snapshots[-1]
    second = replay.captured_snapshots[-1]

    if verbose:
        print(f"      Original: {original.test_id}, {len(first.routing_decisions)} routed")
        print(f"      Replay:   {replay.test_id}, {len(second.routing_decisions)} routed")
        print("\n[2/3] Checking snapshot invariants...")

    invariants.check_snapshot_invariants(first)
    invariants.check_snapshot_invariants(second)

    if verbose:
        print("      [OK] Both snapshots valid")
        print("\n[3/3] Comparing decisions...")

    result = validate_determinism([first, second])
    if verbose:
        print(f"      {'[OK]' if result.passed else '[FAIL]'} {result.message}")

    if not result.passed:
        raise AssertionError(f"Replay diverged from original run: {result.message}")

    return {
        'passed': True,
        'original_test_id': original.test_id,
        'replay_test_id': replay.test_id,
        'signals': num_signals,
        'routed': len(first.routing_decisions),
        'result': result,
    }


def _test_generator_invariants():
    """Generated GEX and OHLC records satisfy their invariants."""
    gex = GEXGenerator()
    regimes = [
        GEXRegime(type=regime, symbol=symbol, spot_price=spot)
        for regime in GEXRegimeType
        for symbol, spot in (("SPY", 450.0), ("QQQ", 380.0), ("SPX", 4500.0))
    ]
    gex_df = gex_generator.to_frame(gex.generate_batch(regimes))
    invariants.check_gex_invariants(gex_df)
    invariants.check_regime_invariants(gex_df)

    webhooks = WebhookGenerator()
    ohlc_df = webhook_generator.to_frame(webhooks.generate_batch(generate_scenario_series(36)))
    invariants.check_ohlc_invariants(ohlc_df)


def _test_broken_gex_detection():
    """A GEX row whose total does not add up is detected."""
    broken = pd.DataFrame([{
        'symbol': 'SPY', 'regime': 'POSITIVE', 'spot_price': 450.0,
        'total_gex': 9_000_000.0, 'call_gex': 12_000_000.0, 'put_gex': -4_000_000.0,
        'net_gex': 16_000_000.0, 'gamma_flip_level': 430.0,
    }])
    try:
        invariants.check_gex_invariants(broken)
    except AssertionError:
        return
    raise RuntimeError("Should have detected broken GEX arithmetic!")


async def _test_injection_safety():
    """Non-synthetic records are rejected and never logged."""
    orchestrator = TestOrchestrator(settings=HarnessSettings(settle_delay=0.0))
    async with orchestrator.isolated_context(TestConfig()) as context:
        record = {'payload': {'symbol': 'SPY'}, 'metadata': {'synthetic': False}}
        try:
            await orchestrator.inject_webhook(context, record)
        except SafetyViolation:
            pass
        else:
            raise AssertionError("Non-synthetic record was accepted")
        if context.injected_data:
            raise AssertionError("Rejected record appeared in injected data")


async def _test_environment_restore():
    """Teardown restores every overlaid entry exactly."""
    target = {'DATABASE_URL': 'postgresql://prod/main', 'UNRELATED': 'keep'}
    before = dict(target)
    orchestrator = TestOrchestrator(settings=HarnessSettings(settle_delay=0.0), env_target=target)

    context = await orchestrator.setup_test(TestConfig(feature_flags={'engineB': True}))
    if target['DATABASE_URL'] == before['DATABASE_URL'] or target.get('FEATURE_ENGINE_B') != 'true':
        raise AssertionError("Isolated environment was not applied")

    await orchestrator.teardown_test(context)
    await orchestrator.teardown_test(context)
    if target != before:
        raise AssertionError(f"Environment not restored: {target} != {before}")


def _test_outbound_blocking():
    """Broker and unknown hosts are blocked; external services are counted."""
    interceptor = NetworkInterceptor()
    for url in ("https://api.broker.com/v1/orders", "https://example.com/"):
        try:
            interceptor.check(url, "POST")
        except BlockedRequestError:
            continue
        raise AssertionError(f"Request to {url} was not blocked")

    interceptor.check("http://127.0.0.1:8080/webhook", "POST")
    interceptor.record_call(ENRICHMENT_SERVICE)
    if interceptor.call_counts() != {'Broker': 1, ENRICHMENT_SERVICE: 1}:
        raise AssertionError(f"Unexpected call counts: {interceptor.call_counts()}")


async def _test_duplicate_forwarding():
    """Identical webhooks are all forwarded; the reference system processes one."""
    orchestrator = TestOrchestrator(settings=HarnessSettings(settle_delay=0.0))
    webhook = WebhookGenerator().generate(generate_scenario_series(1)[0])
    async with orchestrator.isolated_context(TestConfig()) as context:
        for _ in range(3):
            await orchestrator.inject_webhook(context, webhook)
        snapshot = await orchestrator.capture_state(context)
        if len(context.injected_data) != 3:
            raise AssertionError(f"Expected 3 injected entries, got {len(context.injected_data)}")

    result = validate_webhook_ingestion(snapshot, IngestionExpectation(
        expected_processing_count=1,
        expected_enrichment_count=1,
        expected_api_calls={ENRICHMENT_SERVICE: 1},
    ))
    if not result.passed:
        raise AssertionError(result.message)


def run_safety_suite(verbose: bool = True) -> Dict[str, Any]:
    """
    Run all harness self-checks.

    Returns:
        Dictionary with 'passed' / 'failed' check lists and 'total'
    """
    checks = [
        ("Generator invariants", _test_generator_invariants),
        ("Broken GEX detection", _test_broken_gex_detection),
        ("Injection safety", lambda: asyncio.run(_test_injection_safety())),
        ("Environment restore", lambda: asyncio.run(_test_environment_restore())),
        ("Outbound blocking", _test_outbound_blocking),
        ("Duplicate forwarding", lambda: asyncio.run(_test_duplicate_forwarding())),
        ("Replay consistency", lambda: run_replay_consistency_test(verbose=verbose)),
    ]

    if verbose:
        print("\n" + "=" * 70)
        print("HARNESS SAFETY SUITE")
        print("=" * 70 + "\n")

    passed_checks: List[str] = []
    failed_checks: List[Tuple[str, str]] = []

    for number, (name, check) in enumerate(checks, start=1):
        if verbose:
            print(f"[TEST {number}] {name}...")
        try:
            check()
            passed_checks.append(name)
            if verbose:
                print("  PASSED\n")
        except Exception as e:
            logger.error(f"Safety check '{name}' failed: {e}")
            failed_checks.append((name, str(e)))
            if verbose:
                print(f"  FAILED: {e}\n")

    total = len(passed_checks) + len(failed_checks)
    if verbose:
        print("\n" + "=" * 70)
        print("SAFETY SUITE SUMMARY")
        print("=" * 70)
        print(f"\nPassed: {len(passed_checks)}/{total} checks")
        for name, error in failed_checks:
            print(f"  - {name}")
            print(f"    Error: {error[:100]}")

    return {'passed': passed_checks, 'failed': failed_checks, 'total': total}


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )
    summary = run_safety_suite()
    if summary['failed']:
        print("\nSAFETY SUITE FAILED - HARNESS RESULTS CANNOT BE TRUSTED")
        sys.exit(1)
    print("\nALL SAFETY CHECKS PASSED")
    sys.exit(0)
