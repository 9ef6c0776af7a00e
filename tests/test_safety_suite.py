"""
Integration test for the harness safety suite.
"""

import pytest

from orchestration.settings import HarnessSettings
from validation.safety_suite import run_safety_suite, run_replay_consistency_test


def test_safety_suite_passes():
    summary = run_safety_suite(verbose=False)
    assert summary['failed'] == []
    assert summary['total'] == len(summary['passed']) == 7


def test_replay_consistency():
    result = run_replay_consistency_test(num_signals=6, seed=7, verbose=False)
    assert result['passed']
    assert result['original_test_id'] != result['replay_test_id']
    assert result['routed'] == 6
    assert result['result'].passed


def test_replay_consistency_verbose_output(capsys):
    run_replay_consistency_test(num_signals=3, settings=HarnessSettings(settle_delay=0.0, timeout=5.0))
    out = capsys.readouterr().out
    assert "Original vs Replay Consistency" in out
    assert "[OK] Both snapshots valid" in out


@pytest.mark.parametrize("num_signals", [0, 1])
def test_replay_with_few_signals(num_signals):
    result = run_replay_consistency_test(num_signals=num_signals, verbose=False)
    assert result['routed'] == num_signals
