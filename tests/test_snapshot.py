"""
Tests for the snapshot model: serialization, diffing and log field checks.
"""

import asyncio
import json

import pytest

from orchestration.context import TestConfig
from orchestration.snapshot import (
    SystemSnapshot, Decision, LogEntry, VariantAssignment, diff_snapshots, REQUIRED_LOG_FIELDS
)
from synthetic.scenarios import regime_sweep


@pytest.fixture
def captured(orchestrator, webhooks, gex_gen):
    """Snapshot captured from the simulated system with Engine B enabled."""
    async def run():
        async with orchestrator.isolated_context(TestConfig(feature_flags={'engineB': True})) as ctx:
            await orchestrator.inject_gex(ctx, gex_gen.generate(regime_sweep()[0]))
            for webhook in webhooks:
                await orchestrator.inject_webhook(ctx, webhook)
            return await orchestrator.capture_state(ctx)

    return asyncio.run(run())


def test_dict_form_is_json_serializable(captured):
    text = json.dumps(captured.to_dict())
    assert '"engine_b_decisions"' in text


def test_from_dict_restores_snapshot(captured):
    restored = SystemSnapshot.from_dict(json.loads(json.dumps(captured.to_dict())))
    assert restored == captured
    assert diff_snapshots(captured, restored) == []


def test_from_dict_accepts_epoch_millis_and_missing_sections():
    restored = SystemSnapshot.from_dict({'timestamp': 1704205800000, 'webhook_processing_count': 2})
    assert restored.timestamp.year == 2024
    assert restored.webhook_processing_count == 2
    assert restored.routing_decisions == []


def test_diff_reports_field_paths():
    decision = Decision(signal_id='SPY-5m-1', engine='B', action='BUY', confidence=0.7, reasoning='x')
    left = SystemSnapshot(engine_b_decisions=[decision])
    right = SystemSnapshot(engine_b_decisions=[
        Decision(signal_id='SPY-5m-1', engine='B', action='HOLD', confidence=0.7, reasoning='x')
    ])
    assert diff_snapshots(left, right) == ['engine_b_decisions[0].action']


def test_diff_reports_length_change():
    left = SystemSnapshot(routing_decisions=[VariantAssignment('SPY-5m-1', 'A', 1)])
    right = SystemSnapshot()
    assert 'routing_decisions.length' in diff_snapshots(left, right)


def test_diff_ignores_timestamp_by_default():
    first = SystemSnapshot()
    second = SystemSnapshot()
    second.timestamp = first.timestamp.replace(year=2030)
    assert diff_snapshots(first, second) == []
    assert diff_snapshots(first, second, ignore=()) == ['timestamp']


def test_log_entry_missing_fields():
    entry = LogEntry(timestamp=1, phase='ROUTING', message='m', signal_id='s', variant='A')
    assert entry.missing_fields() == ['execution_label', 'action']
    assert entry.missing_fields(required=('agents',)) == ['agents']

    complete = LogEntry(timestamp=1, phase='ROUTING', message='m', signal_id='s', variant='B',
                        execution_label='SHADOW', action='BUY')
    assert complete.missing_fields(REQUIRED_LOG_FIELDS) == []
