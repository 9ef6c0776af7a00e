"""
Determinism Validator

Proves that identical injected sequences under identical config produce
identical observable decisions. Snapshots are compared position by
position on a fixed key subset per component; confidences use an explicit
tolerance, every other key must match exactly.
"""

import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from harness_errors import UsageError
from orchestration.snapshot import SystemSnapshot
from validation.framework import ValidationResult, require_snapshot

logger = logging.getLogger(__name__)

CONFIDENCE_TOLERANCE = 1e-5
PHASE = "Determinism"
REQUIREMENT = "identical inputs yield identical decisions"

KeySpec = List[Tuple[str, Callable[[Any], Any], bool]]

# (component, list accessor, [(key, accessor, is_float)])
COMPONENTS: List[Tuple[str, Callable[[SystemSnapshot], list], KeySpec]] = [
    ("routing_decisions", lambda s: s.routing_decisions, [
        ("signal_id", lambda d: d.signal_id, False),
        ("variant", lambda d: d.variant, False),
    ]),
    ("engine_a_decisions", lambda s: s.engine_a_decisions, [
        ("signal_id", lambda d: d.signal_id, False),
        ("action", lambda d: d.action, False),
        ("confidence", lambda d: d.confidence, True),
        ("reasoning", lambda d: d.reasoning, False),
    ]),
    ("engine_b_decisions", lambda s: s.engine_b_decisions, [
        ("signal_id", lambda d: d.signal_id, False),
        ("action", lambda d: d.action, False),
        ("confidence", lambda d: d.confidence, True),
        ("reasoning", lambda d: d.reasoning, False),
    ]),
    ("agent_activations", lambda s: s.agent_activations, [
        ("signal_id", lambda a: a.signal_id, False),
        ("agent", lambda a: a.agent, False),
        ("recommendation", lambda a: a.output.recommendation, False),
        ("confidence", lambda a: a.output.confidence, True),
        ("reasoning", lambda a: a.output.reasoning, False),
    ]),
]


def _values_match(left: Any, right: Any, is_float: bool, tolerance: float) -> bool:
    if is_float and left is not None and right is not None:
        return abs(left - right) <= tolerance
    return left == right


def _first_violation(snapshots: Sequence[SystemSnapshot], tolerance: float) -> Optional[Dict[str, Any]]:
    for component, accessor, keys in COMPONENTS:
        lists = [accessor(s) for s in snapshots]
        lengths = [len(items) for items in lists]
        if len(set(lengths)) > 1:
            reference = lengths[0]
            index = next(i for i, n in enumerate(lengths) if n != reference)
            return {
                'component': component,
                'check': 'length',
                'snapshot_indices': [0, index],
                'expected': reference,
                'actual': lengths[index],
                'lengths': lengths,
            }

        for i, j in itertools.combinations(range(len(snapshots)), 2):
            for position, (left, right) in enumerate(zip(lists[i], lists[j])):
                for key, get, is_float in keys:
                    left_value, right_value = get(left), get(right)
                    if not _values_match(left_value, right_value, is_float, tolerance):
                        return {
                            'component': component,
                            'check': key,
                            'snapshot_indices': [i, j],
                            'position': position,
                            'signal_id': getattr(left, 'signal_id', None),
                            'expected': left_value,
                            'actual': right_value,
                        }
    return None


def validate_determinism(snapshots: Sequence[SystemSnapshot],
                         tolerance: float = CONFIDENCE_TOLERANCE) -> ValidationResult:
    """
    Compare two or more snapshots from logically identical runs.

    Args:
        snapshots: Captured snapshots, one per run
        tolerance: Allowed absolute difference between confidences

    Returns:
        ValidationResult; on failure details name the first violating
        component, key, snapshot indices and the compared values

    Raises:
        UsageError: Fewer than two snapshots
        InvalidInputError: An element is not a SystemSnapshot
    """
    if snapshots is None or len(snapshots) < 2:
        count = 0 if snapshots is None else len(snapshots)
        raise UsageError(f"Determinism validation needs at least 2 snapshots, got {count}")

    snapshots = [require_snapshot(s) for s in snapshots]
    violation = _first_violation(snapshots, tolerance)

    if violation is None:
        return ValidationResult(
            passed=True,
            phase=PHASE,
            requirement=REQUIREMENT,
            message=f"All {len(snapshots)} snapshots are identical on compared fields",
            details={
                'snapshot_count': len(snapshots),
                'components': [name for name, _, _ in COMPONENTS],
                'tolerance': tolerance,
            },
        )

    where = f" at position {violation['position']}" if 'position' in violation else ""
    message = (
        f"Non-deterministic {violation['component']}.{violation['check']}{where} "
        f"between snapshots {violation['snapshot_indices'][0]} and {violation['snapshot_indices'][1]}: "
        f"{violation['expected']!r} != {violation['actual']!r}"
    )
    logger.warning(message)
    return ValidationResult(
        passed=False,
        phase=PHASE,
        requirement=REQUIREMENT,
        message=message,
        details=violation,
        expected=violation['expected'],
        actual=violation['actual'],
    )
