"""
Test Context

Configuration and lifecycle record for one isolated test run. A context
moves through CREATED -> ENVIRONMENT_CONFIGURED -> ACTIVE -> TORN_DOWN and
is only mutated by orchestrator operations. Injected records and captured
snapshots are append-only.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple, Union

from harness_errors import InvalidInputError, UsageError
from orchestration.snapshot import SystemSnapshot


class ContextState(Enum):
    CREATED = "CREATED"
    ENVIRONMENT_CONFIGURED = "ENVIRONMENT_CONFIGURED"
    ACTIVE = "ACTIVE"
    TORN_DOWN = "TORN_DOWN"


@dataclass(frozen=True)
class TestConfig:
    """
    Settings for one test context.

    timeout bounds every orchestrator operation (seconds). settle_delay is
    the wait applied before capture when the system under test exposes no
    completion signal; None means use the harness default.
    """
    __test__ = False

    isolated_environment: bool = True
    feature_flags: Dict[str, bool] = field(default_factory=dict)
    mock_external_apis: bool = True
    capture_all_logs: bool = True
    timeout: Optional[float] = None
    environment: str = "test"
    settle_delay: Optional[float] = None

    def __post_init__(self):
        if self.timeout is not None and self.timeout <= 0:
            raise InvalidInputError(f"Timeout must be positive, got {self.timeout}")
        if self.settle_delay is not None and self.settle_delay < 0:
            raise InvalidInputError(f"Settle delay must be non-negative, got {self.settle_delay}")
        for flag, enabled in self.feature_flags.items():
            if not isinstance(enabled, bool):
                raise InvalidInputError(f"Feature flag '{flag}' must be a bool, got {enabled!r}")


@dataclass(frozen=True)
class InjectedRecord:
    """One entry of a context's injection log."""
    kind: str  # 'webhook' or 'gex'
    record: Any
    injected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class TestContext:
    """State of one isolated test run."""
    __test__ = False

    test_id: str
    config: TestConfig
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)
    state: ContextState = ContextState.CREATED

    _injected: List[InjectedRecord] = field(default_factory=list, repr=False)
    _snapshots: List[SystemSnapshot] = field(default_factory=list, repr=False)

    # Per-context resources owned by the orchestrator
    environment: Any = field(default=None, repr=False)
    system: Any = field(default=None, repr=False)
    overlay: Any = field(default=None, repr=False)
    interceptor: Any = field(default=None, repr=False)

    @property
    def injected_data(self) -> Tuple[InjectedRecord, ...]:
        return tuple(self._injected)

    @property
    def captured_snapshots(self) -> Tuple[SystemSnapshot, ...]:
        return tuple(self._snapshots)

    @property
    def is_active(self) -> bool:
        return self.state is ContextState.ACTIVE

    def require_active(self, operation: str) -> None:
        if self.state is not ContextState.ACTIVE:
            raise UsageError(
                f"Cannot {operation} on context {self.test_id} in state {self.state.value}"
            )

    def record_injection(self, kind: str, record: Any) -> InjectedRecord:
        entry = InjectedRecord(kind=kind, record=record)
        self._injected.append(entry)
        return entry

    def record_snapshot(self, snapshot: SystemSnapshot) -> SystemSnapshot:
        """Append a snapshot, clamping its timestamp to the previous capture."""
        if self._snapshots and snapshot.timestamp < self._snapshots[-1].timestamp:
            snapshot.timestamp = self._snapshots[-1].timestamp
        self._snapshots.append(snapshot)
        return snapshot

    def summary(self) -> Dict[str, Any]:
        return {
            'test_id': self.test_id,
            'state': self.state.value,
            'start_time': self.start_time.isoformat(),
            'injected': len(self._injected),
            'snapshots': len(self._snapshots),
            'metadata': dict(self.metadata),
        }


def record_is_synthetic(record: Union[Any, Dict[str, Any]]) -> bool:
    """True only when the record explicitly carries synthetic=True."""
    if isinstance(record, dict):
        metadata = record.get('metadata')
        flag = metadata.get('synthetic') if isinstance(metadata, dict) else record.get('synthetic')
        return flag is True

    metadata = getattr(record, 'metadata', None)
    flag = getattr(metadata, 'synthetic', None)
    return flag is True
