"""
System Snapshot Model

Serializable, field-diffable representation of everything the harness can
observe about the system under test: counters, routing and per-engine
decisions, agent activations, shadow/live executions, log entries and
per-service external call counts.
"""

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

REQUIRED_LOG_FIELDS = (
    "timestamp",
    "phase",
    "signal_id",
    "variant",
    "execution_label",
    "action",
)

ENRICHMENT_SERVICE = "TwelveData"


@dataclass
class VariantAssignment:
    """Routing decision for one signal."""
    signal_id: str
    variant: str
    timestamp: int
    feature_flags: Dict[str, bool] = field(default_factory=dict)
    routing_key: Optional[str] = None


@dataclass
class Decision:
    """Engine decision for one signal."""
    signal_id: str
    engine: str
    action: str
    confidence: float
    reasoning: str
    latency_ms: float = 0.0


@dataclass
class EnrichedSnapshot:
    """Shared market snapshot every engine and agent reads for a signal."""
    signal_id: str
    webhook: Dict[str, Any]
    market_data: Dict[str, Any]
    gex_data: Optional[Dict[str, Any]]
    technical_indicators: Dict[str, Any]
    enriched_at: int


@dataclass
class AgentOutput:
    recommendation: str
    confidence: float
    reasoning: str


@dataclass
class AgentActivation:
    """One specialist agent run against an enriched snapshot."""
    signal_id: str
    agent: str
    input: EnrichedSnapshot
    output: AgentOutput
    data_source: str = "SHARED_SNAPSHOT"


@dataclass
class ShadowExecution:
    """Simulated execution; broker_api_called must stay False."""
    signal_id: str
    engine: str
    action: str
    quantity: float
    price: float
    broker_api_called: bool = False


@dataclass
class LiveExecution:
    """Execution on the live path; broker_api_called is False when only mocked."""
    signal_id: str
    engine: str
    action: str
    quantity: float
    price: float
    broker_api_called: bool = False


@dataclass
class LogEntry:
    timestamp: int
    phase: str
    message: str
    signal_id: Optional[str] = None
    variant: Optional[str] = None
    execution_label: Optional[str] = None
    action: Optional[str] = None
    agents: List[str] = field(default_factory=list)
    confidence: Optional[float] = None
    gex_regime: Optional[str] = None
    level: str = "INFO"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def missing_fields(self, required=REQUIRED_LOG_FIELDS) -> List[str]:
        """Names of required fields that are absent or empty."""
        missing = []
        for name in required:
            value = getattr(self, name, None)
            if value is None or value == "" or value == []:
                missing.append(name)
        return missing


@dataclass
class SystemSnapshot:
    """
    Full observable state of the system under test at one instant.

    Lists are ordered in processing order; two snapshots can be compared
    field by field with diff_snapshots().
    """
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    webhook_processing_count: int = 0
    enrichment_call_count: int = 0
    routing_decisions: List[VariantAssignment] = field(default_factory=list)
    engine_a_decisions: List[Decision] = field(default_factory=list)
    engine_b_decisions: List[Decision] = field(default_factory=list)
    agent_activations: List[AgentActivation] = field(default_factory=list)
    shadow_executions: List[ShadowExecution] = field(default_factory=list)
    live_executions: List[LiveExecution] = field(default_factory=list)
    logs: List[LogEntry] = field(default_factory=list)
    external_api_calls: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SystemSnapshot':
        """Build a snapshot from its to_dict() form (e.g. a JSON state endpoint)."""
        timestamp = data.get('timestamp')
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        elif isinstance(timestamp, (int, float)):
            timestamp = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
        elif timestamp is None:
            timestamp = datetime.now(timezone.utc)

        activations = []
        for item in data.get('agent_activations', []):
            item = dict(item)
            item['input'] = EnrichedSnapshot(**item['input'])
            item['output'] = AgentOutput(**item['output'])
            activations.append(AgentActivation(**item))

        return cls(
            timestamp=timestamp,
            webhook_processing_count=int(data.get('webhook_processing_count', 0)),
            enrichment_call_count=int(data.get('enrichment_call_count', 0)),
            routing_decisions=[VariantAssignment(**item) for item in data.get('routing_decisions', [])],
            engine_a_decisions=[Decision(**item) for item in data.get('engine_a_decisions', [])],
            engine_b_decisions=[Decision(**item) for item in data.get('engine_b_decisions', [])],
            agent_activations=activations,
            shadow_executions=[ShadowExecution(**item) for item in data.get('shadow_executions', [])],
            live_executions=[LiveExecution(**item) for item in data.get('live_executions', [])],
            logs=[LogEntry(**item) for item in data.get('logs', [])],
            external_api_calls={k: int(v) for k, v in data.get('external_api_calls', {}).items()},
        )


def _diff_values(path: str, left: Any, right: Any, out: List[str]) -> None:
    if isinstance(left, dict) and isinstance(right, dict):
        for key in sorted(set(left) | set(right), key=str):
            _diff_values(f"{path}.{key}", left.get(key), right.get(key), out)
    elif isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            out.append(f"{path}.length")
        for index, (a, b) in enumerate(zip(left, right)):
            _diff_values(f"{path}[{index}]", a, b, out)
    elif left != right:
        out.append(path)


def diff_snapshots(left: SystemSnapshot, right: SystemSnapshot,
                   ignore=("timestamp",)) -> List[str]:
    """
    Field paths whose values differ between two snapshots.

    Returns paths such as 'engine_b_decisions[0].action'. The capture
    timestamp is ignored by default.
    """
    left_dict = left.to_dict()
    right_dict = right.to_dict()
    out: List[str] = []
    for f in fields(SystemSnapshot):
        if f.name in ignore:
            continue
        _diff_values(f.name, left_dict[f.name], right_dict[f.name], out)
    return out
