"""
Validator Expectations

One frozen dataclass per validation domain. Validators reject an
expectation of the wrong type with InvalidInputError instead of guessing at
its shape.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple, Literal

from harness_errors import InvalidInputError
from orchestration.snapshot import Decision, REQUIRED_LOG_FIELDS

Variant = Literal["A", "B"]
ExecutionLabel = Literal["SHADOW", "LIVE"]
AdjustmentDirection = Literal["INCREASE", "DECREASE", "NEUTRAL"]

ROUTING_LOG_FIELDS = ("signal_id", "variant", "execution_label", "phase")


def _check_choice(name: str, value, choices) -> None:
    if value not in choices:
        raise InvalidInputError(f"{name} must be one of {choices}, got {value!r}")


@dataclass(frozen=True)
class IngestionExpectation:
    expected_processing_count: int
    expected_enrichment_count: int
    expected_snapshot_sharing: bool = True
    expected_api_calls: Optional[Dict[str, int]] = None


@dataclass(frozen=True)
class VariantDistribution:
    """Target split in percent; tolerance is an absolute percentage."""
    variant_a: float
    variant_b: float
    tolerance: float

    def __post_init__(self):
        if abs(self.variant_a + self.variant_b - 100.0) > 1e-6:
            raise InvalidInputError(
                f"Distribution must sum to 100%, got {self.variant_a} + {self.variant_b}"
            )
        if self.tolerance < 0:
            raise InvalidInputError(f"Tolerance must be non-negative, got {self.tolerance}")


@dataclass(frozen=True)
class RoutingExpectation:
    """
    expected_variant: every routed signal must get this variant (None skips)
    engine_b_enabled: flag state the routing must respect (None reads it
        from the routing decisions)
    """
    expected_variant: Optional[Variant] = None
    expected_determinism: bool = True
    expected_feature_flag_behavior: bool = True
    engine_b_enabled: Optional[bool] = None
    expected_distribution: Optional[VariantDistribution] = None
    expected_logging_fields: Tuple[str, ...] = ROUTING_LOG_FIELDS

    def __post_init__(self):
        if self.expected_variant is not None:
            _check_choice("expected_variant", self.expected_variant, ("A", "B"))


@dataclass(frozen=True)
class EngineABaseline:
    """Pre-experiment Engine A behaviour to regress against."""
    baseline_decisions: Tuple[Decision, ...]
    baseline_latency_ms: float
    baseline_execution_mode: ExecutionLabel = "LIVE"
    latency_threshold_ms: Optional[float] = None
    confidence_tolerance: float = 0.001


@dataclass(frozen=True)
class ConfidenceAdjustment:
    agent: str
    adjustment: AdjustmentDirection
    reason: str

    def __post_init__(self):
        _check_choice("adjustment", self.adjustment, ("INCREASE", "DECREASE", "NEUTRAL"))


@dataclass(frozen=True)
class EngineBExpectation:
    expected_agent_activations: Tuple[str, ...]
    expected_data_source: str = "SHARED_SNAPSHOT"
    expected_execution_mode: ExecutionLabel = "SHADOW"
    expected_external_api_calls: int = 0
    expected_confidence_adjustments: Tuple[ConfidenceAdjustment, ...] = ()
    expected_meta_decision_aggregation: bool = True


@dataclass(frozen=True)
class LoggingExpectation:
    expected_variant: Variant
    expected_execution_label: ExecutionLabel
    required_fields: Tuple[str, ...] = REQUIRED_LOG_FIELDS
    expected_agents: Optional[Tuple[str, ...]] = None
    expected_confidence: Optional[float] = None
    expected_gex_regime: Optional[str] = None
    confidence_tolerance: float = 0.01

    def __post_init__(self):
        _check_choice("expected_variant", self.expected_variant, ("A", "B"))
        _check_choice("expected_execution_label", self.expected_execution_label, ("SHADOW", "LIVE"))


@dataclass(frozen=True)
class RiskVetoExpectation:
    expected_veto: bool
    expected_veto_reason: Optional[str] = None
    expected_execution_prevention: bool = True
    expected_veto_logging: bool = True


@dataclass(frozen=True)
class AgentBehavior:
    """An agent whose reasoning should mention behaviour, e.g. ('META_DECISION', 'pinning')."""
    agent: str
    behavior: str


@dataclass(frozen=True)
class GEXRegimeExpectation:
    expected_regime: str
    expected_confidence_adjustment: AdjustmentDirection
    expected_agent_behavior: Tuple[AgentBehavior, ...] = ()
    expected_gex_attribution: bool = True

    def __post_init__(self):
        _check_choice(
            "expected_regime", self.expected_regime,
            ("POSITIVE", "NEGATIVE", "GAMMA_FLIP_NEAR", "NEUTRAL")
        )
        _check_choice(
            "expected_confidence_adjustment", self.expected_confidence_adjustment,
            ("INCREASE", "DECREASE", "NEUTRAL")
        )


@dataclass(frozen=True)
class FeatureFlagExpectation:
    """Kill-switch expectation: engine_b_enabled=False forbids any Engine B activity."""
    engine_b_enabled: bool
    specialist_agents: Tuple[str, ...] = ("ORB", "STRAT", "TTM", "SATYLAND")


@dataclass(frozen=True)
class DisplayedSignal:
    signal_id: str
    variant: Variant
    agents: Tuple[str, ...]
    confidence: float
    execution_label: ExecutionLabel
    action: str
    timestamp: int


@dataclass(frozen=True)
class FrontendState:
    """What the dashboard showed, compared against backend logs."""
    displayed_signals: Tuple[DisplayedSignal, ...]
    captured_at: int
    confidence_tolerance: float = field(default=0.01)
