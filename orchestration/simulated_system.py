"""
Simulated A/B Decision System

In-process reference implementation of the system-under-test contract.
Models the observable behaviour of the production pipeline closely enough
to exercise every validator: webhook dedup, single enrichment per signal,
flag-gated variant routing, Engine A live decisions, Engine B multi-agent
shadow decisions, risk veto and GEX-aware reasoning.

All outputs are derived from injected data and the context's
TestEnvironment, so identical inputs produce identical snapshots.
"""

import asyncio
import copy
import hashlib
import logging
import time
from typing import Dict, Any, List, Optional

from orchestration.environment import TestEnvironment
from orchestration.snapshot import (
    SystemSnapshot, VariantAssignment, Decision, EnrichedSnapshot, AgentOutput,
    AgentActivation, ShadowExecution, LiveExecution, LogEntry, ENRICHMENT_SERVICE
)
from orchestration.system_under_test import SystemUnderTest
from synthetic.models import (
    SyntheticGEX, SyntheticWebhook, WebhookPattern, InteractionType, GEXRegimeType
)

logger = logging.getLogger(__name__)

ENGINE_B_FLAG = "engineB"
RISK_VETO_FLAG = "riskVeto"
RISK_ENV_PREFIX = "test-risk-"

ENGINE_A_CONFIDENCE = 0.6
ENGINE_A_REASONING = "Synthetic Engine A decision"
AGENT_CONFIDENCE = 0.7

PATTERN_CONFIDENCE = {
    WebhookPattern.ORB_FAKEOUT: 0.6,
    WebhookPattern.CHOP: 0.55,
}
DEFAULT_B_CONFIDENCE = 0.7

REGIME_REASONING = {
    GEXRegimeType.POSITIVE: " - GEX pinning",
    GEXRegimeType.NEGATIVE: " - GEX trending",
    GEXRegimeType.GAMMA_FLIP_NEAR: " - gamma flip near",
    GEXRegimeType.NEUTRAL: " - GEX neutral",
}

# Trending gamma supports conviction, pinning and flip proximity reduce it
REGIME_CONFIDENCE_ADJUSTMENT = {
    GEXRegimeType.POSITIVE: -0.05,
    GEXRegimeType.NEGATIVE: 0.05,
    GEXRegimeType.GAMMA_FLIP_NEAR: -0.05,
    GEXRegimeType.NEUTRAL: 0.0,
}


def select_agents(pattern: WebhookPattern, interaction: Optional[InteractionType]) -> List[str]:
    """Specialist agents Engine B activates for a pattern/interaction."""
    agents = ["RISK", "META_DECISION"]

    def add(agent: str) -> None:
        if agent not in agents:
            agents.insert(len(agents) - 1, agent)  # META_DECISION stays last

    if "ORB" in pattern.value:
        add("ORB")
    if pattern in (WebhookPattern.TREND_CONTINUATION, WebhookPattern.ORB_FAKEOUT):
        add("STRAT")
    if pattern.value.startswith("VOL") or pattern is WebhookPattern.CHOP:
        add("TTM")

    if interaction is InteractionType.ORB_TTM_ALIGNMENT:
        add("TTM")
    elif interaction is InteractionType.SATYLAND_CONFIRMATION:
        add("SATYLAND")
    elif interaction is InteractionType.AGENT_DISAGREEMENT:
        add("ORB")
        add("STRAT")

    return agents


def hash_route(routing_key: str) -> str:
    """Stable A/B split on a routing key."""
    digest = hashlib.sha256(routing_key.encode("utf-8")).digest()
    return "A" if digest[0] % 2 == 0 else "B"


class SimulatedABSystem(SystemUnderTest):
    """
    Reference A/B system driven entirely by its TestEnvironment.

    Flags read from the environment:
        engineB: enables Engine B routing (off means every signal goes to A)
        riskVeto: RISK agent vetoes every trade
    An environment name starting with 'test-risk-' (other than
    'test-risk-none') also activates the veto.
    """

    def __init__(self, environment: TestEnvironment):
        self.environment = environment
        self._state = SystemSnapshot()
        self._seen_signals = set()
        self._latest_gex: Dict[str, SyntheticGEX] = {}
        self._last_gex: Optional[SyntheticGEX] = None
        self._own_calls: Dict[str, int] = {}
        self.closed = False

    @property
    def engine_b_enabled(self) -> bool:
        return self.environment.is_enabled(ENGINE_B_FLAG)

    @property
    def veto_reason(self) -> Optional[str]:
        if self.environment.is_enabled(RISK_VETO_FLAG):
            return "risk limit exceeded"
        name = self.environment.name or ""
        if name.startswith(RISK_ENV_PREFIX) and name != f"{RISK_ENV_PREFIX}none":
            return name[len(RISK_ENV_PREFIX):].replace("-", " ")
        return None

    async def ingest_gex(self, record: SyntheticGEX) -> None:
        self._latest_gex[record.symbol] = record
        self._last_gex = record
        logger.debug(f"GEX {record.regime.value} stored for {record.symbol}")
        await asyncio.sleep(0)

    async def ingest_webhook(self, record: SyntheticWebhook) -> None:
        payload = record.payload
        signal_id = payload.signal_id

        if signal_id in self._seen_signals:
            logger.debug(f"Duplicate webhook {signal_id} ignored")
            await asyncio.sleep(0)
            return

        self._seen_signals.add(signal_id)
        self._state.webhook_processing_count += 1

        enriched = self._enrich(record)
        variant = self._route(record)
        if variant == "A":
            self._run_engine_a(record, enriched)
        else:
            self._run_engine_b(record, enriched)

        await asyncio.sleep(0)

    async def wait_until_idle(self, timeout: float) -> bool:
        # Processing completes inside ingest_*; nothing is ever in flight
        return True

    async def query_state(self) -> SystemSnapshot:
        snapshot = copy.deepcopy(self._state)
        snapshot.timestamp = SystemSnapshot().timestamp
        interceptor = self.environment.interceptor
        snapshot.external_api_calls = interceptor.call_counts() if interceptor else dict(self._own_calls)
        return snapshot

    async def close(self) -> None:
        self.closed = True

    def _gex_for(self, symbol: str) -> Optional[SyntheticGEX]:
        return self._latest_gex.get(symbol, self._last_gex)

    def _enrich(self, record: SyntheticWebhook) -> EnrichedSnapshot:
        payload = record.payload
        interceptor = self.environment.interceptor
        if interceptor is not None:
            interceptor.record_call(ENRICHMENT_SERVICE)
        self._own_calls[ENRICHMENT_SERVICE] = self._own_calls.get(ENRICHMENT_SERVICE, 0) + 1
        self._state.enrichment_call_count += 1

        gex = self._gex_for(payload.symbol)
        gex_data = None
        if gex is not None:
            gex_data = dict(gex.data.to_dict(), regime=gex.regime.value)

        return EnrichedSnapshot(
            signal_id=payload.signal_id,
            webhook=payload.to_dict(),
            market_data={
                'price': payload.close,
                'open': payload.open,
                'high': payload.high,
                'low': payload.low,
                'volume': payload.volume,
            },
            gex_data=gex_data,
            technical_indicators={
                'range_pct': (payload.high - payload.low) / payload.open,
                'body_pct': (payload.close - payload.open) / payload.open,
            },
            enriched_at=payload.timestamp,
        )

    def _route(self, record: SyntheticWebhook) -> str:
        payload = record.payload
        scenario = record.scenario

        if not self.engine_b_enabled:
            variant = "A"
        elif scenario.variant is not None:
            variant = scenario.variant
        elif scenario.routing_seed is not None:
            variant = "A" if scenario.routing_seed % 2 == 0 else "B"
        else:
            variant = hash_route(payload.signal_id)

        self._state.routing_decisions.append(VariantAssignment(
            signal_id=payload.signal_id,
            variant=variant,
            timestamp=payload.timestamp,
            feature_flags=dict(self.environment.feature_flags),
            routing_key=payload.signal_id,
        ))
        return variant

    def _run_engine_a(self, record: SyntheticWebhook, enriched: EnrichedSnapshot) -> None:
        started = time.perf_counter()
        payload = record.payload
        gex = self._gex_for(payload.symbol)
        veto = self.veto_reason

        decision = Decision(
            signal_id=payload.signal_id,
            engine="A",
            action="BUY",
            confidence=ENGINE_A_CONFIDENCE,
            reasoning=ENGINE_A_REASONING,
            latency_ms=(time.perf_counter() - started) * 1000,
        )
        self._state.engine_a_decisions.append(decision)

        if veto is None:
            self._state.live_executions.append(LiveExecution(
                signal_id=payload.signal_id,
                engine="A",
                action=decision.action,
                quantity=1,
                price=payload.close,
                broker_api_called=False,
            ))
        else:
            self._log_veto(payload, "A", "LIVE", veto, gex)

        self._state.logs.append(LogEntry(
            timestamp=payload.timestamp,
            phase="ROUTING",
            message="Signal routed to Engine A",
            signal_id=payload.signal_id,
            variant="A",
            execution_label="LIVE",
            action=decision.action,
            agents=[],
            confidence=decision.confidence,
            gex_regime=gex.regime.value if gex else None,
            metadata={'pattern': payload.pattern, 'strategy': payload.strategy},
        ))

    def _run_engine_b(self, record: SyntheticWebhook, enriched: EnrichedSnapshot) -> None:
        started = time.perf_counter()
        payload = record.payload
        scenario = record.scenario
        gex = self._gex_for(payload.symbol)
        veto = self.veto_reason

        agents = select_agents(scenario.pattern, scenario.interaction_type)
        action = "HOLD" if veto else "BUY"

        base_confidence = PATTERN_CONFIDENCE.get(scenario.pattern, DEFAULT_B_CONFIDENCE)
        adjustment = REGIME_CONFIDENCE_ADJUSTMENT[gex.regime] if gex else 0.0
        confidence = round(base_confidence + adjustment, 6)

        reasoning = f"Synthetic Engine B decision ({', '.join(agents)})"
        if gex is not None:
            reasoning += REGIME_REASONING[gex.regime]
        if veto:
            reasoning += f" - RISK veto: {veto}"

        for agent in agents:
            if agent == "META_DECISION":
                output = AgentOutput(recommendation=action, confidence=confidence, reasoning=reasoning)
            elif agent == "RISK" and veto:
                output = AgentOutput(recommendation="VETO", confidence=1.0, reasoning=f"RISK veto: {veto}")
            else:
                output = AgentOutput(
                    recommendation="BUY",
                    confidence=AGENT_CONFIDENCE,
                    reasoning=f"{agent} analysis of {scenario.pattern.value}",
                )
            self._state.agent_activations.append(AgentActivation(
                signal_id=payload.signal_id,
                agent=agent,
                input=enriched,
                output=output,
            ))

        decision = Decision(
            signal_id=payload.signal_id,
            engine="B",
            action=action,
            confidence=confidence,
            reasoning=reasoning,
            latency_ms=(time.perf_counter() - started) * 1000,
        )
        self._state.engine_b_decisions.append(decision)

        if action != "HOLD":
            self._state.shadow_executions.append(ShadowExecution(
                signal_id=payload.signal_id,
                engine="B",
                action=action,
                quantity=1,
                price=payload.close,
                broker_api_called=False,
            ))
        if veto:
            self._log_veto(payload, "B", "SHADOW", veto, gex)

        self._state.logs.append(LogEntry(
            timestamp=payload.timestamp,
            phase="ROUTING",
            message="Signal routed to Engine B",
            signal_id=payload.signal_id,
            variant="B",
            execution_label="SHADOW",
            action=action,
            agents=list(agents),
            confidence=confidence,
            gex_regime=gex.regime.value if gex else None,
            metadata={
                'pattern': payload.pattern,
                'strategy': payload.strategy,
                'base_confidence': base_confidence,
                'confidence_adjustment': adjustment,
            },
        ))

    def _log_veto(self, payload, variant: str, label: str, reason: str,
                  gex: Optional[SyntheticGEX]) -> None:
        logger.info(f"[VETO] {payload.signal_id} blocked by RISK: {reason}")
        self._state.logs.append(LogEntry(
            timestamp=payload.timestamp,
            phase="RISK",
            message=f"RISK veto: {reason}",
            signal_id=payload.signal_id,
            variant=variant,
            execution_label=label,
            action="VETO",
            agents=["RISK"],
            confidence=1.0,
            gex_regime=gex.regime.value if gex else None,
            level="WARNING",
            metadata={'veto_reason': reason},
        ))


def simulated_system_factory(environment: TestEnvironment) -> SimulatedABSystem:
    """SystemFactory building a fresh SimulatedABSystem per context."""
    return SimulatedABSystem(environment)
