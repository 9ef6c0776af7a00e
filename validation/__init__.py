"""
Validation System

Checks captured system state against declarative expectations and proves
run-to-run determinism.

Components:
- invariants: Invariant checks over generator frames and snapshots
- expectations: Typed expectation per validation domain
- framework: ValidationResult and sub-check aggregation
- validators: Ingestion, routing, engine, logging, risk, GEX, flag and frontend validators
- determinism: Cross-run snapshot comparison
- config_validator: harness.yaml validation
- safety_suite: Harness self-check runner (import validation.safety_suite directly)
"""

from .invariants import (
    check_gex_invariants,
    check_regime_invariants,
    check_ohlc_invariants,
    check_snapshot_invariants
)

from .framework import ValidationResult

from .validators import (
    validate_webhook_ingestion,
    validate_routing,
    validate_engine_a,
    validate_engine_b,
    validate_logging,
    validate_risk_veto,
    validate_gex_regime,
    validate_feature_flags,
    validate_frontend
)

from .determinism import validate_determinism

__all__ = [
    # Invariants
    'check_gex_invariants',
    'check_regime_invariants',
    'check_ohlc_invariants',
    'check_snapshot_invariants',

    # Validators
    'ValidationResult',
    'validate_webhook_ingestion',
    'validate_routing',
    'validate_engine_a',
    'validate_engine_b',
    'validate_logging',
    'validate_risk_veto',
    'validate_gex_regime',
    'validate_feature_flags',
    'validate_frontend',
    'validate_determinism',
]
