"""
Test Orchestration

Isolated test-context lifecycle for driving an A/B decision system with
synthetic data.

Components:
- snapshot: Observable system state model
- context: Test configuration and context records
- environment: Reversible environment overlay and per-context environment
- interceptors: Allow-list guard for outbound HTTP
- system_under_test: Contract the orchestrator drives
- simulated_system: In-process reference A/B system
- http_system: Adapter for an out-of-process system over HTTP
- settings: Harness settings loaded from config/harness.yaml
- orchestrator: setup / inject / capture / teardown / replay
"""

from .snapshot import SystemSnapshot, diff_snapshots
from .context import TestConfig, TestContext, ContextState
from .environment import EnvironmentOverlay, TestEnvironment, feature_flag_env_name
from .interceptors import NetworkInterceptor, BlockedRequestError
from .system_under_test import SystemUnderTest
from .simulated_system import SimulatedABSystem, simulated_system_factory
from .settings import HarnessSettings, load_harness_settings
from .orchestrator import TestOrchestrator
from .http_system import HttpSystemUnderTest, http_system_factory

__all__ = [
    'SystemSnapshot',
    'diff_snapshots',
    'TestConfig',
    'TestContext',
    'ContextState',
    'EnvironmentOverlay',
    'TestEnvironment',
    'feature_flag_env_name',
    'NetworkInterceptor',
    'BlockedRequestError',
    'SystemUnderTest',
    'SimulatedABSystem',
    'simulated_system_factory',
    'HarnessSettings',
    'load_harness_settings',
    'TestOrchestrator',
    'HttpSystemUnderTest',
    'http_system_factory',
]
