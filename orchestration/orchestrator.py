"""
Test Orchestrator

Owns the lifecycle of isolated test contexts:
setup -> (inject / capture)* -> teardown, plus replay of a recorded
injection sequence into a fresh context.

Each context gets its own environment overlay, network interceptor and
system-under-test instance, so contexts can run concurrently. The only
state shared between contexts is the active-context registry.
"""

import asyncio
import contextlib
import itertools
import logging
import os
import threading
import time
from typing import Dict, List, Optional, MutableMapping, Awaitable, TypeVar

from harness_errors import (
    InvalidInputError, SafetyViolation, UsageError, HarnessEnvironmentError, HarnessTimeoutError
)
from orchestration.context import TestConfig, TestContext, ContextState, record_is_synthetic
from orchestration.environment import (
    EnvironmentOverlay, TestEnvironment, flag_env_values, private_environment_copy
)
from orchestration.interceptors import NetworkInterceptor
from orchestration.settings import HarnessSettings
from orchestration.simulated_system import simulated_system_factory
from orchestration.snapshot import SystemSnapshot
from orchestration.system_under_test import SystemFactory
from synthetic.models import SyntheticGEX, SyntheticWebhook

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shared by every orchestrator so test ids are unique within the process
_test_ids = itertools.count(1)
_test_id_lock = threading.Lock()


class TestOrchestrator:
    """
    Lifecycle manager for test contexts.

    Callers must await operations on one context sequentially; distinct
    contexts are independent.

    Args:
        system_factory: Builds one system under test per context from its
            TestEnvironment (defaults to the simulated reference system)
        settings: Harness defaults (timeouts, hosts, placeholder credentials)
        env_target: Mapping overlaid by isolated contexts. None means a
            private copy of os.environ per context, or os.environ itself
            when settings.overlay_process_environment is set.
    """

    __test__ = False

    def __init__(
        self,
        system_factory: Optional[SystemFactory] = None,
        settings: Optional[HarnessSettings] = None,
        env_target: Optional[MutableMapping[str, str]] = None,
    ):
        self.system_factory = system_factory or simulated_system_factory
        self.settings = settings or HarnessSettings()
        self.env_target = env_target

        self._contexts: Dict[str, TestContext] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _next_test_id(self) -> str:
        with _test_id_lock:
            sequence = next(_test_ids)
        return f"test-{int(time.time() * 1000)}-{sequence}"

    def _register(self, context: TestContext) -> None:
        with self._lock:
            self._contexts[context.test_id] = context

    def _unregister(self, context: TestContext) -> Optional[TestContext]:
        with self._lock:
            return self._contexts.pop(context.test_id, None)

    def get_context(self, test_id: str) -> TestContext:
        with self._lock:
            context = self._contexts.get(test_id)
        if context is None:
            raise UsageError(f"Unknown test context: {test_id}")
        return context

    def active_contexts(self) -> List[TestContext]:
        with self._lock:
            return list(self._contexts.values())

    def _require(self, context: TestContext, operation: str) -> None:
        with self._lock:
            registered = self._contexts.get(getattr(context, "test_id", None))
        if registered is not context:
            raise UsageError(f"Cannot {operation}: context is not managed by this orchestrator")
        context.require_active(operation)

    # ------------------------------------------------------------------
    # Timeouts
    # ------------------------------------------------------------------

    def _timeout_for(self, config: TestConfig) -> float:
        return config.timeout if config.timeout is not None else self.settings.timeout

    def _settle_delay_for(self, config: TestConfig) -> float:
        return config.settle_delay if config.settle_delay is not None else self.settings.settle_delay

    async def _bounded(self, awaitable: Awaitable[T], seconds: float, operation: str, test_id: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=seconds)
        except asyncio.TimeoutError:
            raise HarnessTimeoutError(
                f"{operation} exceeded {seconds:.2f}s timeout (context {test_id})"
            ) from None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def setup_test(self, config: Optional[TestConfig] = None) -> TestContext:
        """
        Create and activate a new test context.

        Anything applied before a failure (overlay, interceptor, system) is
        rolled back before the error propagates.

        Raises:
            HarnessEnvironmentError: Overlay or interceptor installation failed
            HarnessTimeoutError: Setup exceeded the configured timeout
        """
        config = config or TestConfig()
        if not isinstance(config, TestConfig):
            raise InvalidInputError(f"Expected TestConfig, got {type(config).__name__}")

        context = TestContext(test_id=self._next_test_id(), config=config)
        await self._bounded(self._setup(context), self._timeout_for(config), "setup", context.test_id)

        logger.info(
            f"[SETUP] {context.test_id} active "
            f"(isolated={config.isolated_environment}, mocked={config.mock_external_apis}, "
            f"flags={config.feature_flags})"
        )
        return context

    async def _setup(self, context: TestContext) -> None:
        config = context.config

        async with contextlib.AsyncExitStack() as rollback:
            target = self._environment_target()
            if config.isolated_environment:
                overlay = EnvironmentOverlay(target)
                rollback.callback(self._restore_quietly, overlay, context.test_id)
                overlay.apply(dict(self.settings.isolated_environment, HARNESS_ENV=config.environment))
                overlay.apply(flag_env_values(config.feature_flags))
                context.overlay = overlay
            context.state = ContextState.ENVIRONMENT_CONFIGURED

            interceptor = None
            if config.mock_external_apis:
                interceptor = self._install_interceptor()
                rollback.callback(interceptor.uninstall)
                context.interceptor = interceptor

            environment = TestEnvironment(
                name=config.environment,
                values=target,
                feature_flags=config.feature_flags,
                interceptor=interceptor,
            )
            context.environment = environment

            system = self.system_factory(environment)
            rollback.push_async_callback(system.close)
            context.system = system

            context.metadata.update({
                'environment': config.environment,
                'feature_flags': dict(config.feature_flags),
                'overlaid_keys': list(context.overlay.touched_keys) if context.overlay else [],
                'interceptor_installed': interceptor is not None,
            })

            self._register(context)
            context.state = ContextState.ACTIVE
            rollback.pop_all()

    def _environment_target(self) -> MutableMapping[str, str]:
        if self.env_target is not None:
            return self.env_target
        if self.settings.overlay_process_environment:
            return os.environ
        return private_environment_copy()

    def _install_interceptor(self) -> NetworkInterceptor:
        try:
            return NetworkInterceptor(
                allowed_hosts=self.settings.allowed_hosts,
                service_hosts=self.settings.service_hosts,
                blocked_hosts=self.settings.blocked_hosts,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise HarnessEnvironmentError(f"Failed to install network interceptor: {e}") from e

    @staticmethod
    def _restore_quietly(overlay: EnvironmentOverlay, test_id: str) -> None:
        try:
            overlay.restore()
        except HarnessEnvironmentError as e:
            logger.warning(f"[TEARDOWN] {test_id} environment restore incomplete: {e}")

    async def inject_webhook(self, context: TestContext, record: SyntheticWebhook) -> None:
        """
        Record and forward a synthetic webhook.

        Every call is forwarded, including repeats of the same payload.

        Raises:
            SafetyViolation: Record is not marked synthetic
            InvalidInputError: Record is not a SyntheticWebhook
            UsageError: Context is not active
        """
        await self._inject(context, record, "webhook", SyntheticWebhook)

    async def inject_gex(self, context: TestContext, record: SyntheticGEX) -> None:
        """Record and forward a synthetic GEX record (see inject_webhook)."""
        await self._inject(context, record, "gex", SyntheticGEX)

    async def _inject(self, context: TestContext, record, kind: str, expected_type) -> None:
        self._require(context, f"inject {kind}")

        if not record_is_synthetic(record):
            logger.error(f"[INJECT] {context.test_id} rejected non-synthetic {kind} record")
            raise SafetyViolation(
                f"Refusing to inject {kind} record without synthetic=True into {context.test_id}"
            )
        if not isinstance(record, expected_type):
            raise InvalidInputError(
                f"inject {kind} expects {expected_type.__name__}, got {type(record).__name__}"
            )

        context.record_injection(kind, record)
        ingest = context.system.ingest_webhook if kind == "webhook" else context.system.ingest_gex
        await self._bounded(ingest(record), self._timeout_for(context.config), f"inject {kind}", context.test_id)

        logger.debug(f"[INJECT] {context.test_id} {kind} #{len(context.injected_data)}")

    async def capture_state(self, context: TestContext) -> SystemSnapshot:
        """
        Capture the system-under-test state after it settles.

        Uses the system's completion signal when it has one, otherwise waits
        the configured settle delay. The snapshot is appended to the
        context with a timestamp no earlier than the previous capture.
        """
        self._require(context, "capture state")
        timeout = self._timeout_for(context.config)
        settle_delay = self._settle_delay_for(context.config)

        async def _capture() -> SystemSnapshot:
            signalled = await context.system.wait_until_idle(timeout)
            if not signalled and settle_delay > 0:
                await asyncio.sleep(settle_delay)
            return await context.system.query_state()

        snapshot = await self._bounded(_capture(), timeout, "capture state", context.test_id)
        if not isinstance(snapshot, SystemSnapshot):
            raise HarnessEnvironmentError(
                f"System under test returned {type(snapshot).__name__} instead of SystemSnapshot"
            )

        context.record_snapshot(snapshot)
        logger.info(
            f"[CAPTURE] {context.test_id} snapshot #{len(context.captured_snapshots)}: "
            f"{snapshot.webhook_processing_count} processed, "
            f"{len(snapshot.engine_a_decisions)} A / {len(snapshot.engine_b_decisions)} B decisions"
        )
        return snapshot

    async def teardown_test(self, context: TestContext) -> None:
        """
        Tear down a context: close the system, remove the interceptor,
        restore the environment and unregister.

        Idempotent and never raises; unknown or already torn-down contexts
        are ignored.
        """
        if context is None or not isinstance(context, TestContext):
            logger.debug("[TEARDOWN] ignoring non-context argument")
            return

        registered = self._unregister(context)
        if registered is not context or context.state is ContextState.TORN_DOWN:
            logger.debug(f"[TEARDOWN] {context.test_id} not active, nothing to do")
            return

        if context.system is not None:
            try:
                await asyncio.wait_for(context.system.close(), timeout=self._timeout_for(context.config))
            except Exception as e:
                logger.warning(f"[TEARDOWN] {context.test_id} system close failed: {e}")

        if context.interceptor is not None:
            context.interceptor.uninstall()

        if context.overlay is not None:
            self._restore_quietly(context.overlay, context.test_id)

        context.state = ContextState.TORN_DOWN
        logger.info(f"[TEARDOWN] {context.test_id} torn down")

    async def replay_test(self, context: TestContext) -> TestContext:
        """
        Re-deliver a context's injected records, in order, to a new context
        with the same config, then capture its state.

        The source context may already be torn down. The new context is
        returned active; the caller tears it down.
        """
        if not isinstance(context, TestContext):
            raise UsageError(f"replay_test expects a TestContext, got {type(context).__name__}")

        replay = await self.setup_test(context.config)
        replay.metadata['replay_of'] = context.test_id

        try:
            for entry in context.injected_data:
                if entry.kind == "webhook":
                    await self.inject_webhook(replay, entry.record)
                else:
                    await self.inject_gex(replay, entry.record)
            await self.capture_state(replay)
        except BaseException:
            await self.teardown_test(replay)
            raise

        logger.info(
            f"[REPLAY] {context.test_id} -> {replay.test_id} "
            f"({len(context.injected_data)} records re-injected)"
        )
        return replay

    @contextlib.asynccontextmanager
    async def isolated_context(self, config: Optional[TestConfig] = None):
        """async with orchestrator.isolated_context(cfg) as ctx: ... (teardown guaranteed)"""
        context = await self.setup_test(config)
        try:
            yield context
        finally:
            await self.teardown_test(context)

    async def teardown_all(self) -> None:
        """Tear down every active context, newest first."""
        for context in reversed(self.active_contexts()):
            await self.teardown_test(context)
