"""
Tests for the HTTP system adapter against a local aiohttp service.
"""

import asyncio

import pytest
from aiohttp import test_utils, web

from harness_errors import HarnessEnvironmentError
from orchestration.context import TestConfig
from orchestration.http_system import http_system_factory
from orchestration.interceptors import BlockedRequestError
from orchestration.orchestrator import TestOrchestrator
from orchestration.snapshot import SystemSnapshot, VariantAssignment, ENRICHMENT_SERVICE
from synthetic.gex_generator import GEXGenerator
from synthetic.models import GEXRegime, GEXRegimeType
from synthetic.scenarios import generate_scenario_series
from synthetic.webhook_generator import WebhookGenerator


def _build_app(received, fail_state=False):
    """Minimal decision service exposing the ingestion and state endpoints."""
    state = SystemSnapshot()

    async def webhook(request):
        body = await request.json()
        received.append(('webhook', body, request.headers.get('X-Test-Environment')))
        signal_id = f"{body['symbol']}-{body['timeframe']}-{body['timestamp']}"
        state.webhook_processing_count += 1
        state.enrichment_call_count += 1
        state.routing_decisions.append(VariantAssignment(signal_id, "A", body['timestamp']))
        state.external_api_calls[ENRICHMENT_SERVICE] = state.enrichment_call_count
        return web.json_response({'status': 'accepted'})

    async def gex(request):
        received.append(('gex', await request.json(), request.headers.get('X-Test-Environment')))
        return web.json_response({'status': 'stored'})

    async def testing_state(request):
        if fail_state:
            return web.json_response({'error': 'boom'}, status=500)
        return web.json_response(state.to_dict())

    app = web.Application()
    app.router.add_post('/webhook', webhook)
    app.router.add_post('/gex', gex)
    app.router.add_get('/testing/state', testing_state)
    return app


def _run_against_service(scenario, fail_state=False):
    received = []

    async def main():
        server = test_utils.TestServer(_build_app(received, fail_state), host='127.0.0.1')
        await server.start_server()
        try:
            base_url = str(server.make_url('/')).rstrip('/')
            return await scenario(http_system_factory(base_url), received)
        finally:
            await server.close()

    return asyncio.run(main())


def test_webhooks_and_gex_reach_service(settings):
    records = WebhookGenerator().generate_batch(generate_scenario_series(3))
    gex = GEXGenerator().generate(GEXRegime(type=GEXRegimeType.NEGATIVE, symbol="SPY", spot_price=450.0))

    async def scenario(factory, received):
        orchestrator = TestOrchestrator(system_factory=factory, settings=settings, env_target={})
        async with orchestrator.isolated_context(TestConfig(environment='test-http')) as context:
            await orchestrator.inject_gex(context, gex)
            for record in records:
                await orchestrator.inject_webhook(context, record)
            return await orchestrator.capture_state(context), received

    snapshot, received = _run_against_service(scenario)

    assert [kind for kind, _, _ in received] == ['gex', 'webhook', 'webhook', 'webhook']
    assert all(header == 'test-http' for _, _, header in received)
    assert received[0][1]['regime'] == 'NEGATIVE'
    assert received[0][1]['symbol'] == 'SPY'
    assert received[1][1] == records[0].payload.to_dict()

    assert snapshot.webhook_processing_count == 3
    assert [d.signal_id for d in snapshot.routing_decisions] == [r.payload.signal_id for r in records]
    assert snapshot.external_api_calls == {ENRICHMENT_SERVICE: 3}


def test_state_endpoint_failure_is_environment_error(settings):
    async def scenario(factory, received):
        orchestrator = TestOrchestrator(system_factory=factory, settings=settings, env_target={})
        async with orchestrator.isolated_context(TestConfig()) as context:
            with pytest.raises(HarnessEnvironmentError):
                await orchestrator.capture_state(context)
            return context

    context = _run_against_service(scenario, fail_state=True)
    assert context.captured_snapshots == ()


def test_unreachable_service_is_environment_error(settings):
    orchestrator = TestOrchestrator(
        system_factory=http_system_factory('http://127.0.0.1:1', request_timeout=2.0),
        settings=settings,
        env_target={},
    )
    record = WebhookGenerator().generate(generate_scenario_series(1)[0])

    async def scenario():
        async with orchestrator.isolated_context(TestConfig()) as context:
            with pytest.raises(HarnessEnvironmentError):
                await orchestrator.inject_webhook(context, record)

    asyncio.run(scenario())


def test_non_allow_listed_service_is_blocked(settings):
    orchestrator = TestOrchestrator(
        system_factory=http_system_factory('https://decisions.example.com'),
        settings=settings,
        env_target={},
    )
    record = WebhookGenerator().generate(generate_scenario_series(1)[0])

    async def scenario():
        async with orchestrator.isolated_context(TestConfig()) as context:
            with pytest.raises(BlockedRequestError):
                await orchestrator.inject_webhook(context, record)
            return context

    context = asyncio.run(scenario())
    assert context.interceptor.installed is False
