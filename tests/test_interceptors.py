"""
Tests for the outbound network interceptor, including a real aiohttp round trip.
"""

import asyncio
import unittest

import aiohttp
import pytest
from aiohttp import test_utils, web

from harness_errors import SafetyViolation
from orchestration.interceptors import NetworkInterceptor, BlockedRequestError


class TestInterceptorChecks(unittest.TestCase):

    def setUp(self):
        self.interceptor = NetworkInterceptor()

    def test_loopback_allowed(self):
        self.interceptor.check("http://127.0.0.1:8080/webhook", "POST")
        self.interceptor.check("http://localhost/testing/state")
        self.assertEqual(self.interceptor.blocked_requests(), [])

    def test_broker_blocked_and_counted(self):
        with self.assertRaises(BlockedRequestError):
            self.interceptor.check("https://api.broker.com/v1/orders", "post")

        blocked = self.interceptor.blocked_requests()
        self.assertEqual(len(blocked), 1)
        self.assertEqual(blocked[0].method, "POST")
        self.assertEqual(blocked[0].service, "Broker")
        self.assertEqual(blocked[0].reason, "blocked host")
        self.assertEqual(self.interceptor.call_counts(), {'Broker': 1})

    def test_unknown_host_blocked(self):
        with self.assertRaises(BlockedRequestError):
            self.interceptor.check("https://example.com/")
        self.assertEqual(self.interceptor.blocked_requests()[0].reason, "host not in allow-list")
        self.assertEqual(self.interceptor.call_counts(), {})

    def test_blocked_error_is_safety_violation(self):
        self.assertTrue(issubclass(BlockedRequestError, SafetyViolation))

    def test_blocked_host_wins_over_allow_list(self):
        interceptor = NetworkInterceptor(allowed_hosts=("api.broker.com",))
        with self.assertRaises(BlockedRequestError):
            interceptor.check("https://api.broker.com/")

    def test_custom_service_hosts(self):
        interceptor = NetworkInterceptor(
            allowed_hosts=("mock.local",),
            service_hosts={"mock.local": "TwelveData"},
            blocked_hosts=(),
        )
        interceptor.check("http://mock.local/quote")
        interceptor.check("http://MOCK.local/quote")
        self.assertEqual(interceptor.call_counts(), {'TwelveData': 2})

    def test_record_call_and_clear(self):
        self.interceptor.record_call("TwelveData")
        self.interceptor.record_call("TwelveData", count=2)
        self.assertEqual(self.interceptor.call_counts(), {'TwelveData': 3})
        self.interceptor.clear()
        self.assertEqual(self.interceptor.call_counts(), {})

    def test_uninstalled_interceptor_refuses_everything(self):
        self.interceptor.uninstall()
        self.assertFalse(self.interceptor.installed)
        with self.assertRaises(BlockedRequestError):
            self.interceptor.check("http://127.0.0.1/webhook")
        self.interceptor.uninstall()


async def _ping(request):
    return web.json_response({'ok': True, 'path': request.path})


def test_client_session_round_trip_and_block():
    interceptor = NetworkInterceptor()

    async def scenario():
        app = web.Application()
        app.router.add_get('/ping', _ping)
        server = test_utils.TestServer(app, host='127.0.0.1')
        await server.start_server()
        try:
            async with interceptor.client_session() as session:
                async with session.get(server.make_url('/ping')) as response:
                    body = await response.json()
                assert body == {'ok': True, 'path': '/ping'}

                with pytest.raises(BlockedRequestError):
                    await session.post('https://api.broker.com/v1/orders', json={'qty': 1})
        finally:
            await server.close()

    asyncio.run(scenario())

    assert interceptor.call_counts() == {'Broker': 1}
    assert [b.url for b in interceptor.blocked_requests()] == ['https://api.broker.com/v1/orders']


def test_trace_configs_are_merged():
    interceptor = NetworkInterceptor()
    seen = []

    async def on_start(session, ctx, params):
        seen.append(str(params.url))

    async def scenario():
        extra = aiohttp.TraceConfig()
        extra.on_request_start.append(on_start)
        async with interceptor.client_session(trace_configs=[extra]) as session:
            with pytest.raises(BlockedRequestError):
                await session.get('https://example.com/')

    asyncio.run(scenario())
    assert seen == ['https://example.com/']
