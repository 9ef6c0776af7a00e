"""
HTTP System Adapter

Drives an out-of-process decision system over HTTP:
- POST {base_url}/webhook with the webhook payload
- POST {base_url}/gex with the GEX payload
- GET  {base_url}/testing/state returning SystemSnapshot.to_dict() as JSON

Requests go through the context's network interceptor, so the system's
base URL must be on the allow-list (loopback by default).
"""

import logging
from typing import Dict, Any, Optional

import aiohttp

from harness_errors import HarnessEnvironmentError
from orchestration.environment import TestEnvironment
from orchestration.snapshot import SystemSnapshot
from orchestration.system_under_test import SystemUnderTest, SystemFactory
from synthetic.models import SyntheticGEX, SyntheticWebhook

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"
GEX_PATH = "/gex"
STATE_PATH = "/testing/state"


class HttpSystemUnderTest(SystemUnderTest):
    """
    SystemUnderTest backed by a running HTTP service.

    Args:
        base_url: Service root, e.g. 'http://127.0.0.1:8080'
        environment: Context environment (interceptor and credentials)
        request_timeout: Per-request timeout in seconds
    """

    def __init__(self, base_url: str, environment: TestEnvironment, request_timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.environment = environment
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            headers = {"X-Test-Environment": self.environment.name}
            interceptor = self.environment.interceptor
            if interceptor is not None:
                self._session = interceptor.client_session(timeout=timeout, headers=headers)
            else:
                self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        return self._session

    async def _post(self, path: str, body: Dict[str, Any]) -> None:
        session = self._get_session()
        try:
            async with session.post(f"{self.base_url}{path}", json=body) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise HarnessEnvironmentError(
                        f"POST {path} failed with HTTP {response.status}: {text[:200]}"
                    )
        except aiohttp.ClientError as e:
            raise HarnessEnvironmentError(f"POST {path} failed: {e}") from e

    async def ingest_webhook(self, record: SyntheticWebhook) -> None:
        await self._post(WEBHOOK_PATH, record.payload.to_dict())

    async def ingest_gex(self, record: SyntheticGEX) -> None:
        body = dict(record.data.to_dict(), symbol=record.symbol, regime=record.regime.value)
        await self._post(GEX_PATH, body)

    async def query_state(self) -> SystemSnapshot:
        session = self._get_session()
        try:
            async with session.get(f"{self.base_url}{STATE_PATH}") as response:
                if response.status != 200:
                    raise HarnessEnvironmentError(f"GET {STATE_PATH} returned HTTP {response.status}")
                data = await response.json()
        except aiohttp.ClientError as e:
            raise HarnessEnvironmentError(f"GET {STATE_PATH} failed: {e}") from e

        try:
            return SystemSnapshot.from_dict(data)
        except (TypeError, KeyError, ValueError) as e:
            raise HarnessEnvironmentError(f"Malformed state payload from {STATE_PATH}: {e}") from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def http_system_factory(base_url: str, request_timeout: float = 10.0) -> SystemFactory:
    """SystemFactory creating an HttpSystemUnderTest per context."""
    def factory(environment: TestEnvironment) -> HttpSystemUnderTest:
        logger.debug(f"Creating HTTP system adapter for {base_url}")
        return HttpSystemUnderTest(base_url, environment, request_timeout=request_timeout)
    return factory
