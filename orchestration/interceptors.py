"""
Network Interceptors

Per-context guard for outbound HTTP made by the system under test. Requests
go through aiohttp sessions built by the interceptor; a TraceConfig hook
refuses every host outside the allow-list before a connection is opened and
counts calls per external service.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import aiohttp
from yarl import URL

from harness_errors import SafetyViolation

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_HOSTS = ("localhost", "127.0.0.1", "::1")

DEFAULT_SERVICE_HOSTS = {
    "api.twelvedata.com": "TwelveData",
    "api.alpaca.markets": "Alpaca",
    "api.marketdata.app": "MarketData",
    "api.broker.com": "Broker",
}

DEFAULT_BLOCKED_HOSTS = ("api.broker.com",)


class BlockedRequestError(SafetyViolation):
    """Raised when the system under test attempts a non-allow-listed request."""
    pass


@dataclass(frozen=True)
class BlockedRequest:
    method: str
    url: str
    service: Optional[str]
    reason: str


class NetworkInterceptor:
    """
    Allow-list guard for one test context.

    Args:
        allowed_hosts: Hosts requests may reach
        service_hosts: Host -> service name used for call counting
        blocked_hosts: Hosts refused even if allow-listed (broker)
    """

    def __init__(
        self,
        allowed_hosts: Iterable[str] = DEFAULT_ALLOWED_HOSTS,
        service_hosts: Optional[Dict[str, str]] = None,
        blocked_hosts: Iterable[str] = DEFAULT_BLOCKED_HOSTS,
    ):
        self.allowed_hosts = {host.lower() for host in allowed_hosts}
        self.service_hosts = {
            host.lower(): name
            for host, name in (DEFAULT_SERVICE_HOSTS if service_hosts is None else service_hosts).items()
        }
        self.blocked_hosts = {host.lower() for host in blocked_hosts}
        self.installed = True

        self._lock = threading.Lock()
        self._calls: Dict[str, int] = {}
        self._blocked: List[BlockedRequest] = []

    def service_for(self, host: Optional[str]) -> Optional[str]:
        if not host:
            return None
        return self.service_hosts.get(host.lower())

    def record_call(self, service: str, count: int = 1) -> None:
        """Count a call to an external service (mocked in-process or real)."""
        with self._lock:
            self._calls[service] = self._calls.get(service, 0) + count

    def check(self, url, method: str = "GET") -> None:
        """
        Validate one outbound request.

        Raises:
            BlockedRequestError: Host not allow-listed, explicitly blocked, or
                the interceptor was already removed
        """
        parsed = url if isinstance(url, URL) else URL(str(url))
        host = (parsed.host or "").lower()
        service = self.service_for(host)

        if service is not None:
            self.record_call(service)

        if not self.installed:
            reason = "interceptor removed"
        elif host in self.blocked_hosts:
            reason = "blocked host"
        elif host not in self.allowed_hosts:
            reason = "host not in allow-list"
        else:
            return

        blocked = BlockedRequest(method=method.upper(), url=str(parsed), service=service, reason=reason)
        with self._lock:
            self._blocked.append(blocked)

        logger.warning(f"[BLOCKED] {blocked.method} {blocked.url} ({reason})")
        raise BlockedRequestError(f"Outbound request blocked: {blocked.method} {blocked.url} ({reason})")

    async def _on_request_start(self, session, trace_config_ctx, params) -> None:
        self.check(params.url, params.method)

    def trace_config(self) -> aiohttp.TraceConfig:
        """TraceConfig that runs check() before every request."""
        trace_config = aiohttp.TraceConfig()
        trace_config.on_request_start.append(self._on_request_start)
        return trace_config

    def client_session(self, **kwargs) -> aiohttp.ClientSession:
        """aiohttp.ClientSession guarded by this interceptor."""
        trace_configs = list(kwargs.pop("trace_configs", None) or [])
        trace_configs.append(self.trace_config())
        return aiohttp.ClientSession(trace_configs=trace_configs, **kwargs)

    def call_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._calls)

    def blocked_requests(self) -> List[BlockedRequest]:
        with self._lock:
            return list(self._blocked)

    def clear(self) -> None:
        with self._lock:
            self._calls.clear()
            self._blocked.clear()

    def uninstall(self) -> None:
        """Remove the interceptor; sessions it built refuse all further requests."""
        if not self.installed:
            return
        self.installed = False
        self.clear()
        logger.debug("Network interceptor removed")
