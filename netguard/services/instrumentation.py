"""httpx transports that report every request to a ``SecurityMonitor``.

Compose them explicitly around your own client instead of patching a global::

    client = monitored_client(monitor, base_url="https://api.example.org")
"""

from time import perf_counter

import httpx

from netguard.services.security_monitor import SecurityMonitor


def _content_length(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("content-length", 0) or 0)
    except ValueError:
        return 0


class MonitoredTransport(httpx.BaseTransport):
    def __init__(self, monitor: SecurityMonitor, transport: httpx.BaseTransport | None = None):
        self.monitor = monitor
        self._transport = transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        start = perf_counter()
        try:
            response = self._transport.handle_request(request)
        except httpx.TransportError as exc:
            self.monitor.observe_transport_failure(url, exc)
            raise
        elapsed_ms = (perf_counter() - start) * 1000.0
        self.monitor.observe_response(url, response.status_code, elapsed_ms, _content_length(response))
        return response

    def close(self) -> None:
        self._transport.close()


class AsyncMonitoredTransport(httpx.AsyncBaseTransport):
    def __init__(self, monitor: SecurityMonitor, transport: httpx.AsyncBaseTransport | None = None):
        self.monitor = monitor
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        start = perf_counter()
        try:
            response = await self._transport.handle_async_request(request)
        except httpx.TransportError as exc:
            self.monitor.observe_transport_failure(url, exc)
            raise
        elapsed_ms = (perf_counter() - start) * 1000.0
        self.monitor.observe_response(url, response.status_code, elapsed_ms, _content_length(response))
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()


def monitored_client(monitor: SecurityMonitor, **kwargs) -> httpx.Client:
    transport = MonitoredTransport(monitor, kwargs.pop("transport", None))
    return httpx.Client(transport=transport, **kwargs)


def async_monitored_client(monitor: SecurityMonitor, **kwargs) -> httpx.AsyncClient:
    transport = AsyncMonitoredTransport(monitor, kwargs.pop("transport", None))
    return httpx.AsyncClient(transport=transport, **kwargs)
