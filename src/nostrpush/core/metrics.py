"""
Prometheus metrics and the scrape endpoint.

Metric objects are module-level, so every service in the process shares
one registry. Services write through ``BaseService.set_gauge()`` and
``BaseService.inc_counter()``, which label by service name and do nothing
while metrics are disabled.

Series written by the router (``name`` label):

=========================  =======  ===========================================
name                       type     meaning
=========================  =======  ===========================================
consumer_state             gauge    0 disconnected, 1 connecting, 2 consuming
identities/filters/tokens  gauge    registry size
consecutive_failures       gauge    failed sessions in a row
last_session_end_timestamp gauge    unix time the last session ended cleanly
messages_<outcome>         counter  acked messages per outcome
messages_requeued          counter  nacked with requeue
messages_rejected          counter  nacked without requeue
push_sent/failed/rejected  counter  per-token push results
sessions_ended/failed      counter  consumer sessions
errors_<ExceptionName>     counter  failed sessions by exception type
=========================  =======  ===========================================

[MetricsServer][nostrpush.core.metrics.MetricsServer] serves ``/metrics``
and a ``/healthz`` probe over aiohttp.
"""

from __future__ import annotations

from collections.abc import Callable

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


class MetricsConfig(BaseModel):
    """Scrape endpoint settings. Use ``host: 0.0.0.0`` inside containers."""

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")
    health_path: str = Field(default="/healthz", description="Health probe path")


SERVICE_INFO = Info("service", "Service information and metadata")

SERVICE_GAUGE = Gauge(
    "service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)

# Decrypt + registry update for control messages, match + push fan-out for data
MESSAGE_DURATION_SECONDS = Histogram(
    "message_duration_seconds",
    "Duration of handling one queue message in seconds",
    ["service", "outcome"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)


class MetricsServer:
    """aiohttp app serving the Prometheus exposition and a health probe.

    *health_check* decides the probe answer: ``200 ok`` when it returns
    true, ``503 unavailable`` otherwise. Without one the probe always
    answers ``200``.
    """

    def __init__(
        self,
        config: MetricsConfig,
        health_check: Callable[[], bool] | None = None,
    ) -> None:
        self._config = config
        self._health_check = health_check
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Bind and serve. Does nothing when metrics are disabled.

        Raises:
            OSError: If the address cannot be bound.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)
        app.router.add_get(self._config.health_path, self._handle_health)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()
        await web.TCPSite(self._runner, self._config.host, self._config.port).start()

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})

    async def _handle_health(self, _request: web.Request) -> web.Response:
        if self._health_check is None or self._health_check():
            return web.Response(text="ok")
        return web.Response(status=503, text="unavailable")


async def start_metrics_server(
    config: MetricsConfig | None = None,
    health_check: Callable[[], bool] | None = None,
) -> MetricsServer:
    """Build and start a [MetricsServer][nostrpush.core.metrics.MetricsServer].

    The caller owns the result and must ``await server.stop()``.
    """
    server = MetricsServer(config or MetricsConfig(), health_check)
    await server.start()
    return server
