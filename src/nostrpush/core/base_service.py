"""
Service lifecycle: configuration, graceful shutdown and the reconnect loop.

A service subclasses ``BaseService[ConfigT]``, names itself with
``SERVICE_NAME``, points ``CONFIG_CLASS`` at its pydantic model and
implements [run()][nostrpush.core.base_service.BaseService.run]. One
``run()`` call is one **session**; for the queue consumer that is one broker
connection, ending when the connection closes or shutdown is requested.

[run_forever()][nostrpush.core.base_service.BaseService.run_forever] starts
sessions back to back::

    session -> wait interval -> session -> wait interval -> ...

The wait is a fixed ``interval`` (no backoff, no jitter) and is cut short by
[request_shutdown()][nostrpush.core.base_service.BaseService.request_shutdown].
A session that raises is logged and counted; with a non-zero
``max_consecutive_failures`` the loop gives up after that many failed
sessions in a row.

Examples:
    ```python
    async with Router.from_yaml("config/services/router.yaml") as router:
        await router.run_forever()
    ```
"""

import asyncio
import time
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from nostrpush.models.constants import ServiceName

from .logger import Logger
from .metrics import SERVICE_COUNTER, SERVICE_GAUGE, SERVICE_INFO, MetricsConfig
from .yaml import load_yaml


class BaseServiceConfig(BaseModel):
    """Settings every long-running service shares."""

    interval: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait before starting the next session (reconnect delay)",
    )
    max_consecutive_failures: int = Field(
        default=0,
        ge=0,
        description="Give up after this many failed sessions in a row (0 = never)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Base class for nostrpush services.

    Attributes:
        SERVICE_NAME: Identifier used as logger name and metric label.
        CONFIG_CLASS: Model built by ``from_dict``/``from_yaml`` and by the
            constructor when no config is given.
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT | None = None) -> None:
        if config is None:
            config = cast("ConfigT", self.CONFIG_CLASS())
        self._config: ConfigT = config
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        return self._config

    @abstractmethod
    async def run(self) -> None:
        """Run one session. Raising marks the session as failed."""

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Stop after the current session. Safe to call from a signal handler."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        return not self._shutdown_event.is_set()

    def is_healthy(self) -> bool:
        """Answer for the health probe. Subclasses narrow it."""
        return self.is_running

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Sleep up to *timeout* seconds; return ``True`` if shutdown cut it short."""
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    # -------------------------------------------------------------------------
    # Reconnect loop
    # -------------------------------------------------------------------------

    async def run_forever(self) -> None:
        """Start sessions until shutdown or the failure limit.

        ``CancelledError``, ``KeyboardInterrupt`` and ``SystemExit`` are not
        session failures; they propagate at once.
        """
        interval = self._config.interval
        limit = self._config.max_consecutive_failures
        if self._config.metrics.enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})
        self._logger.info("service_loop_started", interval=interval, failure_limit=limit)

        failures = 0
        while self.is_running:
            if await self._run_session():
                failures = 0
            else:
                failures += 1
                self.set_gauge("consecutive_failures", failures)
                if 0 < limit <= failures:
                    self._logger.critical("failure_limit_reached", failures=failures, limit=limit)
                    break

            if not self.is_running:
                break
            self._logger.info("reconnect_scheduled", delay_s=interval, failures=failures)
            if await self.wait(interval):
                break

        self._logger.info("service_loop_stopped")

    async def _run_session(self) -> bool:
        started = time.monotonic()
        try:
            await self.run()
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:  # Intentionally broad: top-level error boundary for run_forever
            self.inc_counter("sessions_failed")
            self.inc_counter(f"errors_{type(e).__name__}")
            self._logger.error(
                "session_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_s=round(time.monotonic() - started, 3),
            )
            return False

        self.inc_counter("sessions_ended")
        self.set_gauge("consecutive_failures", 0)
        self.set_gauge("last_session_end_timestamp", time.time())
        self._logger.info("session_ended", duration_s=round(time.monotonic() - started, 3))
        return True

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Validate *data* against ``CONFIG_CLASS`` and build the service.

        Raises:
            pydantic.ValidationError: On invalid settings or a missing
                required secret.
        """
        return cls(config=cast("ConfigT", cls.CONFIG_CLASS(**data)), **kwargs)

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Metrics (no-ops unless metrics are enabled)
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        if self._config.metrics.enabled:
            SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        if self._config.metrics.enabled:
            SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
