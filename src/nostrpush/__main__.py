"""Command line runner: ``python -m nostrpush <service>``.

Loads the service's YAML config (secrets come from the environment), starts
the optional metrics server and runs the service until a signal arrives.

Shutdown on SIGINT/SIGTERM:

1. the first signal requests a graceful shutdown and arms a timer of
   ``shutdown_grace`` seconds;
2. when the timer fires, or on a second signal, the service task is
   cancelled; unacknowledged queue messages are redelivered by the broker.

Exit codes: ``0`` after any shutdown, ``1`` on invalid configuration or a
startup failure, ``130`` on ``KeyboardInterrupt``.

Examples:
    ```bash
    python -m nostrpush router
    python -m nostrpush router --log-level DEBUG --no-bootstrap
    python -m nostrpush router --config /etc/nostrpush/router.yaml
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, NamedTuple

import yaml
from nostr_sdk import NostrSdkError
from pydantic import ValidationError

from nostrpush.core import start_metrics_server
from nostrpush.core.base_service import BaseService
from nostrpush.core.exceptions import ConfigurationError
from nostrpush.core.logger import Logger, StructuredFormatter
from nostrpush.core.yaml import load_yaml
from nostrpush.models.constants import ServiceName
from nostrpush.services.router import Router


CONFIG_BASE = Path("config")
HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ServiceEntry(NamedTuple):
    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.ROUTER: ServiceEntry(Router, CONFIG_BASE / "services" / "router.yaml"),
}

logger = Logger("cli")


class _ShutdownController:
    """Signal handler implementing the two-step shutdown."""

    def __init__(self, service: BaseService[Any], grace: float) -> None:
        self._service = service
        self._grace = grace
        self._task: asyncio.Task[None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._loop = asyncio.get_running_loop()

    def install(self) -> None:
        for sig in HANDLED_SIGNALS:
            self._loop.add_signal_handler(sig, self._on_signal, sig)

    def remove(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        for sig in HANDLED_SIGNALS:
            self._loop.remove_signal_handler(sig)

    async def run(self) -> None:
        """Run the service loop; a cancellation from the grace timer is a clean stop."""
        self._task = asyncio.ensure_future(self._service.run_forever())
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            logger.warning("shutdown_grace_expired", service=self._service.SERVICE_NAME)

    def _on_signal(self, sig: signal.Signals) -> None:
        if not self._service.is_running:
            logger.warning("shutdown_forced", signal=sig.name)
            self._cancel()
            return
        logger.info("shutdown_signal", signal=sig.name, grace_s=self._grace)
        self._service.request_shutdown()
        self._timer = self._loop.call_later(self._grace, self._cancel)

    def _cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()


async def run_service(
    service_name: str,
    service_class: type[BaseService[Any]],
    service_dict: dict[str, Any],
) -> int:
    """Build *service_class* from *service_dict* and run it until shutdown."""
    try:
        service = service_class.from_dict(service_dict)
    except (ValidationError, NostrSdkError) as e:
        logger.error("config_invalid", service=service_name, error=str(e))
        return 1

    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config, service.is_healthy)
    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
            health_path=metrics_config.health_path,
        )

    grace = float(getattr(service.config, "shutdown_grace", 0.0))
    controller = _ShutdownController(service, grace)
    controller.install()
    try:
        async with service:
            await controller.run()
    except Exception as e:  # Intentionally broad: CLI error boundary
        logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        controller.remove()
        await metrics_server.stop()
    return 0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nostrpush",
        description="Route Nostr events to Expo push notifications",
    )
    parser.add_argument("service", choices=list(SERVICE_REGISTRY), help="Service to run")
    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/services/<service>.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--no-bootstrap",
        action="store_true",
        help="Skip replaying stored control messages from the relay at startup",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Send every record to stderr through ``StructuredFormatter``."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))
    # aiormq logs every frame at DEBUG
    logging.getLogger("aiormq").setLevel(max(logging.root.level, logging.INFO))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


async def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    entry = SERVICE_REGISTRY[args.service]
    config_path = args.config or entry.config_path
    try:
        service_dict = _load_yaml_dict(config_path)
    except (ConfigurationError, yaml.YAMLError, OSError) as e:
        logger.error("config_invalid", service=args.service, path=str(config_path), error=str(e))
        return 1
    if args.no_bootstrap:
        service_dict.setdefault("bootstrap", {})["enabled"] = False

    try:
        return await run_service(
            service_name=args.service,
            service_class=entry.cls,
            service_dict=service_dict,
        )
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
