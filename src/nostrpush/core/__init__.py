"""Service plumbing shared by every nostrpush service.

Depends only on ``nostrpush.models``; ``nostrpush.services`` builds on it.

* [BaseService][nostrpush.core.base_service.BaseService]: lifecycle,
  reconnect loop, shutdown, metric helpers.
* [Logger][nostrpush.core.logger.Logger]: event-name logging with
  key=value context and secret redaction.
* [MetricsServer][nostrpush.core.metrics.MetricsServer]: ``/metrics`` and
  ``/healthz`` over aiohttp.
* [load_yaml][nostrpush.core.yaml.load_yaml]: config file loading.

Errors live in [nostrpush.core.exceptions][].
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    MESSAGE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .yaml import load_yaml


__all__ = [
    "MESSAGE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
