r"""nostrpush -- Nostr event to mobile push notification router.

Subscribers publish an encrypted control message (kind 10395) holding
their event filters and Expo push tokens. The router consumes the relay's
RabbitMQ event stream, keeps an in-memory registry of those subscriptions,
and pushes a notification to every subscriber whose filters match a new
event.

Imports flow strictly downward:

```text
              services         Router service
             /   |   \
          core  nips  utils    Lifecycle, NIP-04, relay/push/AMQP helpers
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O, depends only on stdlib.
    core: Base service, exceptions, logging, metrics, YAML loading.
    nips: NIP-04 encryption.
    utils: Key loading, relay access, Expo push client, AMQP topology.
    services: The [Router][nostrpush.services.router.Router] service.

Note:
    Top-level imports (``from nostrpush import Router``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrpush")

__all__ = [
    "BaseService",
    "ConfigT",
    "ControlPayload",
    "Event",
    "Filter",
    "Logger",
    "QueueMessage",
    "Router",
    "RouterConfig",
    "SubscriptionRegistry",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("nostrpush.core", "BaseService"),
    "ConfigT": ("nostrpush.core", "ConfigT"),
    "Logger": ("nostrpush.core", "Logger"),
    "ControlPayload": ("nostrpush.models", "ControlPayload"),
    "Event": ("nostrpush.models", "Event"),
    "Filter": ("nostrpush.models", "Filter"),
    "QueueMessage": ("nostrpush.models", "QueueMessage"),
    "Router": ("nostrpush.services", "Router"),
    "RouterConfig": ("nostrpush.services", "RouterConfig"),
    "SubscriptionRegistry": ("nostrpush.services.router", "SubscriptionRegistry"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrpush' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
