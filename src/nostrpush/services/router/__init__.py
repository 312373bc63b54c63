"""Router service package.

Re-exports all public symbols::

    from nostrpush.services.router import Router, RouterConfig
"""

from .configs import BootstrapConfig, PushConfig, QueueConfig, RouterConfig
from .dispatcher import DispatchReport, NotificationDispatcher
from .gate import ControlMessageGate
from .registry import FilterIdentityPair, SubscriptionRegistry, parse_control_payload
from .routing import route
from .service import Router


__all__ = [
    "BootstrapConfig",
    "ControlMessageGate",
    "DispatchReport",
    "FilterIdentityPair",
    "NotificationDispatcher",
    "PushConfig",
    "QueueConfig",
    "Router",
    "RouterConfig",
    "SubscriptionRegistry",
    "parse_control_payload",
    "route",
]
