"""Long-running nostrpush services.

Services are the top layer of the package DAG, depending on
[nostrpush.core][nostrpush.core], [nostrpush.nips][nostrpush.nips],
[nostrpush.utils][nostrpush.utils], and [nostrpush.models][nostrpush.models].
Each service extends [BaseService][nostrpush.core.base_service.BaseService]
and implements ``async def run()`` for one session of work.

Attributes:
    Router: RabbitMQ consumer that maintains the subscription registry from
        encrypted control messages and sends Expo push notifications for
        matching events.
"""

from .router import Router, RouterConfig


__all__ = [
    "Router",
    "RouterConfig",
]
