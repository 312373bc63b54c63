"""RabbitMQ topology helpers built on ``aio_pika``.

The relay ingest plugin publishes every accepted event to a durable fanout
exchange. Each consumer owns a durable named queue bound to that exchange
with an empty routing key, so messages survive broker restarts and a
consumer restart resumes from the unacknowledged backlog.

Examples:
    ```python
    connection = await aio_pika.connect(url)
    channel = await connection.channel()
    queue = await declare_topology(
        channel, exchange_name="nostrEvents", queue_name="nostr_events"
    )
    ```
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aio_pika import ExchangeType


if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractQueue


logger = logging.getLogger(__name__)


async def declare_topology(
    channel: AbstractChannel,
    *,
    exchange_name: str,
    queue_name: str,
    prefetch_count: int = 1,
) -> AbstractQueue:
    """Declare the fanout exchange and the consumer queue, and bind them.

    Declarations are idempotent on the broker side. Sets the channel QoS
    first so that at most *prefetch_count* unacknowledged messages are in
    flight.

    Returns:
        The declared queue, ready for ``consume()``.

    Raises:
        aio_pika.exceptions.AMQPError: If a declaration is refused (for
            example an existing exchange with a different type).
    """
    await channel.set_qos(prefetch_count=prefetch_count)
    exchange = await channel.declare_exchange(exchange_name, ExchangeType.FANOUT, durable=True)
    queue = await channel.declare_queue(queue_name, durable=True)
    await queue.bind(exchange, routing_key="")
    logger.debug(
        "topology_declared exchange=%s queue=%s prefetch=%s",
        exchange_name,
        queue_name,
        prefetch_count,
    )
    return queue
