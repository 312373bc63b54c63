"""Router service: RabbitMQ consumer that turns Nostr events into push notifications.

Consumes the durable queue bound to the relay's fanout exchange and handles
one message at a time:

* **Control messages** (kind [APP_DATA][nostrpush.models.constants.EventKind]):
  [ControlMessageGate][nostrpush.services.router.gate.ControlMessageGate]
  address check, NIP-04 decryption, then
  [SubscriptionRegistry.apply_control_message()][nostrpush.services.router.registry.SubscriptionRegistry.apply_control_message].
* **Data events** (every other kind): [route()][nostrpush.services.router.routing.route]
  against all registered filters, then
  [NotificationDispatcher.dispatch()][nostrpush.services.router.dispatcher.NotificationDispatcher.dispatch]
  to each matching identity's tokens.

Every handled message is acknowledged, including the ones dropped as not
addressed, undecryptable or unparsable. An unexpected exception while
handling a message nacks it with requeue and consumption continues.

Consumer states (published as the ``consumer_state`` gauge)::

    disconnected -> connecting -> consuming -> disconnected

One [run()][nostrpush.services.router.Router.run] call is one connection
session. It raises
[QueueConnectionError][nostrpush.core.exceptions.QueueConnectionError] when
the broker connection closes, and
[run_forever()][nostrpush.core.base_service.BaseService.run_forever]
reconnects after ``interval`` seconds until shutdown is requested. On
shutdown the consumer is cancelled and the in-flight message, if any, is
allowed to finish before the connection is closed.

See Also:
    [RouterConfig][nostrpush.services.router.RouterConfig]: Configuration
        model for queue, bootstrap and push settings.
    [BaseService][nostrpush.core.base_service.BaseService]: Abstract
        base class providing ``run_forever()`` and ``from_yaml()``.

Examples:
    ```python
    from nostrpush.services import Router

    router = Router.from_yaml("config/services/router.yaml")

    async with router:
        await router.run_forever()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar

import aio_pika
from nostr_sdk import Filter, Kind

from nostrpush.core.base_service import BaseService
from nostrpush.core.exceptions import DecryptionError, QueueConnectionError
from nostrpush.core.logger import Logger
from nostrpush.core.metrics import MESSAGE_DURATION_SECONDS
from nostrpush.models.constants import (
    CONSUMER_STATE_VALUES,
    ConsumerState,
    EventKind,
    MessageOutcome,
    ServiceName,
)
from nostrpush.models.queue_message import QueueMessage
from nostrpush.utils.amqp import declare_topology
from nostrpush.utils.protocol import fetch_stored_events
from nostrpush.utils.push import ExpoPushClient

from .configs import RouterConfig
from .dispatcher import DispatchReport, NotificationDispatcher
from .gate import ControlMessageGate
from .registry import SubscriptionRegistry
from .routing import route


if TYPE_CHECKING:
    from types import TracebackType

    from aio_pika.abc import AbstractIncomingMessage

    from nostrpush.models.event import Event

    from .dispatcher import PushSender


class Router(BaseService[RouterConfig]):
    """Nostr event to Expo push notification router.

    Lifecycle:
        1. ``__aenter__``: open the push client, replay stored control
           messages from the relay (if enabled).
        2. ``run()``: one consumer session against RabbitMQ.
        3. ``__aexit__``: close the push client.

    Attributes:
        registry: The in-memory [SubscriptionRegistry][nostrpush.services.router.registry.SubscriptionRegistry].
        state: Current [ConsumerState][nostrpush.models.constants.ConsumerState].
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.ROUTER
    CONFIG_CLASS: ClassVar[type[RouterConfig]] = RouterConfig

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        push_sender: PushSender | None = None,
    ) -> None:
        super().__init__(config)
        self._config: RouterConfig
        push = self._config.push

        self._push_client: ExpoPushClient | None = None
        if push_sender is None:
            self._push_client = ExpoPushClient(
                push.access_token.get_secret_value(),
                api_url=push.api_url,
                timeout=push.timeout,
                max_response_size=push.max_response_size,
            )
            push_sender = self._push_client

        self._registry = SubscriptionRegistry(Logger(f"{self.SERVICE_NAME}.registry"))
        self._gate = ControlMessageGate(self._config.keys, Logger(f"{self.SERVICE_NAME}.gate"))
        self._dispatcher = NotificationDispatcher(
            push_sender,
            body_max_chars=push.body_max_chars,
            logger=Logger(f"{self.SERVICE_NAME}.dispatcher"),
        )
        self._state = ConsumerState.DISCONNECTED
        self._handling = asyncio.Lock()

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def state(self) -> ConsumerState:
        return self._state

    def is_healthy(self) -> bool:
        return self.is_running and self._state is ConsumerState.CONSUMING

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Router:
        await super().__aenter__()
        if self._push_client is not None:
            await self._push_client.__aenter__()
        self.set_gauge("consumer_state", CONSUMER_STATE_VALUES[self._state])
        self._logger.info("router_identity", pubkey=self._gate.public_key)

        if self._config.bootstrap.enabled:
            await self.bootstrap()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._push_client is not None:
            await self._push_client.close()
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    async def bootstrap(self) -> int:
        """Rebuild the registry from control messages stored on the relay.

        Fetches every kind ``APP_DATA`` event until end-of-stored-events or
        the configured timeout, oldest first, and feeds each through the
        same path as a live control message. Any fetch failure is logged and
        the service starts with whatever the registry already holds.

        Returns:
            Number of control messages applied.
        """
        cfg = self._config.bootstrap
        self._logger.info("bootstrap_started", relay=cfg.relay_url, timeout_s=cfg.timeout)

        try:
            events = await fetch_stored_events(
                cfg.relay_url,
                Filter().kind(Kind(int(EventKind.APP_DATA))),
                timeout=cfg.timeout,
                keys=self._config.keys,
            )
        except Exception as e:  # Intentionally broad: nostr-sdk FFI can raise arbitrary types
            self._logger.warning(
                "bootstrap_failed",
                relay=cfg.relay_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0

        applied = 0
        for event in sorted(events, key=lambda e: e.created_at):
            if event.kind != EventKind.APP_DATA:
                continue
            if self._handle_control(event) is MessageOutcome.CONTROL_APPLIED:
                applied += 1

        self._logger.info(
            "bootstrap_completed",
            fetched=len(events),
            applied=applied,
            identities=self._registry.identity_count,
            filters=self._registry.filter_count,
        )
        return applied

    # -------------------------------------------------------------------------
    # Consumer session
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """Run one consumer session until the connection closes or shutdown.

        Raises:
            QueueConnectionError: If the broker connection closes while
                consuming and no shutdown was requested.
            aio_pika.exceptions.AMQPError: If connecting or declaring fails.
            OSError: If the broker is unreachable.
        """
        queue_cfg = self._config.queue
        self._set_state(ConsumerState.CONNECTING)
        connection: aio_pika.abc.AbstractConnection | None = None

        try:
            connection = await aio_pika.connect(queue_cfg.url)
            closed: asyncio.Future[BaseException | None] = (
                asyncio.get_running_loop().create_future()
            )
            connection.close_callbacks.add(partial(self._on_connection_closed, closed))

            channel = await connection.channel()
            queue = await declare_topology(
                channel,
                exchange_name=queue_cfg.exchange,
                queue_name=queue_cfg.name,
                prefetch_count=queue_cfg.prefetch_count,
            )
            consumer_tag = await queue.consume(self._on_message, no_ack=False)

            self._set_state(ConsumerState.CONSUMING)
            self._logger.info(
                "consumer_started",
                queue=queue_cfg.name,
                exchange=queue_cfg.exchange,
                identities=self._registry.identity_count,
                filters=self._registry.filter_count,
            )

            shutdown = asyncio.ensure_future(self._shutdown_event.wait())
            try:
                await asyncio.wait({closed, shutdown}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                shutdown.cancel()

            if closed.done():
                if self.is_running:
                    raise QueueConnectionError(f"AMQP connection closed: {closed.result()}")
            else:
                await queue.cancel(consumer_tag)
                # Wait for the in-flight handler, if any, to ack or nack
                async with self._handling:
                    pass
            self._logger.info("consumer_stopped", queue=queue_cfg.name)

        finally:
            if connection is not None and not connection.is_closed:
                with contextlib.suppress(Exception):
                    await connection.close()
            self._set_state(ConsumerState.DISCONNECTED)

    @staticmethod
    def _on_connection_closed(
        closed: asyncio.Future[BaseException | None],
        _sender: Any,
        exc: BaseException | None = None,
        *_args: Any,
    ) -> None:
        if not closed.done():
            closed.set_result(exc)

    def _set_state(self, state: ConsumerState) -> None:
        if state is self._state:
            return
        self._logger.info("state_changed", previous=self._state, current=state)
        self._state = state
        self.set_gauge("consumer_state", CONSUMER_STATE_VALUES[state])

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        """Handle one delivery and settle it (ack, or nack on failure)."""
        async with self._handling:
            start = time.monotonic()
            try:
                outcome = await self.handle_body(message.body)
            except asyncio.CancelledError:
                raise
            except Exception as e:  # Intentionally broad: per-message error boundary
                requeue = self._config.queue.requeue_redelivered or not message.redelivered
                self._logger.error(
                    "message_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    delivery_tag=message.delivery_tag,
                    redelivered=message.redelivered,
                    requeue=requeue,
                )
                await message.nack(requeue=requeue)
                self.inc_counter("messages_requeued" if requeue else "messages_rejected")
                return

            await message.ack()
            self.inc_counter(f"messages_{outcome}")
            if self._config.metrics.enabled:
                MESSAGE_DURATION_SECONDS.labels(
                    service=self.SERVICE_NAME, outcome=outcome
                ).observe(time.monotonic() - start)

    # -------------------------------------------------------------------------
    # Message handling
    # -------------------------------------------------------------------------

    async def handle_body(self, body: bytes | str) -> MessageOutcome:
        """Process one raw queue body and report how it was handled.

        Raises:
            ValueError: If the body is not a valid queue message.
            TypeError: If the wrapped event has the wrong JSON shape.
        """
        message = QueueMessage.from_json(body)
        event = message.event

        if event.kind == EventKind.APP_DATA:
            self._logger.debug(
                "control_message_received", event_id=event.id, author=event.pubkey
            )
            return self._handle_control(event)

        return await self._handle_data(event, message.source_info)

    def _handle_control(self, event: Event) -> MessageOutcome:
        if not self._gate.is_addressed_to_me(event):
            return MessageOutcome.NOT_ADDRESSED

        try:
            plaintext = self._gate.decrypt(event)
        except DecryptionError as e:
            self._logger.warning(
                "decryption_failed", event_id=event.id, author=event.pubkey, error=str(e)
            )
            return MessageOutcome.DECRYPTION_FAILED

        applied = self._registry.apply_control_message(event.pubkey, plaintext)
        self._publish_registry_gauges()
        return MessageOutcome.CONTROL_APPLIED if applied else MessageOutcome.CONTROL_REJECTED

    async def _handle_data(self, event: Event, source_info: str) -> MessageOutcome:
        identities = route(event, self._registry)
        if not identities:
            self._logger.debug("event_unmatched", event_id=event.id, kind=event.kind)
            return MessageOutcome.UNMATCHED

        report = DispatchReport()
        for identity in identities:
            tokens = self._registry.tokens_for(identity)
            if not tokens:
                self._logger.debug("push_skipped_no_tokens", identity=identity, event_id=event.id)
                continue
            report.merge(await self._dispatcher.dispatch(tokens, event))

        self.inc_counter("push_sent", report.sent)
        self.inc_counter("push_failed", report.failed)
        self.inc_counter("push_rejected", report.rejected)
        self._logger.info(
            "event_routed",
            event_id=event.id,
            kind=event.kind,
            source=source_info,
            identities=len(identities),
            sent=report.sent,
            failed=report.failed,
            rejected=report.rejected,
        )
        return MessageOutcome.ROUTED

    def _publish_registry_gauges(self) -> None:
        self.set_gauge("identities", self._registry.identity_count)
        self.set_gauge("filters", self._registry.filter_count)
        self.set_gauge("tokens", self._registry.token_count)
