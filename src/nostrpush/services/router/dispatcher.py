"""
Notification dispatcher: turn a matched event into Expo push messages.

For one event and one identity's tokens:

1. Build the title (``New note in plus code <code>``) and a body cut to
   ``body_max_chars`` code points.
2. Drop tokens that are not Expo push tokens, one log line each.
3. Send the remaining messages in provider-sized batches, one request per
   batch. A failed batch is logged and the next batch is still sent.
4. Log every ticket as ``push_sent`` or ``push_failed``.

There are no retries. Delivery failures never propagate to the caller;
they are summarised in the returned
[DispatchReport][nostrpush.services.router.dispatcher.DispatchReport].

See Also:
    [ExpoPushClient][nostrpush.utils.push.ExpoPushClient]: The transport.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from nostrpush.core.exceptions import PushDeliveryError
from nostrpush.core.logger import Logger
from nostrpush.models.constants import BODY_MAX_CHARS
from nostrpush.utils.push import (
    EXPO_MAX_BATCH,
    PushMessage,
    PushTicket,
    chunk_messages,
    is_expo_push_token,
)

from .utils import location_code_from_tags, truncate_chars


if TYPE_CHECKING:
    from nostrpush.models.event import Event


class PushSender(Protocol):
    """Anything that can send one batch of push messages."""

    async def send_chunk(self, messages: Sequence[PushMessage]) -> list[PushTicket]: ...


@dataclass(slots=True)
class DispatchReport:
    """Per-dispatch delivery counts.

    Attributes:
        sent: Tickets reported ``ok``.
        failed: Tickets reported ``error`` plus messages in failed batches.
        rejected: Tokens dropped before sending as syntactically invalid.
    """

    sent: int = 0
    failed: int = 0
    rejected: int = 0

    def merge(self, other: DispatchReport) -> None:
        self.sent += other.sent
        self.failed += other.failed
        self.rejected += other.rejected


class NotificationDispatcher:
    """Formats and sends push notifications for matched events."""

    def __init__(
        self,
        sender: PushSender,
        *,
        body_max_chars: int = BODY_MAX_CHARS,
        batch_size: int = EXPO_MAX_BATCH,
        logger: Logger | None = None,
    ) -> None:
        self._sender = sender
        self._body_max_chars = body_max_chars
        self._batch_size = batch_size
        self._logger = logger or Logger("router.dispatcher")

    def build_message(self, token: str, event: Event) -> PushMessage:
        """Build the push message for *event* addressed to *token*."""
        return PushMessage(
            to=token,
            title=f"New note in plus code {location_code_from_tags(event)}",
            body=truncate_chars(event.content, self._body_max_chars),
            data={
                "id": event.id,
                "kind": str(event.kind),
                "author": event.pubkey,
                "content": event.content,
                "createdAt": str(event.created_at),
                "tags": json.dumps([list(tag) for tag in event.tags]),
            },
        )

    async def dispatch(self, tokens: Sequence[str], event: Event) -> DispatchReport:
        """Send *event* to every valid token. Never raises on a failed batch.

        ``asyncio.CancelledError`` is not a delivery failure and propagates.
        """
        report = DispatchReport()
        messages: list[PushMessage] = []
        for token in tokens:
            if not is_expo_push_token(token):
                report.rejected += 1
                self._logger.warning("push_token_rejected", token=token, event_id=event.id)
                continue
            messages.append(self.build_message(token, event))

        for chunk in chunk_messages(messages, self._batch_size):
            try:
                tickets = await self._sender.send_chunk(chunk)
            except PushDeliveryError as e:
                report.failed += len(chunk)
                self._logger.error(
                    "push_chunk_failed",
                    event_id=event.id,
                    messages=len(chunk),
                    status=e.status,
                    error=str(e),
                )
                continue
            except Exception as e:  # Intentionally broad: per-batch error boundary
                report.failed += len(chunk)
                self._logger.error(
                    "push_chunk_failed",
                    event_id=event.id,
                    messages=len(chunk),
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            for message, ticket in zip(chunk, tickets, strict=False):
                if ticket.ok:
                    report.sent += 1
                    self._logger.info("push_sent", token=message.to, event_id=event.id)
                else:
                    report.failed += 1
                    self._logger.warning(
                        "push_failed",
                        token=message.to,
                        event_id=event.id,
                        error=ticket.message,
                        details=ticket.details,
                    )

        return report
