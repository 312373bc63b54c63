"""RabbitMQ message wrapper published by the relay ingest plugin.

Body shape::

    {"event": {...}, "type": "new", "receivedAt": 1700000000, "sourceInfo": "127.0.0.1"}

Only ``event`` is required; the other fields are carried for logging.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ._validation import validate_mapping
from .event import Event


@dataclass(frozen=True, slots=True)
class QueueMessage:
    """A queue delivery carrying one Nostr event.

    Attributes:
        event: The wrapped [Event][nostrpush.models.event.Event].
        type: Ingest type reported by the relay (e.g. ``"new"``).
        received_at: Relay receive time, as sent.
        source_info: Free-form origin description (usually the client IP).
    """

    event: Event
    type: str = ""
    received_at: float | None = None
    source_info: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> QueueMessage:
        """Build a wrapper from its decoded JSON object.

        Raises:
            TypeError: If the wrapper or event has the wrong JSON shape.
            ValueError: If the event is missing or invalid.
        """
        data = validate_mapping(data, "queue message")
        if "event" not in data:
            raise ValueError("queue message is missing field 'event'")
        received_at = data.get("receivedAt")
        if isinstance(received_at, bool) or not isinstance(received_at, (int, float)):
            received_at = None
        return cls(
            event=Event.from_dict(data["event"]),
            type=str(data.get("type") or ""),
            received_at=received_at,
            source_info=str(data.get("sourceInfo") or ""),
        )

    @classmethod
    def from_json(cls, body: bytes | str) -> QueueMessage:
        """Decode a raw AMQP body (UTF-8 JSON).

        Raises:
            ValueError: On undecodable bytes, invalid JSON, or invalid fields.
            TypeError: If a field has the wrong JSON type.
        """
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        return cls.from_dict(json.loads(body))
