"""
Immutable Nostr event model.

Events arrive as JSON inside queue messages (or are converted from
``nostr_sdk.Event`` during bootstrap) and are read-only from the router's
point of view. Validation is eager: a structurally invalid event is
rejected at construction so no later stage has to re-check field types.

Signatures are not verified here; the upstream relay feeding the queue
has already accepted the event.

See Also:
    [Filter][nostrpush.models.filter.Filter]: Predicate evaluated against
        events by the router.
    [QueueMessage][nostrpush.models.queue_message.QueueMessage]: Wrapper that
        carries an event through RabbitMQ.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ._validation import (
    validate_int,
    validate_mapping,
    validate_str_list,
    validate_str_no_null,
    validate_timestamp,
)
from .constants import EVENT_KIND_MAX


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable Nostr event (NIP-01).

    Attributes:
        id: Event id as 64-char hex.
        pubkey: Author identity (hex public key).
        created_at: Unix timestamp in seconds.
        kind: Event kind.
        tags: Tags as a tuple of string tuples, order preserved.
        content: Raw content (ciphertext for control messages).
        sig: Schnorr signature hex.

    Examples:
        ```python
        event = Event.from_dict({
            "id": "ab..", "pubkey": "cd..", "created_at": 1700000000,
            "kind": 1, "tags": [["l", "8FVC9G8F+6X"]], "content": "hi", "sig": "ef..",
        })
        event.tag_values("l")  # ("8FVC9G8F+6X",)
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_str_no_null(self.id, "id")
        validate_str_no_null(self.pubkey, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        validate_int(self.kind, "kind")
        if not 0 <= self.kind <= EVENT_KIND_MAX:
            raise ValueError(f"kind must be between 0 and {EVENT_KIND_MAX}, got {self.kind}")
        validate_str_no_null(self.content, "content")
        validate_str_no_null(self.sig, "sig")

    @classmethod
    def from_dict(cls, data: Any) -> Event:
        """Build an event from its NIP-01 JSON object.

        Raises:
            TypeError: If a field has the wrong JSON type.
            ValueError: If a field is missing or out of range.
        """
        data = validate_mapping(data, "event")
        try:
            raw_tags = data["tags"]
            if not isinstance(raw_tags, list):
                raise TypeError(f"tags must be a list, got {type(raw_tags).__name__}")
            tags = tuple(validate_str_list(tag, f"tags[{i}]") for i, tag in enumerate(raw_tags))
            return cls(
                id=data["id"],
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=tags,
                content=data["content"],
                sig=data.get("sig", ""),
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None

    @classmethod
    def from_json(cls, raw: str) -> Event:
        """Parse an event from a JSON string.

        Raises:
            ValueError: On invalid JSON (``json.JSONDecodeError``) or fields.
            TypeError: If a field has the wrong JSON type.
        """
        return cls.from_dict(json.loads(raw))

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def tag_values(self, name: str) -> tuple[str, ...]:
        """Return the value (second element) of every tag named *name*, in order."""
        return tuple(tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name)
