"""Pure frozen dataclasses with zero I/O for events, filters and queue payloads.

The models layer is the bottom of the package DAG. It has **no dependencies**
on any other nostrpush package, only the Python standard library. Every model
uses ``@dataclass(frozen=True, slots=True)`` and validates in
``__post_init__`` or in its ``from_dict`` constructor, so invalid instances
never escape.

Attributes:
    Event: Immutable NIP-01 event as delivered by the queue or the relay.
    Filter: NIP-01 filter with the pure [matches()][nostrpush.models.filter.matches]
        predicate.
    ControlPayload: Decrypted control message (filters and push tokens)
        with per-entry warnings.
    QueueMessage: RabbitMQ body wrapper around an event.

See Also:
    [nostrpush.models.constants][]: Shared constants and enumerations.
"""

from .constants import (
    BODY_MAX_CHARS,
    EVENT_KIND_MAX,
    NIP04_IV_MARKER,
    ConsumerState,
    EventKind,
    MessageOutcome,
    ServiceName,
)
from .control import ControlPayload
from .event import Event
from .filter import Filter, matches
from .queue_message import QueueMessage


__all__ = [
    "BODY_MAX_CHARS",
    "EVENT_KIND_MAX",
    "NIP04_IV_MARKER",
    "ConsumerState",
    "ControlPayload",
    "Event",
    "EventKind",
    "Filter",
    "MessageOutcome",
    "QueueMessage",
    "ServiceName",
    "matches",
]
