"""Shared constants for the models layer.

Enumerations and fixed values used by more than one module. Keeping them
here avoids circular imports between ``models``, ``core`` and ``services``.

See Also:
    [Router][nostrpush.services.router.service.Router]: Branches on
        [EventKind.APP_DATA][nostrpush.models.constants.EventKind] and
        reports [MessageOutcome][nostrpush.models.constants.MessageOutcome].
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics."""

    ROUTER = "router"


class EventKind(IntEnum):
    """Nostr event kinds with special meaning to the router.

    Attributes:
        APP_DATA: Kind 10395 -- encrypted control message carrying a
            subscriber's filters and push tokens. Every other kind is a
            data event evaluated against the registered filters.
    """

    APP_DATA = 10_395


class ConsumerState(StrEnum):
    """Connection states of the queue consumer.

    ``DISCONNECTED -> CONNECTING -> CONSUMING -> DISCONNECTED``. Shutdown
    is tracked separately by the service's shutdown event.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONSUMING = "consuming"


#: Gauge encoding of [ConsumerState][nostrpush.models.constants.ConsumerState].
CONSUMER_STATE_VALUES: dict[ConsumerState, int] = {
    ConsumerState.DISCONNECTED: 0,
    ConsumerState.CONNECTING: 1,
    ConsumerState.CONSUMING: 2,
}


class MessageOutcome(StrEnum):
    """How a queue message was handled. Every outcome is acknowledged.

    Attributes:
        CONTROL_APPLIED: Control message decrypted and applied to the registry.
        CONTROL_REJECTED: Control message decrypted but its payload was
            unparsable; registry state preserved.
        NOT_ADDRESSED: Control message not addressed to this service.
        DECRYPTION_FAILED: Control message addressed to us but undecryptable.
        ROUTED: Data event matched at least one registered filter.
        UNMATCHED: Data event matched no registered filter.
    """

    CONTROL_APPLIED = "control_applied"
    CONTROL_REJECTED = "control_rejected"
    NOT_ADDRESSED = "not_addressed"
    DECRYPTION_FAILED = "decryption_failed"
    ROUTED = "routed"
    UNMATCHED = "unmatched"


#: Substring every NIP-04 ciphertext carries (``<base64>?iv=<base64>``).
NIP04_IV_MARKER = "?iv="

#: Notification body budget in Unicode code points.
BODY_MAX_CHARS = 80

#: Title placeholder when an event carries no location tag.
UNKNOWN_LOCATION = "unknown"

EVENT_KIND_MAX = 65_535
