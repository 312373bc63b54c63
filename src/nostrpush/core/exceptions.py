"""nostrpush exception hierarchy.

Typed exceptions let the router tell apart failures that end a single
message (a bad control payload, a failed decryption, a rejected push batch)
from failures that end a consumer session (a lost queue connection). Each
kind gets its own handling policy.

Exception hierarchy:

```text
NostrPushError (base -- never raised directly)
├── ConfigurationError        -- config validation, missing secrets, bad YAML
├── ProtocolError             -- Nostr payload parsing failures
│   └── ControlMessageError   -- control payload unparsable as a whole
├── CryptoError               -- NIP-04 failures
│   ├── DecryptionError
│   └── EncryptionError
├── ConnectivityError         -- upstream unreachable
│   ├── QueueConnectionError  -- AMQP connection lost or closed
│   └── RelayConnectionError  -- bootstrap relay unreachable
└── PushDeliveryError         -- push provider rejected a batch
```

See Also:
    [Router][nostrpush.services.router.service.Router]: Acks messages that
        end in [DecryptionError][nostrpush.core.exceptions.DecryptionError]
        or [ControlMessageError][nostrpush.core.exceptions.ControlMessageError]
        and reconnects on
        [QueueConnectionError][nostrpush.core.exceptions.QueueConnectionError].
    [NotificationDispatcher][nostrpush.services.router.dispatcher.NotificationDispatcher]:
        Logs [PushDeliveryError][nostrpush.core.exceptions.PushDeliveryError]
        per batch and moves on.
"""

from __future__ import annotations


class NostrPushError(Exception):
    """Base exception for all nostrpush errors. Never raised directly."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrPushError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(NostrPushError):
    """A Nostr payload could not be parsed or failed validation."""


class ControlMessageError(ProtocolError):
    """A decrypted control payload is unusable as a whole.

    Raised for invalid JSON, a non-object top level, or ``filters`` /
    ``tokens`` fields that are not lists. Malformed individual entries do
    not raise; they are collected as warnings on the parsed payload.
    """


# ---------------------------------------------------------------------------
# Cryptography
# ---------------------------------------------------------------------------


class CryptoError(NostrPushError):
    """Base for NIP-04 encryption and decryption failures."""


class DecryptionError(CryptoError):
    """NIP-04 ciphertext could not be decrypted.

    Always chained (``raise ... from``) to the underlying nostr-sdk error.
    Callers treat it as the end of one message, never of the consumer.
    """


class EncryptionError(CryptoError):
    """NIP-04 plaintext could not be encrypted."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrPushError):
    """Base for upstream connectivity failures."""


class QueueConnectionError(ConnectivityError):
    """The AMQP connection was closed or lost while consuming.

    Propagates out of
    [Router.run()][nostrpush.services.router.service.Router.run] so that
    [run_forever()][nostrpush.core.base_service.BaseService.run_forever]
    reconnects after the configured delay.
    """


class RelayConnectionError(ConnectivityError):
    """The Nostr relay used for bootstrap could not be reached."""


# ---------------------------------------------------------------------------
# Push delivery
# ---------------------------------------------------------------------------


class PushDeliveryError(NostrPushError):
    """The push provider rejected or failed a whole batch request."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
