"""Control message gate: recognise and decrypt messages addressed to us.

A kind [APP_DATA][nostrpush.models.constants.EventKind] event is a control
message for this service only if all of the following hold:

1. it carries at least one ``p`` tag;
2. the **first** ``p`` tag names the service public key (a later match
   does not count);
3. its content carries the NIP-04 ``?iv=`` marker.

Anything else is dropped as "not addressed", which is a successful no-op
for the consumer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostrpush.core.logger import Logger
from nostrpush.nips import nip04


if TYPE_CHECKING:
    from nostr_sdk import Keys

    from nostrpush.models.event import Event


class ControlMessageGate:
    """Address check and NIP-04 decryption bound to the service key pair."""

    def __init__(self, keys: Keys, logger: Logger | None = None) -> None:
        self._keys = keys
        self._public_key = keys.public_key().to_hex()
        self._logger = logger or Logger("router.gate")

    @property
    def public_key(self) -> str:
        """The service identity as lowercase hex."""
        return self._public_key

    def is_addressed_to_me(self, event: Event) -> bool:
        """Return whether *event* is a control message for this service."""
        recipients = event.tag_values("p")
        if not recipients:
            self._logger.debug("control_not_addressed", event_id=event.id, reason="no_p_tag")
            return False
        if recipients[0] != self._public_key:
            self._logger.debug(
                "control_not_addressed",
                event_id=event.id,
                reason="first_p_tag_mismatch",
                recipient=recipients[0],
            )
            return False
        if not nip04.has_iv_marker(event.content):
            self._logger.debug("control_not_addressed", event_id=event.id, reason="no_iv_marker")
            return False
        return True

    def decrypt(self, event: Event) -> str:
        """Decrypt the content of *event* with the service key and the author's key.

        Raises:
            DecryptionError: If decryption fails.
        """
        return nip04.decrypt(self._keys.secret_key(), event.pubkey, event.content)
