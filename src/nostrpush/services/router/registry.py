"""
In-memory subscription registry: identity to filters and push tokens.

Each identity owns at most one FilterSet and one TokenSet. A control
message **replaces** them wholesale, never merges:

* ``filters`` present (even ``[]``): the FilterSet is replaced. An empty
  list leaves the identity subscribed to nothing.
* ``tokens`` present and non-empty: the TokenSet is replaced.
* ``tokens`` present but empty, or absent: the TokenSet is kept.

Note that ``"filters": []`` clears while ``"tokens": []`` does not.

A payload that is unusable as a whole leaves both sets untouched.

Every update swaps a whole tuple under one dict key and contains no
``await``, so a reader in the same event loop never observes a
half-updated identity.

See Also:
    [ControlPayload][nostrpush.models.control.ControlPayload]: The parsed
        plaintext applied here.
    [route()][nostrpush.services.router.routing.route]: Flattens the
        registry with
        [all_filter_identity_pairs()][nostrpush.services.router.registry.SubscriptionRegistry.all_filter_identity_pairs].
"""

from __future__ import annotations

from typing import NamedTuple

from nostrpush.core.exceptions import ControlMessageError
from nostrpush.core.logger import Logger
from nostrpush.models.control import ControlPayload
from nostrpush.models.filter import Filter


class FilterIdentityPair(NamedTuple):
    """One registered filter together with the identity that owns it."""

    filter: Filter
    identity: str


def parse_control_payload(raw: str) -> ControlPayload:
    """Parse decrypted control plaintext.

    Raises:
        ControlMessageError: If the payload is unusable as a whole.
            Chained to the underlying ``ValueError``.
    """
    try:
        return ControlPayload.parse(raw)
    except ValueError as e:
        raise ControlMessageError(str(e)) from e


class SubscriptionRegistry:
    """Authoritative identity to {filters, tokens} mapping.

    Owned by a single [Router][nostrpush.services.router.Router]; all
    mutations go through
    [apply_control_message()][nostrpush.services.router.registry.SubscriptionRegistry.apply_control_message].
    """

    def __init__(self, logger: Logger | None = None) -> None:
        self._filters: dict[str, tuple[Filter, ...]] = {}
        self._tokens: dict[str, tuple[str, ...]] = {}
        self._logger = logger or Logger("router.registry")

    def apply_control_message(self, identity: str, raw_content: str) -> bool:
        """Apply a decrypted control message sent by *identity*.

        Never raises for bad input: an unusable payload is logged and
        ``False`` is returned with the identity's state unchanged.

        Returns:
            ``True`` if the payload was applied (possibly with skipped
            entries), ``False`` if it was rejected as a whole.
        """
        try:
            payload = parse_control_payload(raw_content)
        except ControlMessageError as e:
            self._logger.warning("control_message_rejected", identity=identity, error=str(e))
            return False

        for warning in payload.warnings:
            self._logger.warning("control_entry_skipped", identity=identity, reason=warning)

        if payload.filters is not None:
            existed = identity in self._filters
            self._filters[identity] = payload.filters
            self._logger.info(
                "filters_updated" if existed else "filters_created",
                identity=identity,
                count=len(payload.filters),
            )

        if payload.tokens:
            existed = identity in self._tokens
            self._tokens[identity] = payload.tokens
            self._logger.info(
                "tokens_updated" if existed else "tokens_created",
                identity=identity,
                count=len(payload.tokens),
            )
        else:
            self._logger.debug(
                "tokens_retained",
                identity=identity,
                count=len(self._tokens.get(identity, ())),
            )

        return True

    def all_filter_identity_pairs(self) -> list[FilterIdentityPair]:
        """Flatten every FilterSet, identities then filters in insertion order."""
        return [
            FilterIdentityPair(flt, identity)
            for identity, filters in self._filters.items()
            for flt in filters
        ]

    def tokens_for(self, identity: str) -> tuple[str, ...] | None:
        """Return the identity's TokenSet, or ``None`` if it never registered one."""
        return self._tokens.get(identity)

    def filters_for(self, identity: str) -> tuple[Filter, ...] | None:
        """Return the identity's FilterSet, or ``None`` if it never sent one."""
        return self._filters.get(identity)

    @property
    def identity_count(self) -> int:
        return len(self._filters.keys() | self._tokens.keys())

    @property
    def filter_count(self) -> int:
        return sum(len(filters) for filters in self._filters.values())

    @property
    def token_count(self) -> int:
        return sum(len(tokens) for tokens in self._tokens.values())

    def __contains__(self, identity: object) -> bool:
        return identity in self._filters or identity in self._tokens

    def __len__(self) -> int:
        return self.identity_count
