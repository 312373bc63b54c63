"""Event routing: resolve which identities want a data event."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostrpush.models.filter import matches


if TYPE_CHECKING:
    from nostrpush.models.event import Event

    from .registry import SubscriptionRegistry


def route(event: Event, registry: SubscriptionRegistry) -> list[str]:
    """Return identities with at least one filter matching *event*.

    Every registered filter is evaluated. Identities appear once, in the
    order their first matching filter was found. Identities without push
    tokens are included; the dispatcher skips them.
    """
    matched: dict[str, None] = {}
    for flt, identity in registry.all_filter_identity_pairs():
        if identity not in matched and matches(flt, event):
            matched[identity] = None
    return list(matched)
