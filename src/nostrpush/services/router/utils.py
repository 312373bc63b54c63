"""Router service utility functions.

Pure helpers for building notification text from an event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostrpush.models.constants import UNKNOWN_LOCATION


if TYPE_CHECKING:
    from nostrpush.models.event import Event


_LOCATION_TAG_NAMES = ("l", "#l")
_ELLIPSIS = "…"


def truncate_chars(text: str, max_chars: int) -> str:
    """Cut *text* to *max_chars* code points, appending an ellipsis if cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + _ELLIPSIS


def location_code_from_tags(event: Event) -> str:
    """Return the value of the first ``l`` or ``#l`` tag, or ``"unknown"``.

    Clients label notes with an Open Location Code, e.g.
    ``["l", "8FVC9G8F+6X", "open-location-code"]``.
    """
    for tag in event.tags:
        if len(tag) > 1 and tag[0] in _LOCATION_TAG_NAMES:
            return tag[1]
    return UNKNOWN_LOCATION
