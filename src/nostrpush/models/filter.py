"""
NIP-01 event filter and the pure matching predicate.

A [Filter][nostrpush.models.filter.Filter] is what a subscriber registers in
its control message. [matches()][nostrpush.models.filter.matches] decides
whether a live [Event][nostrpush.models.event.Event] is of interest; it has
no I/O and no state, so the router can evaluate it for every registered
filter on every event.

Matching rules:

* ``ids`` / ``kinds`` / ``authors``: absent or empty means "any"; otherwise
  the event's field must be in the set.
* tag filters (``#e``, ``#p``, ``#l``, ...): ANDed across tag names, ORed
  within one name's value set. An empty value set never matches.
* ``since`` / ``until``: inclusive bounds on ``created_at``.
* ``limit``: a historical query hint, never evaluated.

A filter with every field absent matches every event.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._validation import (
    validate_int,
    validate_int_list,
    validate_mapping,
    validate_str_list,
    validate_timestamp,
)


if TYPE_CHECKING:
    from .event import Event


_TAG_PREFIX = "#"


@dataclass(frozen=True, slots=True)
class Filter:
    """Immutable NIP-01 filter.

    Attributes:
        ids: Accepted event ids, or ``None`` for any.
        kinds: Accepted kinds, or ``None`` for any.
        authors: Accepted author identities, or ``None`` for any.
        tags: Tag name (without ``#``) to accepted values.
        since: Inclusive lower bound on ``created_at``.
        until: Inclusive upper bound on ``created_at``.
        limit: Query hint carried through for logging only.
    """

    ids: frozenset[str] | None = None
    kinds: frozenset[int] | None = None
    authors: frozenset[str] | None = None
    tags: Mapping[str, frozenset[str]] = field(default_factory=dict)
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "tags",
            MappingProxyType({name: frozenset(values) for name, values in self.tags.items()}),
        )

    __hash__ = None  # type: ignore[assignment]  # tags mapping is unhashable

    @classmethod
    def from_dict(cls, data: Any) -> Filter:
        """Parse a NIP-01 filter JSON object.

        Unknown keys (``search``, extensions) are ignored.

        Raises:
            TypeError: If a known key has the wrong JSON type.
            ValueError: If a timestamp is negative or a tag key is bare ``#``.
        """
        data = validate_mapping(data, "filter")

        tags: dict[str, frozenset[str]] = {}
        for key, value in data.items():
            if isinstance(key, str) and key.startswith(_TAG_PREFIX):
                name = key[len(_TAG_PREFIX) :]
                if not name:
                    raise ValueError("tag filter key must name a tag, got '#'")
                tags[name] = frozenset(validate_str_list(value, key))

        def _opt_set(key: str, parser: Any) -> frozenset[Any] | None:
            if data.get(key) is None:
                return None
            return frozenset(parser(data[key], key))

        def _opt_ts(key: str) -> int | None:
            if data.get(key) is None:
                return None
            return validate_timestamp(data[key], key)

        limit = data.get("limit")
        return cls(
            ids=_opt_set("ids", validate_str_list),
            kinds=_opt_set("kinds", validate_int_list),
            authors=_opt_set("authors", validate_str_list),
            tags=tags,
            since=_opt_ts("since"),
            until=_opt_ts("until"),
            limit=None if limit is None else validate_int(limit, "limit"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON form (sorted values, absent fields omitted)."""
        out: dict[str, Any] = {}
        if self.ids is not None:
            out["ids"] = sorted(self.ids)
        if self.kinds is not None:
            out["kinds"] = sorted(self.kinds)
        if self.authors is not None:
            out["authors"] = sorted(self.authors)
        for name, values in self.tags.items():
            out[f"{_TAG_PREFIX}{name}"] = sorted(values)
        for key in ("since", "until", "limit"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out

    def matches(self, event: Event) -> bool:
        """Shorthand for [matches(self, event)][nostrpush.models.filter.matches]."""
        return matches(self, event)


def matches(flt: Filter, event: Event) -> bool:
    """Return whether *event* satisfies every constraint of *flt*."""
    if flt.ids and event.id not in flt.ids:
        return False
    if flt.kinds and event.kind not in flt.kinds:
        return False
    if flt.authors and event.pubkey not in flt.authors:
        return False
    if flt.since is not None and event.created_at < flt.since:
        return False
    if flt.until is not None and event.created_at > flt.until:
        return False
    for name, accepted in flt.tags.items():
        if not any(len(tag) > 1 and tag[0] == name and tag[1] in accepted for tag in event.tags):
            return False
    return True
