"""
Unit tests for models.filter module.

Tests:
- Filter.from_dict() parsing of standard and tag keys
- to_dict() output
- matches() for every constraint, alone and combined
- Brute-force agreement of matches() with the NIP-01 definition
"""

import itertools
from typing import Any

import pytest

from nostrpush.models.event import Event
from nostrpush.models.filter import Filter, matches


def _event(**overrides: Any) -> Event:
    data: dict[str, Any] = {
        "id": "a" * 64,
        "pubkey": "b" * 64,
        "created_at": 1000,
        "kind": 1,
        "tags": [],
        "content": "",
        "sig": "",
    }
    data.update(overrides)
    return Event.from_dict(data)


# ============================================================================
# Parsing
# ============================================================================


class TestFromDict:
    """Filter.from_dict() parsing."""

    def test_empty(self):
        flt = Filter.from_dict({})
        assert flt.ids is None
        assert flt.kinds is None
        assert flt.authors is None
        assert dict(flt.tags) == {}
        assert flt.since is None
        assert flt.until is None
        assert flt.limit is None

    def test_all_fields(self):
        flt = Filter.from_dict(
            {
                "ids": ["x"],
                "kinds": [1, 7],
                "authors": ["y"],
                "#l": ["8FVC9G8F+"],
                "#p": ["p1", "p2"],
                "since": 10,
                "until": 20,
                "limit": 5,
            }
        )
        assert flt.ids == frozenset({"x"})
        assert flt.kinds == frozenset({1, 7})
        assert flt.authors == frozenset({"y"})
        assert flt.tags["l"] == frozenset({"8FVC9G8F+"})
        assert flt.tags["p"] == frozenset({"p1", "p2"})
        assert (flt.since, flt.until, flt.limit) == (10, 20, 5)

    def test_unknown_keys_ignored(self):
        flt = Filter.from_dict({"search": "nostr", "kinds": [1]})
        assert flt.kinds == frozenset({1})

    def test_null_treated_as_absent(self):
        flt = Filter.from_dict({"kinds": None, "since": None})
        assert flt.kinds is None
        assert flt.since is None

    def test_bare_hash_key(self):
        with pytest.raises(ValueError, match="must name a tag"):
            Filter.from_dict({"#": ["x"]})

    def test_kinds_wrong_type(self):
        with pytest.raises(TypeError, match="kinds"):
            Filter.from_dict({"kinds": ["1"]})

    def test_tag_values_wrong_type(self):
        with pytest.raises(TypeError, match="#l"):
            Filter.from_dict({"#l": "8FVC9G8F+"})

    def test_negative_since(self):
        with pytest.raises(ValueError, match="since"):
            Filter.from_dict({"since": -5})

    def test_not_a_mapping(self):
        with pytest.raises(TypeError, match="filter must be a Mapping"):
            Filter.from_dict([1])

    def test_tags_read_only(self):
        flt = Filter.from_dict({"#l": ["x"]})
        with pytest.raises(TypeError):
            flt.tags["l"] = frozenset()  # type: ignore[index]

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(Filter())


class TestToDict:
    def test_sorted_and_omits_absent(self):
        flt = Filter.from_dict({"kinds": [7, 1], "#l": ["b", "a"], "until": 3})
        assert flt.to_dict() == {"kinds": [1, 7], "#l": ["a", "b"], "until": 3}

    def test_empty(self):
        assert Filter().to_dict() == {}


# ============================================================================
# Matching
# ============================================================================


class TestMatches:
    """matches() per constraint."""

    def test_empty_filter_matches_everything(self):
        assert matches(Filter(), _event())
        assert matches(Filter(), _event(kind=10395, tags=[["p", "x"]]))

    def test_empty_sets_mean_any(self):
        flt = Filter(ids=frozenset(), kinds=frozenset(), authors=frozenset())
        assert matches(flt, _event())

    def test_ids(self):
        assert matches(Filter(ids=frozenset({"a" * 64})), _event())
        assert not matches(Filter(ids=frozenset({"z" * 64})), _event())

    def test_kinds(self):
        assert matches(Filter(kinds=frozenset({1, 7})), _event(kind=7))
        assert not matches(Filter(kinds=frozenset({1})), _event(kind=7))

    def test_authors(self):
        assert matches(Filter(authors=frozenset({"b" * 64})), _event())
        assert not matches(Filter(authors=frozenset({"e" * 64})), _event())

    def test_since_inclusive(self):
        assert matches(Filter(since=1000), _event(created_at=1000))
        assert not matches(Filter(since=1001), _event(created_at=1000))

    def test_until_inclusive(self):
        assert matches(Filter(until=1000), _event(created_at=1000))
        assert not matches(Filter(until=999), _event(created_at=1000))

    def test_limit_ignored(self):
        assert matches(Filter(limit=0), _event())

    def test_tag_value_match(self):
        flt = Filter(tags={"l": frozenset({"8FVC9G8F+6X"})})
        assert matches(flt, _event(tags=[["l", "8FVC9G8F+6X", "open-location-code"]]))

    def test_tag_values_are_ored(self):
        flt = Filter(tags={"l": frozenset({"A", "B"})})
        assert matches(flt, _event(tags=[["l", "B"]]))

    def test_tag_names_are_anded(self):
        flt = Filter(tags={"l": frozenset({"A"}), "t": frozenset({"nostr"})})
        assert not matches(flt, _event(tags=[["l", "A"]]))
        assert matches(flt, _event(tags=[["l", "A"], ["t", "nostr"]]))

    def test_tag_absent(self):
        flt = Filter(tags={"l": frozenset({"A"})})
        assert not matches(flt, _event(tags=[["t", "A"]]))

    def test_empty_tag_value_set_never_matches(self):
        flt = Filter(tags={"l": frozenset()})
        assert not matches(flt, _event(tags=[["l", "A"]]))
        assert not matches(flt, _event(tags=[]))

    def test_only_tag_value_position_counts(self):
        flt = Filter(tags={"l": frozenset({"open-location-code"})})
        assert not matches(flt, _event(tags=[["l", "A", "open-location-code"]]))

    def test_combined(self):
        flt = Filter.from_dict({"kinds": [1], "#l": ["8FVC9G8F+"], "since": 500})
        assert matches(flt, _event(tags=[["l", "8FVC9G8F+"]]))
        assert not matches(flt, _event(kind=7, tags=[["l", "8FVC9G8F+"]]))
        assert not matches(flt, _event(created_at=100, tags=[["l", "8FVC9G8F+"]]))

    def test_method_shorthand(self):
        flt = Filter(kinds=frozenset({1}))
        assert flt.matches(_event()) is matches(flt, _event())


class TestMatchesAgreesWithDefinition:
    """matches() against a direct reading of NIP-01 over a small domain."""

    KINDS = (None, frozenset(), frozenset({1}), frozenset({2}), frozenset({1, 2}))
    TAGS = (
        {},
        {"l": frozenset({"A"})},
        {"l": frozenset({"A", "B"})},
        {"l": frozenset()},
        {"l": frozenset({"A"}), "t": frozenset({"x"})},
    )
    BOUNDS = ((None, None), (5, None), (None, 5), (5, 5), (6, 4))
    EVENT_KINDS = (1, 2)
    EVENT_TAGS = ([], [["l", "A"]], [["l", "B"], ["t", "x"]], [["l", "A"], ["t", "y"]])
    EVENT_TIMES = (4, 5, 6)

    @staticmethod
    def _expected(kinds, tags, since, until, event: Event) -> bool:
        if kinds and event.kind not in kinds:
            return False
        if since is not None and event.created_at < since:
            return False
        if until is not None and event.created_at > until:
            return False
        for name, accepted in tags.items():
            values = {tag[1] for tag in event.tags if tag[0] == name}
            if not values & accepted:
                return False
        return True

    def test_exhaustive(self):
        for kinds, tags, (since, until) in itertools.product(self.KINDS, self.TAGS, self.BOUNDS):
            flt = Filter(kinds=kinds, tags=tags, since=since, until=until)
            for kind, event_tags, created_at in itertools.product(
                self.EVENT_KINDS, self.EVENT_TAGS, self.EVENT_TIMES
            ):
                event = _event(kind=kind, tags=event_tags, created_at=created_at)
                assert matches(flt, event) is self._expected(kinds, tags, since, until, event), (
                    flt,
                    event,
                )
