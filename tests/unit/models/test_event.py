"""
Unit tests for models.event module.

Tests:
- Event.from_dict() field validation
- Event.from_json() parsing
- to_dict() output shape
- tag_values() lookup
- Immutability
"""

import json
from dataclasses import FrozenInstanceError
from typing import Any

import pytest

from nostrpush.models.event import Event


def _event_dict(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": "a" * 64,
        "pubkey": "b" * 64,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": [["l", "8FVC9G8F+6X", "open-location-code"], ["p", "d" * 64]],
        "content": "hello",
        "sig": "c" * 128,
    }
    data.update(overrides)
    return data


class TestFromDict:
    """Event.from_dict() construction and validation."""

    def test_valid(self):
        event = Event.from_dict(_event_dict())
        assert event.id == "a" * 64
        assert event.pubkey == "b" * 64
        assert event.created_at == 1_700_000_000
        assert event.kind == 1
        assert event.tags == (("l", "8FVC9G8F+6X", "open-location-code"), ("p", "d" * 64))
        assert event.content == "hello"

    def test_sig_optional(self):
        data = _event_dict()
        del data["sig"]
        assert Event.from_dict(data).sig == ""

    @pytest.mark.parametrize("field", ["id", "pubkey", "created_at", "kind", "tags", "content"])
    def test_missing_field(self, field: str):
        data = _event_dict()
        del data[field]
        with pytest.raises(ValueError, match=field):
            Event.from_dict(data)

    def test_not_a_mapping(self):
        with pytest.raises(TypeError, match="event must be a Mapping"):
            Event.from_dict(["not", "an", "object"])

    def test_kind_wrong_type(self):
        with pytest.raises(TypeError, match="kind"):
            Event.from_dict(_event_dict(kind="1"))

    def test_kind_bool_rejected(self):
        with pytest.raises(TypeError, match="kind"):
            Event.from_dict(_event_dict(kind=True))

    def test_kind_out_of_range(self):
        with pytest.raises(ValueError, match="kind must be between"):
            Event.from_dict(_event_dict(kind=70_000))

    def test_negative_created_at(self):
        with pytest.raises(ValueError, match="created_at"):
            Event.from_dict(_event_dict(created_at=-1))

    def test_tags_not_list(self):
        with pytest.raises(TypeError, match="tags must be a list"):
            Event.from_dict(_event_dict(tags={"l": "x"}))

    def test_tag_item_not_string(self):
        with pytest.raises(TypeError, match=r"tags\[0\]"):
            Event.from_dict(_event_dict(tags=[["l", 5]]))

    def test_null_byte_in_content(self):
        with pytest.raises(ValueError, match="null bytes"):
            Event.from_dict(_event_dict(content="a\x00b"))


class TestFromJson:
    def test_valid(self):
        event = Event.from_json(json.dumps(_event_dict()))
        assert event.kind == 1

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            Event.from_json("{not json")


class TestToDict:
    def test_roundtrip_shape(self):
        data = _event_dict()
        assert Event.from_dict(data).to_dict() == data

    def test_tags_are_lists(self):
        out = Event.from_dict(_event_dict()).to_dict()
        assert all(isinstance(tag, list) for tag in out["tags"])


class TestTagValues:
    def test_in_order(self):
        event = Event.from_dict(_event_dict(tags=[["p", "x"], ["e", "y"], ["p", "z"]]))
        assert event.tag_values("p") == ("x", "z")

    def test_missing(self):
        assert Event.from_dict(_event_dict(tags=[])).tag_values("p") == ()

    def test_single_element_tag_skipped(self):
        event = Event.from_dict(_event_dict(tags=[["p"], ["p", "x"]]))
        assert event.tag_values("p") == ("x",)


class TestImmutability:
    def test_frozen(self):
        event = Event.from_dict(_event_dict())
        with pytest.raises(FrozenInstanceError):
            event.kind = 2  # type: ignore[misc]
