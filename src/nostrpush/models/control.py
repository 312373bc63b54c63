"""
Decrypted control message payload.

A subscriber registers interest by publishing a kind
[APP_DATA][nostrpush.models.constants.EventKind] event whose NIP-04
plaintext has this shape:

```json
{
  "filters": [{"filter": {"kinds": [1], "#l": ["8FVC9G8F+"]}}],
  "tokens":  [{"token": "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"}]
}
```

Both top-level fields are optional. Token entries written by older clients
use ``expoPushToken`` instead of ``token``; both are accepted.

Parsing is two-level. A payload that is unusable as a whole (invalid JSON,
a non-object top level, ``filters`` or ``tokens`` not a list) raises
``ValueError``. Within a usable payload every entry is parsed on its own
and a malformed entry only adds a line to
[warnings][nostrpush.models.control.ControlPayload].
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .filter import Filter


_TOKEN_KEYS = ("token", "expoPushToken")


@dataclass(frozen=True, slots=True)
class ControlPayload:
    """Parsed control message plaintext.

    Attributes:
        filters: Parsed filters, or ``None`` when the field was absent.
        tokens: Parsed push tokens, or ``None`` when the field was absent.
        warnings: One description per skipped malformed entry.
    """

    filters: tuple[Filter, ...] | None = None
    tokens: tuple[str, ...] | None = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def parse(cls, raw: str) -> ControlPayload:
        """Parse decrypted control plaintext.

        Raises:
            ValueError: If the payload cannot be used at all.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"control payload is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"control payload must be an object, got {type(data).__name__}")

        warnings: list[str] = []
        filters = _parse_filters(data.get("filters"), warnings) if "filters" in data else None
        tokens = _parse_tokens(data.get("tokens"), warnings) if "tokens" in data else None
        return cls(filters=filters, tokens=tokens, warnings=tuple(warnings))


def _parse_filters(raw: Any, warnings: list[str]) -> tuple[Filter, ...]:
    if not isinstance(raw, list):
        raise ValueError(f"filters must be a list, got {type(raw).__name__}")
    filters: list[Filter] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict) or "filter" not in entry:
            warnings.append(f"filters[{i}]: expected an object with a 'filter' key")
            continue
        try:
            filters.append(Filter.from_dict(entry["filter"]))
        except (TypeError, ValueError) as e:
            warnings.append(f"filters[{i}]: {e}")
    return tuple(filters)


def _parse_tokens(raw: Any, warnings: list[str]) -> tuple[str, ...]:
    if not isinstance(raw, list):
        raise ValueError(f"tokens must be a list, got {type(raw).__name__}")
    tokens: list[str] = []
    for i, entry in enumerate(raw):
        value = None
        if isinstance(entry, dict):
            value = next((entry[key] for key in _TOKEN_KEYS if key in entry), None)
        if not isinstance(value, str) or not value:
            warnings.append(f"tokens[{i}]: expected an object with a non-empty 'token' string")
            continue
        tokens.append(value)
    return tuple(tokens)
