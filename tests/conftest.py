"""
Pytest configuration and shared fixtures for nostrpush tests.

Provides:
- Environment secrets (service private key, Expo access token)
- Event and queue body factories
- A fake push sender recording every batch
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any

import pytest

from nostrpush.models.event import Event
from nostrpush.utils.push import PushMessage, PushTicket


# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
TEST_EXPO_TOKEN = "test-expo-access-token"  # pragma: allowlist secret


# ============================================================================
# Logging / Environment
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


@pytest.fixture(autouse=True)
def _set_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set PRIVATE_KEY and EXPO_ACCESS_TOKEN for every test."""
    monkeypatch.setenv("PRIVATE_KEY", VALID_HEX_KEY)
    monkeypatch.setenv("EXPO_ACCESS_TOKEN", TEST_EXPO_TOKEN)
    for name in ("RABBITMQ_URL", "RABBITMQ_QUEUE", "STRFRY_URL"):
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Event Factories
# ============================================================================


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for valid events; every field can be overridden."""

    def _make(**overrides: Any) -> Event:
        data: dict[str, Any] = {
            "id": "a" * 64,
            "pubkey": "b" * 64,
            "created_at": 1_700_000_000,
            "kind": 1,
            "tags": [],
            "content": "hello world",
            "sig": "c" * 128,
        }
        data.update(overrides)
        return Event.from_dict(data)

    return _make


@pytest.fixture
def make_body() -> Callable[[Event], bytes]:
    """Wrap an event in a queue message body as published by the relay."""

    def _make(event: Event) -> bytes:
        return json.dumps(
            {
                "event": event.to_dict(),
                "type": "new",
                "receivedAt": 1_700_000_001,
                "sourceInfo": "127.0.0.1",
            }
        ).encode()

    return _make


# ============================================================================
# Push Fakes
# ============================================================================


class FakePushSender:
    """Records every batch and answers with ``ok`` tickets unless told otherwise."""

    def __init__(self) -> None:
        self.batches: list[list[PushMessage]] = []
        self.tickets: list[PushTicket] | None = None
        self.error: BaseException | None = None

    async def send_chunk(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        self.batches.append(list(messages))
        if self.error is not None:
            raise self.error
        if self.tickets is not None:
            return self.tickets[: len(messages)]
        return [PushTicket(status="ok", id=f"ticket-{i}") for i in range(len(messages))]

    @property
    def sent_to(self) -> list[str]:
        return [message.to for batch in self.batches for message in batch]


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()
