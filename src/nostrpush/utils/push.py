"""Expo push notification client.

Speaks the Expo push HTTP API directly over ``aiohttp``: one ``POST`` per
batch of at most [EXPO_MAX_BATCH][nostrpush.utils.push.EXPO_MAX_BATCH]
messages, answered by one ticket per message in request order.

Request::

    POST https://exp.host/--/api/v2/push/send
    Authorization: Bearer <access token>
    [{"to": "ExponentPushToken[...]", "title": "...", "body": "...", ...}, ...]

Response::

    {"data": [{"status": "ok", "id": "..."},
              {"status": "error", "message": "...", "details": {...}}]}

Receipts (the second, delayed delivery confirmation) are not fetched.

See Also:
    [NotificationDispatcher][nostrpush.services.router.dispatcher.NotificationDispatcher]:
        Builds messages, validates tokens and drives batching.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Self

import aiohttp

from nostrpush.core.exceptions import PushDeliveryError
from nostrpush.utils.http import read_bounded_json


logger = logging.getLogger(__name__)


EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
EXPO_MAX_BATCH = 100

_UUID_RE = re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE)
_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


def is_expo_push_token(token: object) -> bool:
    """Return whether *token* is syntactically an Expo push token.

    Accepts ``ExponentPushToken[...]``, ``ExpoPushToken[...]`` and bare
    UUIDs (the legacy device id form).
    """
    if not isinstance(token, str):
        return False
    if token.startswith(_TOKEN_PREFIXES) and token.endswith("]"):
        return True
    return _UUID_RE.match(token) is not None


@dataclass(frozen=True, slots=True)
class PushMessage:
    """One Expo push message addressed to a single token."""

    to: str
    title: str
    body: str
    data: Mapping[str, str] = field(default_factory=dict)
    sound: str = "default"
    priority: str = "default"

    def to_dict(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "sound": self.sound,
            "title": self.title,
            "body": self.body,
            "data": dict(self.data),
            "priority": self.priority,
        }


@dataclass(frozen=True, slots=True)
class PushTicket:
    """Provider answer for one message of a batch.

    Attributes:
        status: ``"ok"`` or ``"error"``.
        id: Ticket id for later receipt lookup (``ok`` only).
        message: Human readable error (``error`` only).
        details: Provider error details, e.g. ``{"error": "DeviceNotRegistered"}``.
    """

    status: str
    id: str | None = None
    message: str | None = None
    details: Mapping[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def from_dict(cls, data: Any) -> PushTicket:
        """Parse one ticket object.

        Raises:
            ValueError: If *data* is not a ticket object.
        """
        if not isinstance(data, dict) or not isinstance(data.get("status"), str):
            raise ValueError(f"malformed push ticket: {data!r}")
        details = data.get("details")
        return cls(
            status=data["status"],
            id=data.get("id"),
            message=data.get("message"),
            details=details if isinstance(details, dict) else None,
        )


def chunk_messages(
    messages: Sequence[PushMessage], size: int = EXPO_MAX_BATCH
) -> list[list[PushMessage]]:
    """Split *messages* into consecutive batches of at most *size*."""
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return [list(messages[i : i + size]) for i in range(0, len(messages), size)]


class ExpoPushClient:
    """Async Expo push API client owning one ``aiohttp.ClientSession``.

    Use as an async context manager::

        async with ExpoPushClient(access_token) as client:
            tickets = await client.send_chunk(messages)
    """

    def __init__(
        self,
        access_token: str,
        *,
        api_url: str = EXPO_PUSH_URL,
        timeout: float = 30.0,  # noqa: ASYNC109
        max_response_size: int = 1_048_576,
    ) -> None:
        self._access_token = access_token
        self._api_url = api_url
        self._timeout = timeout
        self._max_response_size = max_response_size
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> Self:
        self._session = aiohttp.ClientSession(
            headers={
                "Accept": "application/json",
                "Accept-Encoding": "gzip, deflate",
                "Authorization": f"Bearer {self._access_token}",
            },
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session. Safe to call more than once."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def send_chunk(self, messages: Sequence[PushMessage]) -> list[PushTicket]:
        """Send one batch and return its tickets in request order.

        Raises:
            ValueError: If the batch is larger than the provider allows.
            RuntimeError: If the client is not open.
            PushDeliveryError: On transport failure, a non-2xx status, or a
                response that is not one ticket per message.
        """
        if len(messages) > EXPO_MAX_BATCH:
            raise ValueError(f"batch too large: {len(messages)} > {EXPO_MAX_BATCH}")
        if not messages:
            return []
        if self._session is None:
            raise RuntimeError("ExpoPushClient is not open; use 'async with'")

        payload = [message.to_dict() for message in messages]
        try:
            async with self._session.post(self._api_url, json=payload) as resp:
                if not 200 <= resp.status < 300:  # noqa: PLR2004
                    raise PushDeliveryError(
                        f"push request failed with HTTP {resp.status}", status=resp.status
                    )
                body = await read_bounded_json(resp, self._max_response_size)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            raise PushDeliveryError(f"push request failed: {e}") from e

        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            errors = body.get("errors") if isinstance(body, dict) else None
            raise PushDeliveryError(f"unexpected push response: {errors or body!r}")

        data = body["data"]
        if len(data) != len(messages):
            raise PushDeliveryError(
                f"expected {len(messages)} push tickets, got {len(data)}"
            )
        try:
            tickets = [PushTicket.from_dict(item) for item in data]
        except ValueError as e:
            raise PushDeliveryError(str(e)) from e

        logger.debug("push_chunk_sent messages=%s", len(messages))
        return tickets
