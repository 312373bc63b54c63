"""
Unit tests for utils.push module.

Tests:
- is_expo_push_token() accepted forms
- PushMessage.to_dict() / PushTicket.from_dict()
- chunk_messages() batching
- ExpoPushClient.send_chunk() against a mocked aiohttp session
- ExpoPushClient lifecycle
"""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from nostrpush.core.exceptions import PushDeliveryError
from nostrpush.utils.push import (
    EXPO_MAX_BATCH,
    EXPO_PUSH_URL,
    ExpoPushClient,
    PushMessage,
    PushTicket,
    chunk_messages,
    is_expo_push_token,
)


def _message(i: int = 0) -> PushMessage:
    return PushMessage(to=f"ExponentPushToken[{i}]", title="t", body="b", data={"id": str(i)})


def _mock_response(status: int = 200, body: Any = None) -> MagicMock:
    raw = json.dumps(body).encode() if body is not None else b""
    response = MagicMock()
    response.status = status
    response.content.read = AsyncMock(side_effect=[raw, b""])
    return response


def _mock_session(response: MagicMock | None = None, error: Exception | None = None) -> MagicMock:
    ctx = MagicMock()
    if error is not None:
        ctx.__aenter__ = AsyncMock(side_effect=error)
    else:
        ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)
    session = MagicMock()
    session.post = MagicMock(return_value=ctx)
    session.close = AsyncMock()
    return session


def _open_client(session: MagicMock, **kwargs: Any) -> ExpoPushClient:
    client = ExpoPushClient("expo-token", **kwargs)
    client._session = session
    return client


# ============================================================================
# Token / Message / Ticket
# ============================================================================


class TestIsExpoPushToken:
    @pytest.mark.parametrize(
        "token",
        [
            "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]",
            "ExpoPushToken[xxxxxxxxxxxxxxxxxxxxxx]",
            "f47ac10b-58cc-4372-a567-0e02b2c3d479",
            "F47AC10B-58CC-4372-A567-0E02B2C3D479",
        ],
    )
    def test_valid(self, token: str):
        assert is_expo_push_token(token)

    @pytest.mark.parametrize(
        "token",
        ["", "abc", "ExponentPushToken[", "ExponentPushToken[x", "PushToken[x]", None, 42],
    )
    def test_invalid(self, token: Any):
        assert not is_expo_push_token(token)


class TestPushMessage:
    def test_to_dict(self):
        message = PushMessage(to="ExponentPushToken[x]", title="T", body="B", data={"k": "v"})
        assert message.to_dict() == {
            "to": "ExponentPushToken[x]",
            "sound": "default",
            "title": "T",
            "body": "B",
            "data": {"k": "v"},
            "priority": "default",
        }


class TestPushTicket:
    def test_ok(self):
        ticket = PushTicket.from_dict({"status": "ok", "id": "abc"})
        assert ticket.ok
        assert ticket.id == "abc"

    def test_error(self):
        ticket = PushTicket.from_dict(
            {"status": "error", "message": "gone", "details": {"error": "DeviceNotRegistered"}}
        )
        assert not ticket.ok
        assert ticket.message == "gone"
        assert ticket.details == {"error": "DeviceNotRegistered"}

    def test_non_dict_details_dropped(self):
        assert PushTicket.from_dict({"status": "error", "details": "x"}).details is None

    @pytest.mark.parametrize("data", [None, "ok", {}, {"status": 1}])
    def test_malformed(self, data: Any):
        with pytest.raises(ValueError, match="malformed push ticket"):
            PushTicket.from_dict(data)


class TestChunkMessages:
    def test_empty(self):
        assert chunk_messages([]) == []

    def test_exact_batch(self):
        chunks = chunk_messages([_message(i) for i in range(EXPO_MAX_BATCH)])
        assert [len(c) for c in chunks] == [100]

    def test_split(self):
        chunks = chunk_messages([_message(i) for i in range(250)])
        assert [len(c) for c in chunks] == [100, 100, 50]
        assert chunks[2][0].to == "ExponentPushToken[200]"

    def test_custom_size(self):
        assert [len(c) for c in chunk_messages([_message(i) for i in range(5)], 2)] == [2, 2, 1]

    def test_invalid_size(self):
        with pytest.raises(ValueError, match="size must be >= 1"):
            chunk_messages([_message()], 0)


# ============================================================================
# ExpoPushClient
# ============================================================================


class TestSendChunk:
    async def test_success(self):
        response = _mock_response(body={"data": [{"status": "ok", "id": "1"}, {"status": "ok", "id": "2"}]})
        session = _mock_session(response)
        client = _open_client(session)

        tickets = await client.send_chunk([_message(0), _message(1)])

        assert [t.id for t in tickets] == ["1", "2"]
        session.post.assert_called_once()
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == EXPO_PUSH_URL
        assert [p["to"] for p in payload] == ["ExponentPushToken[0]", "ExponentPushToken[1]"]

    async def test_custom_url(self):
        response = _mock_response(body={"data": [{"status": "ok"}]})
        session = _mock_session(response)
        client = _open_client(session, api_url="http://localhost:9999/push")
        await client.send_chunk([_message()])
        assert session.post.call_args.args[0] == "http://localhost:9999/push"

    async def test_mixed_tickets(self):
        body = {"data": [{"status": "ok", "id": "1"}, {"status": "error", "message": "bad"}]}
        client = _open_client(_mock_session(_mock_response(body=body)))
        tickets = await client.send_chunk([_message(0), _message(1)])
        assert [t.ok for t in tickets] == [True, False]

    async def test_empty_batch_no_request(self):
        session = _mock_session(_mock_response())
        client = _open_client(session)
        assert await client.send_chunk([]) == []
        session.post.assert_not_called()

    async def test_batch_too_large(self):
        client = _open_client(_mock_session(_mock_response()))
        with pytest.raises(ValueError, match="batch too large"):
            await client.send_chunk([_message(i) for i in range(EXPO_MAX_BATCH + 1)])

    async def test_not_open(self):
        with pytest.raises(RuntimeError, match="not open"):
            await ExpoPushClient("expo-token").send_chunk([_message()])

    async def test_http_error_status(self):
        client = _open_client(_mock_session(_mock_response(status=500, body={"errors": []})))
        with pytest.raises(PushDeliveryError) as exc_info:
            await client.send_chunk([_message()])
        assert exc_info.value.status == 500

    async def test_transport_error(self):
        client = _open_client(_mock_session(error=aiohttp.ClientConnectionError("refused")))
        with pytest.raises(PushDeliveryError, match="refused") as exc_info:
            await client.send_chunk([_message()])
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)

    async def test_timeout(self):
        client = _open_client(_mock_session(error=TimeoutError()))
        with pytest.raises(PushDeliveryError):
            await client.send_chunk([_message()])

    async def test_invalid_json(self):
        response = MagicMock()
        response.status = 200
        response.content.read = AsyncMock(side_effect=[b"<html>", b""])
        client = _open_client(_mock_session(response))
        with pytest.raises(PushDeliveryError):
            await client.send_chunk([_message()])

    async def test_oversized_response(self):
        response = _mock_response(body={"data": [{"status": "ok", "id": "x" * 4096}]})
        client = _open_client(_mock_session(response), max_response_size=1024)
        with pytest.raises(PushDeliveryError, match="too large"):
            await client.send_chunk([_message()])

    async def test_errors_body(self):
        body = {"errors": [{"code": "PUSH_TOO_MANY_EXPERIENCE_IDS"}]}
        client = _open_client(_mock_session(_mock_response(body=body)))
        with pytest.raises(PushDeliveryError, match="PUSH_TOO_MANY_EXPERIENCE_IDS"):
            await client.send_chunk([_message()])

    async def test_ticket_count_mismatch(self):
        client = _open_client(_mock_session(_mock_response(body={"data": [{"status": "ok"}]})))
        with pytest.raises(PushDeliveryError, match="expected 2 push tickets, got 1"):
            await client.send_chunk([_message(0), _message(1)])

    async def test_malformed_ticket(self):
        client = _open_client(_mock_session(_mock_response(body={"data": ["ok"]})))
        with pytest.raises(PushDeliveryError, match="malformed push ticket"):
            await client.send_chunk([_message()])


class TestLifecycle:
    async def test_context_manager_opens_and_closes(self):
        async with ExpoPushClient("expo-token") as client:
            assert client._session is not None
            assert client._session.headers["Authorization"] == "Bearer expo-token"
        assert client._session is None

    async def test_close_idempotent(self):
        client = ExpoPushClient("expo-token")
        await client.close()
        await client.close()
        assert client._session is None
