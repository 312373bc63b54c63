"""Shared utilities: key loading, relay access, HTTP, push and AMQP helpers.

The utils layer depends on ``nostrpush.models`` and
``nostrpush.core.exceptions`` only, and is used by ``nostrpush.services``
and the CLI tools.

Attributes:
    KeysConfig: Pydantic mixin loading the service key pair from the environment.
    load_keys_from_env: Parse an nsec/hex private key from an env var.
    create_client: nostr-sdk client factory.
    fetch_stored_events: One-shot historical fetch from a relay.
    publish_event: Sign and send one event to a relay.
    read_bounded_json: Size-limited JSON body reader for aiohttp responses.
    ExpoPushClient: Expo push HTTP API client.
    declare_topology: RabbitMQ exchange/queue declaration.
"""

from .amqp import declare_topology
from .http import read_bounded_json
from .keys import ENV_PRIVATE_KEY, KeysConfig, load_keys_from_env
from .protocol import create_client, fetch_stored_events, publish_event
from .push import (
    EXPO_MAX_BATCH,
    EXPO_PUSH_URL,
    ExpoPushClient,
    PushMessage,
    PushTicket,
    chunk_messages,
    is_expo_push_token,
)


__all__ = [
    "ENV_PRIVATE_KEY",
    "EXPO_MAX_BATCH",
    "EXPO_PUSH_URL",
    "ExpoPushClient",
    "KeysConfig",
    "PushMessage",
    "PushTicket",
    "chunk_messages",
    "create_client",
    "declare_topology",
    "fetch_stored_events",
    "is_expo_push_token",
    "load_keys_from_env",
    "publish_event",
    "read_bounded_json",
]
