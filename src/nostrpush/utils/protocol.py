"""Nostr relay client operations for nostrpush.

Provides the client factory, a one-shot historical fetch used to rebuild
the subscription registry at startup, and a single-event publish used by
the sender tool.

Attributes:
    create_client: Client factory with an optional signer.
    fetch_stored_events: Connect, fetch until EOSE or timeout, convert to
        [Event][nostrpush.models.event.Event] models, disconnect.
    publish_event: Connect, sign and send one event, disconnect.

Examples:
    ```python
    from nostr_sdk import Filter, Kind

    events = await fetch_stored_events(
        "ws://localhost:7777", Filter().kind(Kind(10395)), timeout=5.0
    )
    ```
"""

from __future__ import annotations

import contextlib
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from nostr_sdk import Client, ClientBuilder, NostrSigner, RelayUrl

from nostrpush.core.exceptions import RelayConnectionError
from nostrpush.models.event import Event


if TYPE_CHECKING:
    from nostr_sdk import EventBuilder, Filter, Keys


logger = logging.getLogger(__name__)


async def create_client(keys: Keys | None = None) -> Client:
    """Create a Nostr client, signing with *keys* when given.

    Returns:
        Configured ``Client`` instance (call ``add_relay()`` before use).
    """
    builder = ClientBuilder()

    if keys is not None:
        signer = NostrSigner.keys(keys)
        builder = builder.signer(signer)

    return builder.build()


async def _connect(relay_url: str, keys: Keys | None, timeout: float) -> Client:  # noqa: ASYNC109
    """Return a client connected to *relay_url* or raise ``RelayConnectionError``."""
    url = RelayUrl.parse(relay_url)
    client = await create_client(keys)
    await client.add_relay(url)
    output = await client.try_connect(timedelta(seconds=timeout))

    if url not in output.success:
        error_message = output.failed.get(url, "Unknown error")
        with contextlib.suppress(Exception):
            await client.shutdown()
        raise RelayConnectionError(f"Connection failed: {relay_url} ({error_message})")

    logger.debug("relay_connected relay=%s", relay_url)
    return client


async def fetch_stored_events(
    relay_url: str,
    event_filter: Filter,
    *,
    timeout: float = 5.0,  # noqa: ASYNC109
    keys: Keys | None = None,
) -> list[Event]:
    """Fetch stored events matching *event_filter* from one relay.

    Returns once the relay signals end-of-stored-events or *timeout*
    elapses, whichever comes first. Events that fail model validation are
    skipped.

    Raises:
        RelayConnectionError: If the relay cannot be reached.
    """
    client = await _connect(relay_url, keys, timeout)
    try:
        fetched = await client.fetch_events(event_filter, timedelta(seconds=timeout))
        events: list[Event] = []
        for evt in fetched.to_vec():
            try:
                events.append(Event.from_json(evt.as_json()))
            except (ValueError, TypeError) as e:
                logger.debug("stored_event_skipped relay=%s error=%s", relay_url, e)
        logger.debug("stored_events_fetched relay=%s count=%s", relay_url, len(events))
        return events
    finally:
        # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown.
        with contextlib.suppress(Exception):
            await client.shutdown()


async def publish_event(
    relay_url: str,
    builder: EventBuilder,
    keys: Keys,
    *,
    timeout: float = 10.0,  # noqa: ASYNC109
) -> str:
    """Sign *builder* with *keys* and send it to one relay.

    Returns:
        The hex id of the published event.

    Raises:
        RelayConnectionError: If the relay cannot be reached or refuses the event.
    """
    client = await _connect(relay_url, keys, timeout)
    try:
        output = await client.send_event_builder(builder)
        url = RelayUrl.parse(relay_url)
        if url not in output.success:
            error_message = output.failed.get(url, "Unknown error")
            raise RelayConnectionError(f"Event rejected: {relay_url} ({error_message})")
        event_id = output.id.to_hex()
        logger.debug("event_published relay=%s id=%s", relay_url, event_id)
        return event_id
    finally:
        with contextlib.suppress(Exception):
            await client.shutdown()
