"""Size-capped JSON reads for aiohttp responses.

The push provider's answer is read through
[read_bounded_json][nostrpush.utils.http.read_bounded_json] so an oversized
or endless body fails with ``ValueError`` instead of being buffered whole.
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp


async def read_bounded_body(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Return the full body of *response*, at most *max_size* bytes.

    A declared ``Content-Length`` above the cap is rejected before reading.
    Otherwise the stream is read until EOF; ``content.read(n)`` may return
    short chunks, so reading continues until it returns ``b""``.

    Raises:
        ValueError: If the body is larger than *max_size*.
    """
    declared = response.content_length
    if isinstance(declared, int) and declared > max_size:
        raise ValueError(f"Response body too large: {declared} > {max_size} bytes")

    body = bytearray()
    while chunk := await response.content.read(max_size + 1 - len(body)):
        body += chunk
        if len(body) > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
    return bytes(body)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Parse the body of *response* as JSON after a size-capped read.

    Raises:
        ValueError: If the body is larger than *max_size*.
        json.JSONDecodeError: If the body is not JSON.
    """
    return json.loads(await read_bounded_body(response, max_size))
