"""Nostr Implementation Possibilities used by nostrpush.

Attributes:
    nip04: Encrypted direct message primitives used to read control
        messages and, in the sender tool, to write them.
"""

from . import nip04


__all__ = ["nip04"]
