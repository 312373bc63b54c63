"""Manual testing tool for NIP-04 control messages.

Generates keys, checks a NIP-04 round trip, derives public keys, and
publishes signed kind 10395 control messages to a relay so a running
router can be exercised end to end.

Examples:
    ```bash
    nostrpush-sender keygen
    nostrpush-sender test
    nostrpush-sender derive --private-key <hex|nsec>
    nostrpush-sender send \\
        --message '{"filters":[{"filter":{"kinds":[1]}}],"tokens":[{"token":"ExponentPushToken[x]"}]}' \\
        --private-key <hex|nsec> --recipient-key <router pubkey hex> --relay ws://localhost:7777
    ```
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Sequence

from nostr_sdk import EventBuilder, Keys, Kind, NostrSdkError, Tag

from nostrpush.core.exceptions import CryptoError, RelayConnectionError
from nostrpush.models.constants import EventKind
from nostrpush.nips import nip04
from nostrpush.utils.keys import ENV_PRIVATE_KEY
from nostrpush.utils.protocol import publish_event


ROUND_TRIP_MESSAGE = "this is our very secret message"


def keygen() -> int:
    keys = Keys.generate()
    print(f"private_key={keys.secret_key().to_hex()}")
    print(f"public_key={keys.public_key().to_hex()}")
    return 0


def round_trip() -> int:
    """Encrypt a fixed message between two fresh key pairs and decrypt it back."""
    sender, receiver = Keys.generate(), Keys.generate()
    print(f"sender_public_key={sender.public_key().to_hex()}")
    print(f"receiver_public_key={receiver.public_key().to_hex()}")

    cipher = nip04.encrypt(sender.secret_key(), receiver.public_key().to_hex(), ROUND_TRIP_MESSAGE)
    print(f"ciphertext={cipher}")
    plain = nip04.decrypt(receiver.secret_key(), sender.public_key().to_hex(), cipher)
    print(f"decrypted={plain}")

    if plain != ROUND_TRIP_MESSAGE:
        print("round_trip=failed", file=sys.stderr)
        return 1
    print("round_trip=ok")
    return 0


def derive(private_key: str) -> int:
    print(f"public_key={Keys.parse(private_key).public_key().to_hex()}")
    return 0


def build_control_event(keys: Keys, recipient_key: str, message: str) -> EventBuilder:
    """Encrypt *message* to *recipient_key* and wrap it in a kind 10395 builder."""
    content = nip04.encrypt(keys.secret_key(), recipient_key, message)
    return EventBuilder(Kind(int(EventKind.APP_DATA)), content).tags(
        [Tag.parse(["p", recipient_key])]
    )


async def send(
    message: str,
    private_key: str,
    recipient_key: str,
    relay: str,
    timeout: float,  # noqa: ASYNC109
) -> int:
    keys = Keys.parse(private_key)
    print(f"sender_public_key={keys.public_key().to_hex()}")
    builder = build_control_event(keys, recipient_key, message)
    event_id = await publish_event(relay, builder, keys, timeout=timeout)
    print(f"event_id={event_id}")
    return 0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nostrpush-sender",
        description="NIP-04 control message testing tool",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("keygen", help="Generate a key pair")
    sub.add_parser("test", help="NIP-04 encrypt/decrypt round trip")

    derive_parser = sub.add_parser("derive", help="Derive the public key of a private key")
    derive_parser.add_argument("--private-key", default=os.getenv(ENV_PRIVATE_KEY))

    send_parser = sub.add_parser("send", help="Publish an encrypted kind 10395 control message")
    send_parser.add_argument("--message", required=True, help="Plaintext (control JSON)")
    send_parser.add_argument("--private-key", default=os.getenv(ENV_PRIVATE_KEY))
    send_parser.add_argument("--recipient-key", required=True, help="Router public key (hex)")
    send_parser.add_argument("--relay", required=True, help="Relay URL")
    send_parser.add_argument("--timeout", type=float, default=10.0, help="Seconds (default: 10)")

    args = parser.parse_args(argv)
    if args.command in ("derive", "send") and not args.private_key:
        parser.error(f"--private-key or {ENV_PRIVATE_KEY} is required")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        if args.command == "keygen":
            return keygen()
        if args.command == "test":
            return round_trip()
        if args.command == "derive":
            return derive(args.private_key)
        return asyncio.run(
            send(args.message, args.private_key, args.recipient_key, args.relay, args.timeout)
        )
    except (CryptoError, RelayConnectionError, NostrSdkError) as e:
        print(f"error={e}", file=sys.stderr)
        return 1


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
