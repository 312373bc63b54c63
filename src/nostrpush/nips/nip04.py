"""NIP-04 encrypted direct message primitives.

Thin wrappers over ``nostr_sdk.nip04_encrypt`` / ``nip04_decrypt`` that take
hex or bech32 keys as strings and raise the typed
[CryptoError][nostrpush.core.exceptions.CryptoError] family instead of the
SDK's ``NostrSdkError``.

NIP-04 ciphertext has the form ``<base64 ciphertext>?iv=<base64 iv>``;
[has_iv_marker()][nostrpush.nips.nip04.has_iv_marker] is the cheap
structural check done before any key material is touched.

Examples:
    ```python
    alice, bob = Keys.generate(), Keys.generate()
    cipher = encrypt(alice.secret_key(), bob.public_key().to_hex(), "hello")
    decrypt(bob.secret_key(), alice.public_key().to_hex(), cipher)  # "hello"
    ```
"""

from __future__ import annotations

from nostr_sdk import PublicKey, SecretKey, nip04_decrypt, nip04_encrypt

from nostrpush.core.exceptions import DecryptionError, EncryptionError
from nostrpush.models.constants import NIP04_IV_MARKER


def has_iv_marker(content: str) -> bool:
    """Return whether *content* carries the NIP-04 ``?iv=`` marker."""
    return NIP04_IV_MARKER in content


def decrypt(secret_key: SecretKey, sender_pubkey: str, ciphertext: str) -> str:
    """Decrypt NIP-04 *ciphertext* sent by *sender_pubkey* to the owner of *secret_key*.

    Raises:
        DecryptionError: If the sender key is invalid or decryption fails.
            Chained to the underlying SDK error.
    """
    try:
        return nip04_decrypt(secret_key, PublicKey.parse(sender_pubkey), ciphertext)
    except Exception as e:  # nostr-sdk raises its own FFI error type
        raise DecryptionError(f"nip04 decryption failed: {e}") from e


def encrypt(secret_key: SecretKey, recipient_pubkey: str, plaintext: str) -> str:
    """Encrypt *plaintext* from the owner of *secret_key* to *recipient_pubkey*.

    Raises:
        EncryptionError: If the recipient key is invalid or encryption fails.
    """
    try:
        return nip04_encrypt(secret_key, PublicKey.parse(recipient_pubkey), plaintext)
    except Exception as e:  # nostr-sdk raises its own FFI error type
        raise EncryptionError(f"nip04 encryption failed: {e}") from e
