"""The service's Nostr identity.

The router has one key pair. Its public key is the address subscribers put
in the first ``p`` tag of a control message; its secret key decrypts them.
The secret is only ever taken from the environment (``PRIVATE_KEY`` by
default), as ``nsec1...`` bech32 or 64-char hex, and is parsed while the
config validates so a bad key stops startup.

Examples:
    ```python
    keys = load_keys_from_env("PRIVATE_KEY")
    keys.public_key().to_hex()  # share with subscribers
    ```
"""

from __future__ import annotations

import os
from typing import Any

from nostr_sdk import Keys
from pydantic import BaseModel, ConfigDict, Field, model_validator


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret


def load_keys_from_env(env_var: str) -> Keys:
    """Parse the private key held in *env_var*.

    Raises:
        ValueError: If *env_var* is unset or empty.
        nostr_sdk.NostrSdkError: If the value is not a valid key.
    """
    value = os.getenv(env_var)
    if not value:
        raise ValueError(
            f"{env_var} environment variable is required "
            "(create a key pair with: nostrpush-sender keygen)"
        )
    return Keys.parse(value)


class KeysConfig(BaseModel):
    """Config mixin adding the service key pair.

    ``keys`` is filled from the variable named by ``keys_env`` unless given
    explicitly. The model holds a live secret; never dump it.
    """

    # nostr_sdk.Keys is an FFI type pydantic cannot introspect
    model_config = ConfigDict(arbitrary_types_allowed=True)

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable holding the service private key",
    )
    keys: Keys = Field(description="Service key pair, loaded from keys_env")

    @model_validator(mode="before")
    @classmethod
    def _keys_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and "keys" not in data:
            data["keys"] = load_keys_from_env(data.get("keys_env", ENV_PRIVATE_KEY))
        return data
