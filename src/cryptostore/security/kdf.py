from __future__ import annotations

import os
from typing import Dict

from argon2.low_level import Type, hash_secret_raw

from ..core.exceptions import ConfigurationError

# Argon2 rejects salts shorter than this
MIN_SALT_LENGTH = 8


def generate_salt(length: int = 16) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(
    password: bytes | str,
    salt: bytes,
    time_cost: int = 3,
    memory_cost: int = 65536,
    parallelism: int = 1,
    key_len: int = 32,
) -> bytes:
    """
    Derive a storage key from a password using Argon2id.
    Returns raw derived key bytes.
    """
    if isinstance(password, str):
        password = password.encode("utf-8")
    if not password:
        raise ConfigurationError("password must not be empty")
    if len(salt) < MIN_SALT_LENGTH:
        raise ConfigurationError(f"salt must be at least {MIN_SALT_LENGTH} bytes")

    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=key_len,
        type=Type.ID,
    )


def kdf_params_to_dict(salt: bytes, time_cost: int, memory_cost: int, parallelism: int) -> Dict:
    # Callers persist this next to (never inside) the storage root to re-derive the key later.
    return {
        "algo": "argon2id",
        "salt": salt.hex(),
        "time": time_cost,
        "memory": memory_cost,
        "parallelism": parallelism,
    }
