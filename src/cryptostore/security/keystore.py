"""OS keystore integration using keyring for storing the storage encryption key.

This module provides a tiny wrapper around `keyring` to store and retrieve
binary keys (base64-encoded) under a service/account pair. Do not assume
keyring provides hardware-backed security on all platforms; use
assess_keyring_backend() to check what is in use.
"""
import base64
import binascii
import logging
from typing import Optional

import keyring
from keyring.errors import PasswordDeleteError

logger = logging.getLogger(__name__)


def save_key(service: str, account: str, key_bytes: bytes) -> None:
    """Persist binary key_bytes in the OS keystore under (service, account).

    The key is base64-encoded before storage to keep it string-friendly.
    """
    secret = base64.b64encode(bytes(key_bytes)).decode("ascii")
    keyring.set_password(service, account, secret)


def load_key(service: str, account: str) -> Optional[bytes]:
    """Load a persisted key from the OS keystore; returns raw bytes or None."""
    secret = keyring.get_password(service, account)
    if secret is None:
        return None
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Keystore entry %s/%s is not valid base64; ignoring it", service, account)
        return None


def delete_key(service: str, account: str) -> None:
    """Remove the key from the OS keystore; a missing entry is not an error."""
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        logger.debug("No keystore entry %s/%s to delete", service, account)


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because the `keyring` package exposes different backends
    across platforms.
    """
    backend = keyring.get_keyring()
    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Simple", "File")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    # treat known platform backends as acceptable
    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"
