"""Key suppliers: where the storage encryption key comes from.

A supplier generates its key lazily on the first ``get_key()`` call and then
returns the same cached buffer for the rest of its life. ``close()`` overwrites
that buffer in place before dropping it, so anyone still holding a reference
sees zeros rather than key material. Suppliers are context managers.

Concrete suppliers:

- :class:`StaticKeySupplier` for a key the caller already holds
- :class:`PasswordKeySupplier` deriving the key with Argon2id
- :class:`KeyringKeySupplier` keeping a random key in the OS keystore
"""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..core.exceptions import ConfigurationError, KeySupplierClosedError
from .kdf import derive_key, kdf_params_to_dict
from .keystore import assess_keyring_backend, load_key, save_key

logger = logging.getLogger(__name__)


class KeySupplier(ABC):
    def __init__(self):
        self._key: Optional[bytearray] = None
        self._closed = False
        self._lock = threading.Lock()

    def get_key(self) -> bytearray:
        """Return the cached key, generating it on first use.

        The returned buffer is owned by the supplier; do not mutate it.
        """
        with self._lock:
            if self._closed:
                raise KeySupplierClosedError("key supplier has been closed")
            if self._key is None:
                key = self.generate_key()
                if not key:
                    raise ConfigurationError(f"{type(self).__name__} produced an empty key")
                self._key = key if isinstance(key, bytearray) else bytearray(key)
            return self._key

    @abstractmethod
    def generate_key(self) -> bytes:
        """Produce the raw key bytes; called at most once per supplier."""
        raise NotImplementedError

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Overwrite the cached key in place and release it."""
        with self._lock:
            try:
                if self._key is not None:
                    for i in range(len(self._key)):
                        self._key[i] = 0
            finally:
                self._key = None
                self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class StaticKeySupplier(KeySupplier):
    """Supplies a key handed in by the caller.

    The key is copied into a private buffer; wiping that buffer on close does
    not touch the caller's object.
    """

    def __init__(self, key: bytes | bytearray):
        super().__init__()
        if not key:
            raise ConfigurationError("key must not be empty")
        self._initial = bytearray(key)

    def generate_key(self) -> bytes:
        key, self._initial = self._initial, bytearray()
        return key

    def close(self) -> None:
        for i in range(len(self._initial)):
            self._initial[i] = 0
        self._initial = bytearray()
        super().close()


class PasswordKeySupplier(KeySupplier):
    """Derives the key from a password and salt using Argon2id.

    The caller is responsible for persisting ``salt`` (see :meth:`params`) so
    that the same key can be derived again in a later process.
    """

    def __init__(
        self,
        password: bytes | str,
        salt: bytes,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 1,
        key_len: int = 32,
    ):
        super().__init__()
        if isinstance(password, str):
            password = password.encode("utf-8")
        self._password = bytearray(password)
        self.salt = salt
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism
        self.key_len = key_len

    def generate_key(self) -> bytes:
        return derive_key(
            bytes(self._password),
            self.salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            key_len=self.key_len,
        )

    def params(self) -> Dict:
        return kdf_params_to_dict(self.salt, self.time_cost, self.memory_cost, self.parallelism)

    def close(self) -> None:
        for i in range(len(self._password)):
            self._password[i] = 0
        super().close()


class KeyringKeySupplier(KeySupplier):
    """Keeps a random key in the OS keystore under (service, account).

    On first use the key is loaded from the keystore; if none exists yet a new
    random key of ``key_length`` bytes is generated and saved there, so every
    later process on the same machine gets the same key back.
    """

    def __init__(
        self,
        service: str = "cryptostore",
        account: str = "encryption-key",
        key_length: int = 32,
        require_secure_backend: bool = True,
    ):
        super().__init__()
        if not service or not account:
            raise ConfigurationError("keyring service and account must not be empty")
        self.service = service
        self.account = account
        self.key_length = key_length
        self.require_secure_backend = require_secure_backend

    def generate_key(self) -> bytes:
        if self.require_secure_backend:
            secure, msg = assess_keyring_backend()
            if not secure:
                raise ConfigurationError(
                    f"refusing to use OS keystore for the storage key: {msg}; "
                    "pass require_secure_backend=False to override if you understand the risk"
                )

        key = load_key(self.service, self.account)
        if key is not None:
            return key

        logger.info("No storage key in keystore for %s/%s; generating a new one", self.service, self.account)
        key = os.urandom(self.key_length)
        save_key(self.service, self.account, key)
        return key
