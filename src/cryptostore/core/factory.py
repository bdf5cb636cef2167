"""Entry point for building a CryptoStorage with sensible defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..security.cipher import AesCbcCipherProvider, CipherProvider
from ..security.keys import KeyringKeySupplier, KeySupplier
from .exceptions import ConfigurationError
from .storage import CryptoStorage


def create_storage(
    storage_directory: str | Path,
    key_supplier: Optional[KeySupplier] = None,
    cipher_provider: Optional[CipherProvider] = None,
    chunk_size: Optional[int] = None,
) -> CryptoStorage:
    """Create a CryptoStorage rooted at ``storage_directory``.

    Without an explicit supplier the key is kept in the OS keystore
    (:class:`KeyringKeySupplier`); without an explicit cipher AES-128-CBC is
    used. The directory must already exist.
    """
    if storage_directory is None:
        raise ConfigurationError("storage_directory is required")
    text = str(storage_directory)
    if not text.strip():
        raise ConfigurationError("Storage directory is a zero-length string or contains only white space")
    if "\x00" in text:
        raise ConfigurationError("Storage directory contains one or more invalid characters")

    return CryptoStorage(
        Path(text),
        key_supplier if key_supplier is not None else KeyringKeySupplier(),
        cipher_provider if cipher_provider is not None else AesCbcCipherProvider(),
        chunk_size=chunk_size,
    )
