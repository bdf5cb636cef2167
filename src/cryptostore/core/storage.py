"""
Encrypted key-value blob storage.

Every entry is a pair of files in the storage root: the ciphertext and the
initialization vector it was encrypted with (see
:mod:`cryptostore.core.storage_provider` for the layout).

Write path:
> fresh random IV from the cipher provider's IV length
> encryptor from the key supplier's key + IV
> IV persisted, then the input stream is encrypted chunk by chunk into the
  ciphertext file

Read is the mirror image. Payloads are never held in memory as a whole.

Entries are write-once: writing an existing key raises DuplicateKeyError,
so an IV is never reused for a second plaintext under the same key.
Operations on the same key are serialized within one CryptoStorage instance;
nothing coordinates separate processes.
"""

from __future__ import annotations

import io
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional

from ..security.cipher import AesCbcCipherProvider, CipherProvider, StreamTransform
from ..security.keys import KeySupplier
from .config import CHUNK_SIZE, StorageConfig
from .exceptions import (
    ConfigurationError,
    CorruptedEntryError,
    DuplicateKeyError,
    InvalidKeyConfigurationError,
    KeyNotFoundError,
    StorageClosedError,
)
from .locks import KeyLockRegistry
from .storage_provider import FileStorageProvider, normalize_key

logger = logging.getLogger(__name__)


class CryptoStorage:
    """Write-once encrypted blob store rooted in an existing directory."""

    def __init__(
        self,
        storage_directory: str | Path | StorageConfig,
        key_supplier: KeySupplier,
        cipher_provider: Optional[CipherProvider] = None,
        chunk_size: Optional[int] = None,
    ):
        if isinstance(storage_directory, StorageConfig):
            if chunk_size is not None:
                raise ConfigurationError("pass chunk_size inside the StorageConfig, not alongside it")
            config = storage_directory
        else:
            if storage_directory is None or not str(storage_directory).strip():
                raise ConfigurationError("storage_directory must not be empty")
            config = StorageConfig(
                root=Path(storage_directory),
                chunk_size=chunk_size if chunk_size is not None else CHUNK_SIZE,
            )
        if key_supplier is None:
            raise ConfigurationError("key_supplier is required")

        self.config = config
        self.provider = FileStorageProvider(config)
        self.key_supplier = key_supplier
        self.cipher = cipher_provider if cipher_provider is not None else AesCbcCipherProvider()
        self._locks = KeyLockRegistry()
        self._closed = False
        # thread id -> number of key-using operations it is running
        self._lifecycle = threading.Condition()
        self._active: Dict[int, int] = {}
        self._release_pending = False

    @property
    def root(self) -> Path:
        return self.provider.root

    # ------------------------------------------------------------------
    # Stream API
    # ------------------------------------------------------------------

    def write(self, key: str, input_stream: BinaryIO) -> None:
        """
        Encrypt everything readable from ``input_stream`` into a new entry.

        Raises DuplicateKeyError if ``key`` is already present. If anything
        fails while streaming, both artifacts are removed again and the
        original error is re-raised. Raises StorageClosedError once the
        store is closed.
        """
        key = normalize_key(key)
        # refuse names the filesystem could not hold before touching disk
        self.provider.stem(key)
        with self._operation(), self._locks.lock(key):
            if self.provider.contains(key):
                raise DuplicateKeyError(f"Key '{key}' already exists in CryptoStorage")

            iv = self._generate_iv()
            encryptor = self.cipher.get_encryptor(self._encryption_key(), iv)
            self._ensure_open()
            try:
                self.provider.write_iv(key, iv)
                with self.provider.get_writing_stream(key) as out:
                    size = self._pump(input_stream, out, encryptor)
                    out.write(encryptor.finalize())
            except BaseException:
                self._rollback(key)
                raise
            logger.debug("Wrote entry '%s' (%d plaintext bytes)", key, size)

    def read(self, key: str, output_stream: BinaryIO) -> None:
        """
        Decrypt entry ``key`` into ``output_stream``.

        Raises KeyNotFoundError if the entry is absent and CorruptedEntryError
        if its IV or ciphertext is damaged. Because output is streamed, some
        bytes may already have been written to ``output_stream`` when a
        damaged final block is detected. Raises StorageClosedError once the
        store is closed.
        """
        key = normalize_key(key)
        with self._operation(), self._locks.lock(key):
            if not self.provider.contains(key):
                raise KeyNotFoundError(f"Key '{key}' doesn't exist in CryptoStorage")

            iv = self.provider.read_iv(key)
            if len(iv) != self.cipher.iv_length():
                raise CorruptedEntryError(
                    f"Entry '{key}' has a {len(iv)}-byte IV, expected {self.cipher.iv_length()}"
                )
            decryptor = self.cipher.get_decryptor(self._encryption_key(), iv)
            self._ensure_open()
            with self.provider.get_reading_stream(key) as src:
                size = self._pump(src, output_stream, decryptor)
                try:
                    tail = decryptor.finalize()
                except ValueError as exc:
                    raise CorruptedEntryError(f"Entry '{key}' could not be decrypted: {exc}") from exc
                output_stream.write(tail)
            logger.debug("Read entry '%s' (%d ciphertext bytes)", key, size)

    def contains(self, key: str) -> bool:
        """True iff both artifacts of ``key`` exist."""
        return self.provider.contains(normalize_key(key))

    def delete(self, key: str) -> None:
        """Remove entry ``key``; deleting an absent key is a no-op."""
        key = normalize_key(key)
        with self._locks.lock(key):
            self.provider.delete(key)
        logger.debug("Deleted entry '%s'", key)

    def clean(self) -> None:
        """Remove every entry under the root; unrelated files are kept."""
        removed = self.provider.clean()
        logger.info("Cleaned %s (%d artifacts removed)", self.root, removed)

    def keys(self) -> List[str]:
        """Keys of all complete entries, sorted by file name."""
        return list(self.provider.keys())

    # ------------------------------------------------------------------
    # Convenience wrappers over the stream API
    # ------------------------------------------------------------------

    def add_bytes(self, key: str, data: bytes) -> None:
        with io.BytesIO(data) as stream:
            self.write(key, stream)

    def get_bytes(self, key: str) -> bytes:
        with io.BytesIO() as stream:
            self.read(key, stream)
            return stream.getvalue()

    def add_string(self, key: str, value: str, encoding: str = "utf-8") -> None:
        self.add_bytes(key, value.encode(encoding))

    def get_string(self, key: str, encoding: str = "utf-8") -> str:
        return self.get_bytes(key).decode(encoding)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """
        Release the key supplier (wiping its key); stored entries are kept.

        Waits for reads and writes running on other threads to finish first.
        Called from inside an operation on this thread, the key is released
        when that operation unwinds instead. Later reads and writes raise
        StorageClosedError.
        """
        with self._lifecycle:
            if self._closed:
                return
            self._closed = True
            if threading.get_ident() in self._active:
                self._release_pending = True
                return
            while self._active:
                self._lifecycle.wait()
        self.key_supplier.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self) -> Iterator[None]:
        tid = threading.get_ident()
        with self._lifecycle:
            self._ensure_open()
            self._active[tid] = self._active.get(tid, 0) + 1
        try:
            yield
        finally:
            with self._lifecycle:
                remaining = self._active[tid] - 1
                if remaining:
                    self._active[tid] = remaining
                else:
                    del self._active[tid]
                release = self._release_pending and not self._active
                if release:
                    self._release_pending = False
                self._lifecycle.notify_all()
            if release:
                self.key_supplier.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageClosedError("CryptoStorage has been closed")

    def _generate_iv(self) -> bytes:
        return os.urandom(self.cipher.iv_length())

    def _encryption_key(self) -> bytearray:
        key = self.key_supplier.get_key()
        required = self.cipher.key_length()
        if key is None or len(key) < required:
            raise InvalidKeyConfigurationError(
                f"CipherProvider needs key size = {required} bytes, got {0 if key is None else len(key)}"
            )
        return key

    def _pump(self, src: BinaryIO, dst: BinaryIO, transform: StreamTransform) -> int:
        # returns bytes consumed from src; finalize is left to the caller
        total = 0
        while True:
            chunk = src.read(self.config.chunk_size)
            if not chunk:
                break
            total += len(chunk)
            dst.write(transform.update(chunk))
        return total

    def _rollback(self, key: str) -> None:
        logger.warning("Write of '%s' failed; removing partial entry", key)
        try:
            self.provider.delete(key)
        except OSError:
            logger.exception("Could not remove partial entry '%s'", key)
