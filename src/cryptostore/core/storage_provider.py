"""
Raw storage provider: maps entry keys to files under the storage root.

Structure Map for reference:
==============================
 - <storage_root>/
      - {escaped_key}.cst   (ciphertext)
      - {escaped_key}.iv    (initialization vector)
      - ... unrelated files are left alone
==============================
Keys are stripped of surrounding whitespace and percent-escaped before they
become file stems, so ``alpha`` is stored as ``alpha.cst`` while a key such as
``a/b`` becomes ``a%2Fb.cst`` and can never leave the root. Keys must be valid
unicode text whose escaped form fits in a file name (255 bytes including the
extension); longer keys are refused on write and are simply absent otherwise.

The provider never creates the root; it must exist beforehand.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import quote, unquote

from .config import StorageConfig
from .exceptions import (
    EntryKeyTooLongError,
    InvalidEntryKeyError,
    IvNotFoundError,
    StorageRootNotFoundError,
)

logger = logging.getLogger(__name__)

# NAME_MAX on common filesystems (ext4, APFS, NTFS in UTF-16 units)
MAX_FILENAME_BYTES = 255


def normalize_key(key: str) -> str:
    """Return ``key`` stripped of surrounding whitespace; reject blank keys."""
    if not isinstance(key, str):
        raise InvalidEntryKeyError(f"entry key must be a string, got {type(key).__name__}")
    stripped = key.strip()
    if not stripped:
        raise InvalidEntryKeyError("entry key must not be empty or whitespace")
    try:
        stripped.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidEntryKeyError(f"entry key is not valid unicode text: {exc.reason}") from exc
    return stripped


def escape_key(key: str) -> str:
    # '.' stays unescaped, so guard the two stems the OS treats specially
    stem = quote(key, safe="")
    if stem in (".", ".."):
        stem = stem.replace(".", "%2E")
    return stem


class FileStorageProvider:
    """Byte-level access to the two artifacts of every entry."""

    def __init__(self, config: StorageConfig):
        self.config = config
        self.root = config.root
        if not self.root.is_dir():
            raise StorageRootNotFoundError(f"Directory {self.root} doesn't exist")

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def stem(self, key: str) -> str:
        """Escaped file stem for ``key``; rejects keys whose file names would be too long."""
        stem = escape_key(normalize_key(key))
        limit = MAX_FILENAME_BYTES - 1 - max(len(self.config.data_extension), len(self.config.iv_extension))
        if len(stem) > limit:
            raise EntryKeyTooLongError(
                f"entry key escapes to {len(stem)} bytes; at most {limit} fit in a file name"
            )
        return stem

    def data_path(self, key: str) -> Path:
        return self.root / f"{self.stem(key)}.{self.config.data_extension}"

    def iv_path(self, key: str) -> Path:
        return self.root / f"{self.stem(key)}.{self.config.iv_extension}"

    # ------------------------------------------------------------------
    # Ciphertext streams
    # ------------------------------------------------------------------

    def get_writing_stream(self, key: str) -> BinaryIO:
        # truncates leftovers from an earlier partial entry
        return open(self.data_path(key), "wb")

    def get_reading_stream(self, key: str) -> BinaryIO:
        return open(self.data_path(key), "rb")

    # ------------------------------------------------------------------
    # IV artifact
    # ------------------------------------------------------------------

    def write_iv(self, key: str, iv: bytes) -> None:
        with open(self.iv_path(key), "wb") as f:
            f.write(iv)

    def read_iv(self, key: str) -> bytes:
        path = self.iv_path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise IvNotFoundError(
                f"Initialization vector for key '{normalize_key(key)}' doesn't exist"
            ) from exc

    # ------------------------------------------------------------------
    # Entry management
    # ------------------------------------------------------------------

    def contains(self, key: str) -> bool:
        try:
            self.stem(key)
        except EntryKeyTooLongError:
            # no file can exist under a name the filesystem would refuse
            return False
        has_data = self.data_path(key).is_file()
        has_iv = self.iv_path(key).is_file()
        if has_data != has_iv:
            logger.warning("Partial entry for key '%s' (data=%s, iv=%s)", normalize_key(key), has_data, has_iv)
        return has_data and has_iv

    def delete(self, key: str) -> None:
        try:
            self.stem(key)
        except EntryKeyTooLongError:
            return
        self.data_path(key).unlink(missing_ok=True)
        self.iv_path(key).unlink(missing_ok=True)

    def keys(self) -> Iterator[str]:
        """Yield the keys of complete entries under the root."""
        suffix = f".{self.config.data_extension}"
        for path in sorted(self.root.glob(f"*{suffix}")):
            if not path.is_file():
                continue
            key = unquote(path.name[: -len(suffix)])
            try:
                has_iv = self.iv_path(key).is_file()
            except InvalidEntryKeyError:
                # foreign file whose stem is not one of ours
                continue
            if has_iv:
                yield key

    def clean(self) -> int:
        """Remove every artifact under the root and return how many files went."""
        removed = 0
        for ext in (self.config.data_extension, self.config.iv_extension):
            for path in self.root.glob(f"*.{ext}"):
                if not path.is_file():
                    continue
                path.unlink(missing_ok=True)
                removed += 1
        return removed
