"""Configuration container for a CryptoStore storage root."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .exceptions import ConfigurationError


CHUNK_SIZE = 65536  # 64KB
DATA_EXTENSION = "cst"
IV_EXTENSION = "iv"


@dataclass(frozen=True)
class StorageConfig:
    """Where entries live and how they are streamed."""

    root: Path
    chunk_size: int = CHUNK_SIZE
    data_extension: str = DATA_EXTENSION
    iv_extension: str = IV_EXTENSION

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root).expanduser())
        if not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be a positive integer, got {self.chunk_size!r}")
        for ext in (self.data_extension, self.iv_extension):
            if not ext or not ext.strip() or "." in ext:
                raise ConfigurationError(f"invalid artifact extension {ext!r}")
        if self.data_extension == self.iv_extension:
            raise ConfigurationError("data and IV extensions must differ")

    @classmethod
    def default(cls) -> "StorageConfig":
        return cls(root=Path.home() / ".cryptostore")
