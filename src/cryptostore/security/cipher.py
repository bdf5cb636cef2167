"""Cipher providers: streaming encrypt/decrypt transforms for a key and IV.

The default provider is AES in CBC mode with PKCS7 padding, built from the
``cryptography`` hazmat primitives. Transforms are fed chunk by chunk through
``update`` and closed with ``finalize``, so payloads of any size can be
processed without holding them in memory.

CBC + PKCS7 gives confidentiality only: there is no authentication tag, so a
tampered entry shows up as a padding error or as garbage plaintext.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..core.exceptions import ConfigurationError, InvalidKeyConfigurationError


AES_BLOCK_BITS = 128
AES_KEY_BITS = (128, 192, 256)


class StreamTransform(ABC):
    """One-shot streaming transform; ``finalize`` may be called once."""

    @abstractmethod
    def update(self, data: bytes) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def finalize(self) -> bytes:
        raise NotImplementedError


class CipherProvider(ABC):
    """Pluggable source of encryptors and decryptors."""

    @abstractmethod
    def iv_length(self) -> int:
        """Number of IV bytes the cipher expects."""
        raise NotImplementedError

    @abstractmethod
    def key_length(self) -> int:
        """Minimum number of key bytes the cipher expects."""
        raise NotImplementedError

    @abstractmethod
    def get_encryptor(self, key: bytes, iv: bytes) -> StreamTransform:
        raise NotImplementedError

    @abstractmethod
    def get_decryptor(self, key: bytes, iv: bytes) -> StreamTransform:
        raise NotImplementedError


class _PaddedEncryptor(StreamTransform):
    def __init__(self, cipher: Cipher):
        self._padder = padding.PKCS7(AES_BLOCK_BITS).padder()
        self._encryptor = cipher.encryptor()

    def update(self, data: bytes) -> bytes:
        return self._encryptor.update(self._padder.update(data))

    def finalize(self) -> bytes:
        tail = self._encryptor.update(self._padder.finalize())
        return tail + self._encryptor.finalize()


class _PaddedDecryptor(StreamTransform):
    def __init__(self, cipher: Cipher):
        self._unpadder = padding.PKCS7(AES_BLOCK_BITS).unpadder()
        self._decryptor = cipher.decryptor()

    def update(self, data: bytes) -> bytes:
        return self._unpadder.update(self._decryptor.update(data))

    def finalize(self) -> bytes:
        # raises ValueError on a partial final block or bad padding
        tail = self._unpadder.update(self._decryptor.finalize())
        return tail + self._unpadder.finalize()


class AesCbcCipherProvider(CipherProvider):
    """
    AES-CBC with PKCS7 padding.

    ``key_bits`` selects AES-128 (default), AES-192 or AES-256. Keys longer than
    the selected size are truncated to it, so a 32-byte key from a keystore
    works with the 128-bit default.
    """

    def __init__(self, key_bits: int = 128):
        if key_bits not in AES_KEY_BITS:
            raise ConfigurationError(f"unsupported AES key size {key_bits}; expected one of {AES_KEY_BITS}")
        self.key_bits = key_bits

    def iv_length(self) -> int:
        return AES_BLOCK_BITS // 8

    def key_length(self) -> int:
        return self.key_bits // 8

    def _cipher(self, key: bytes, iv: bytes) -> Cipher:
        if len(key) < self.key_length():
            raise InvalidKeyConfigurationError(
                f"CipherProvider needs key size = {self.key_length()} bytes, got {len(key)}"
            )
        if len(iv) != self.iv_length():
            raise ValueError(f"IV must be {self.iv_length()} bytes, got {len(iv)}")
        return Cipher(algorithms.AES(bytes(key[: self.key_length()])), modes.CBC(bytes(iv)))

    def get_encryptor(self, key: bytes, iv: bytes) -> StreamTransform:
        return _PaddedEncryptor(self._cipher(key, iv))

    def get_decryptor(self, key: bytes, iv: bytes) -> StreamTransform:
        return _PaddedDecryptor(self._cipher(key, iv))
