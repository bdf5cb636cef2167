"""Security helpers: ciphers, key suppliers and key derivation for CryptoStore.

This package provides:
- the cipher provider contract and its AES-CBC/PKCS7 default
- the key supplier contract with static, Argon2id and OS-keystore suppliers
- thin helpers over `keyring` for keeping raw keys in the OS keystore
"""

from .cipher import CipherProvider, StreamTransform, AesCbcCipherProvider
from .kdf import generate_salt, derive_key
from .keys import KeySupplier, StaticKeySupplier, PasswordKeySupplier, KeyringKeySupplier
from .keystore import save_key, load_key, delete_key, assess_keyring_backend

__all__ = [
    "CipherProvider",
    "StreamTransform",
    "AesCbcCipherProvider",
    "generate_salt",
    "derive_key",
    "KeySupplier",
    "StaticKeySupplier",
    "PasswordKeySupplier",
    "KeyringKeySupplier",
    "save_key",
    "load_key",
    "delete_key",
    "assess_keyring_backend",
]
