"""
Exceptions for CryptoStore
This is placed such that there is a general error catcher.
Filesystem failures are not wrapped: they surface as the builtin OSError family.
"""


class CryptoStoreError(Exception):
    # general container for errors
    pass


class ConfigurationError(CryptoStoreError):
    # raised when the store, its providers or its key are misconfigured
    pass


class StorageRootNotFoundError(ConfigurationError):
    # raised when the storage root directory DNE
    pass


class InvalidKeyConfigurationError(ConfigurationError):
    # raised when the supplied encryption key cannot be used by the cipher
    pass


class InvalidEntryKeyError(ConfigurationError, ValueError):
    # raised when an entry key is empty, blank or not encodable
    pass


class EntryKeyTooLongError(InvalidEntryKeyError):
    # raised when an escaped entry key does not fit in a file name
    pass


class DuplicateKeyError(CryptoStoreError):
    # raised when writing a key that already exists
    pass


class KeyNotFoundError(CryptoStoreError):
    # raised when reading a key that DNE
    pass


class IvNotFoundError(KeyNotFoundError):
    # raised when the IV artifact of an entry is missing
    pass


class CorruptedEntryError(CryptoStoreError):
    # raised when an entry cannot be decrypted (bad IV, padding or truncated ciphertext)
    pass


class KeySupplierClosedError(CryptoStoreError):
    # raised when a key is requested from a closed supplier
    pass


class StorageClosedError(CryptoStoreError):
    # raised when reading or writing through a closed CryptoStorage
    pass
