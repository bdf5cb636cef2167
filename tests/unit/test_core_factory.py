"""Unit tests for create_storage()."""

import logging

import pytest
from unittest.mock import patch
from cryptostore.core.exceptions import ConfigurationError
from cryptostore.core.factory import create_storage
from cryptostore.logging_config import configure_logging
from cryptostore.security.cipher import AesCbcCipherProvider
from cryptostore.security.keys import KeyringKeySupplier, StaticKeySupplier


@pytest.mark.parametrize("directory", [None, "", "  ", "bad\x00dir"])
def test_invalid_directory(directory):
    with pytest.raises(ConfigurationError):
        create_storage(directory, StaticKeySupplier(b"k" * 16))


def test_defaults_to_keyring_supplier_and_aes(tmp_path):
    storage = create_storage(str(tmp_path))
    assert isinstance(storage.key_supplier, KeyringKeySupplier)
    assert isinstance(storage.cipher, AesCbcCipherProvider)
    assert storage.root == tmp_path


def test_explicit_collaborators_are_used(tmp_path):
    supplier = StaticKeySupplier(b"k" * 32)
    cipher = AesCbcCipherProvider(key_bits=256)

    storage = create_storage(tmp_path, supplier, cipher, chunk_size=16)

    assert storage.key_supplier is supplier
    assert storage.cipher is cipher
    assert storage.config.chunk_size == 16
    storage.add_string("k", "value")
    assert storage.get_string("k") == "value"


def test_default_supplier_uses_keystore(tmp_path):
    with patch("cryptostore.security.keys.assess_keyring_backend", return_value=(True, "ok")), \
            patch("cryptostore.security.keys.load_key", return_value=None), \
            patch("cryptostore.security.keys.save_key") as mock_save:
        storage = create_storage(tmp_path)
        storage.add_bytes("k", b"data")
        assert storage.get_bytes("k") == b"data"

    mock_save.assert_called_once()


def test_configure_logging_sets_level():
    with patch("cryptostore.logging_config.logging.basicConfig") as basic:
        configure_logging(logging.DEBUG)
    assert basic.call_args.kwargs["level"] == logging.DEBUG
    assert logging.getLogger("keyring").level == logging.INFO


def test_chunk_size_defaults_when_omitted(tmp_path):
    storage = create_storage(tmp_path, StaticKeySupplier(b"k" * 16))
    assert storage.config.chunk_size == 65536
