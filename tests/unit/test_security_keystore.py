"""
Unit tests for the keystore module.
"""

import base64
import pytest
from unittest.mock import MagicMock, patch
from keyring.errors import PasswordDeleteError
from cryptostore.security import keystore


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def mock_keyring_lib():
    """Patches the keyring module within cryptostore.security.keystore."""
    with patch("cryptostore.security.keystore.keyring", autospec=True) as mock_lib:
        yield mock_lib


def _backend(name, priority=1):
    backend = MagicMock()
    backend.__class__.__name__ = name
    backend.priority = priority
    return backend


# ==============================================================================
# Tests: save_key / load_key
# ==============================================================================

def test_save_key_encodes_and_stores(mock_keyring_lib):
    """Bytes are base64 encoded before they reach the backend."""
    key_bytes = b"\x01\x02\x03\x04"

    keystore.save_key("cryptostore_test", "alice", bytearray(key_bytes))

    called_service, called_account, called_secret = mock_keyring_lib.set_password.call_args[0]
    assert called_service == "cryptostore_test"
    assert called_account == "alice"
    assert called_secret == base64.b64encode(key_bytes).decode("ascii")


def test_load_key_returns_bytes(mock_keyring_lib):
    original_key = b"secret_bytes"
    mock_keyring_lib.get_password.return_value = base64.b64encode(original_key).decode("ascii")

    assert keystore.load_key("svc", "usr") == original_key


def test_load_key_returns_none_if_missing(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = None

    assert keystore.load_key("svc", "usr") is None


def test_load_key_returns_none_on_corrupt_data(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = "NotValidBase64!!!"

    assert keystore.load_key("svc", "usr") is None


# ==============================================================================
# Tests: delete_key
# ==============================================================================

def test_delete_key_calls_backend(mock_keyring_lib):
    keystore.delete_key("svc", "usr")
    mock_keyring_lib.delete_password.assert_called_once_with("svc", "usr")


def test_delete_key_ignores_missing_entry(mock_keyring_lib):
    mock_keyring_lib.delete_password.side_effect = PasswordDeleteError("Not found")

    # Should not raise
    keystore.delete_key("svc", "usr")


def test_delete_key_propagates_backend_failures(mock_keyring_lib):
    mock_keyring_lib.delete_password.side_effect = RuntimeError("DBus error")

    with pytest.raises(RuntimeError, match="DBus"):
        keystore.delete_key("svc", "usr")


# ==============================================================================
# Tests: assess_keyring_backend
# ==============================================================================

def test_assess_backend_insecure_names(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("PlaintextKeyring")

    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "insecure backend detected" in msg


def test_assess_backend_low_priority(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("Keyring", priority=0)

    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "no suitable secure keyring backend" in msg


@pytest.mark.parametrize("name", ["KeychainKeyring", "WinVaultKeyring", "SecretServiceKeyring", "KWalletKeyring"])
def test_assess_backend_secure_names(mock_keyring_lib, name):
    mock_keyring_lib.get_keyring.return_value = _backend(name)

    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is True
    assert "looks acceptable" in msg


def test_assess_backend_unknown_but_high_priority(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("SuperSecureHardwareKeyring", priority=5)

    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is True
    assert "treat with caution" in msg
