"""Unit tests for StorageConfig."""

from pathlib import Path

import pytest
from cryptostore.core.config import CHUNK_SIZE, StorageConfig
from cryptostore.core.exceptions import ConfigurationError


def test_defaults(tmp_path):
    config = StorageConfig(root=str(tmp_path))
    assert config.root == tmp_path
    assert config.chunk_size == CHUNK_SIZE == 65536
    assert config.data_extension == "cst"
    assert config.iv_extension == "iv"


def test_default_root_is_in_home():
    assert StorageConfig.default().root == Path.home() / ".cryptostore"


def test_root_expands_user():
    assert StorageConfig(root="~/x").root == Path.home() / "x"


@pytest.mark.parametrize("chunk_size", [0, -1, 1.5, "64"])
def test_invalid_chunk_size(tmp_path, chunk_size):
    with pytest.raises(ConfigurationError, match="chunk_size"):
        StorageConfig(root=tmp_path, chunk_size=chunk_size)


@pytest.mark.parametrize("ext", ["", "  ", "a.b"])
def test_invalid_extensions(tmp_path, ext):
    with pytest.raises(ConfigurationError):
        StorageConfig(root=tmp_path, data_extension=ext)


def test_extensions_must_differ(tmp_path):
    with pytest.raises(ConfigurationError, match="differ"):
        StorageConfig(root=tmp_path, data_extension="x", iv_extension="x")
