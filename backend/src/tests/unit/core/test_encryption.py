"""Unit tests for EncryptionGateway."""

import pytest
from cryptography.fernet import Fernet

from retainer.core.encryption import EncryptionGateway, generate_key
from retainer.core.exceptions import EncryptionError


@pytest.fixture
def gateway() -> EncryptionGateway:
    return EncryptionGateway()


def test_encrypt_decrypt(gateway, fernet_key):
    token = gateway.encrypt("https://export.example.com", fernet_key)
    assert token != "https://export.example.com"
    assert gateway.decrypt(token, fernet_key) == "https://export.example.com"


def test_decrypt_with_wrong_key_raises(gateway, fernet_key):
    token = gateway.encrypt("value", fernet_key)
    with pytest.raises(EncryptionError):
        gateway.decrypt(token, Fernet.generate_key().decode())


def test_missing_key_raises(gateway):
    with pytest.raises(EncryptionError, match="RETAINER_DB_KEY"):
        gateway.encrypt("value", "")


def test_invalid_key_raises(gateway):
    with pytest.raises(EncryptionError, match="Invalid encryption key"):
        gateway.encrypt("value", "not-a-fernet-key")


class TestConfigurations:
    def test_empty_and_none_store_as_null(self, gateway, fernet_key):
        assert gateway.encrypt_configurations({}, fernet_key) is None
        assert gateway.encrypt_configurations(None, fernet_key) is None

    def test_null_reads_as_empty_map(self, gateway, fernet_key):
        assert gateway.decrypt_configurations(None, fernet_key) == {}

    def test_map_survives_storage(self, gateway, fernet_key):
        configurations = {"b": "2", "a": "1"}
        token = gateway.encrypt_configurations(configurations, fernet_key)
        assert gateway.decrypt_configurations(token, fernet_key) == configurations

    def test_non_mapping_payload_rejected(self, gateway, fernet_key):
        token = gateway.encrypt('["a"]', fernet_key)
        with pytest.raises(EncryptionError, match="mapping"):
            gateway.decrypt_configurations(token, fernet_key)


class TestOptional:
    @pytest.mark.parametrize("value", [None, ""])
    def test_unset_stores_as_null(self, gateway, fernet_key, value):
        assert gateway.encrypt_optional(value, fernet_key) is None

    def test_null_reads_as_none(self, gateway, fernet_key):
        assert gateway.decrypt_optional(None, fernet_key) is None


def test_generate_key_is_usable(gateway):
    key = generate_key()
    assert gateway.decrypt(gateway.encrypt("x", key), key) == "x"
