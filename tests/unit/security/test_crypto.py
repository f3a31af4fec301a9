"""Unit tests for connection-string encryption."""

import base64

import pytest

from schemasmith.core.exceptions import ConfigurationError, EncryptionKeyError, ErrorCodes
from schemasmith.security import ConnectionStringCrypto, create_crypto

CONNECTION_STRING = "Server=db.internal;Database=Sales;User Id=app;Password=s3cr3t!"


class TestConnectionStringCrypto:
    """Test cases for ConnectionStringCrypto."""

    def test_generate_key_is_32_bytes(self):
        key = ConnectionStringCrypto.generate_key()

        assert len(base64.b64decode(key)) == 32
        assert key != ConnectionStringCrypto.generate_key()

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key_rejected(self, key):
        with pytest.raises(EncryptionKeyError) as exc_info:
            ConnectionStringCrypto(key)

        assert exc_info.value.code == ErrorCodes.ENCRYPTION_KEY_MISSING

    def test_raw_key_round_trip(self, crypto):
        token = crypto.encrypt(CONNECTION_STRING)

        assert crypto.uses_passphrase is False
        assert CONNECTION_STRING not in token
        assert crypto.decrypt(token) == CONNECTION_STRING

    def test_passphrase_round_trip(self):
        crypto = ConnectionStringCrypto("correct horse battery staple")

        token = crypto.encrypt(CONNECTION_STRING)

        assert crypto.uses_passphrase is True
        assert crypto.decrypt(token) == CONNECTION_STRING

    def test_encryption_is_randomized(self, crypto):
        assert crypto.encrypt(CONNECTION_STRING) != crypto.encrypt(CONNECTION_STRING)

    def test_wrong_key_fails(self, crypto):
        token = crypto.encrypt(CONNECTION_STRING)
        other = ConnectionStringCrypto(ConnectionStringCrypto.generate_key())

        with pytest.raises(ConfigurationError) as exc_info:
            other.decrypt(token)

        assert exc_info.value.code == ErrorCodes.DECRYPTION_FAILED

    def test_passphrase_cannot_read_raw_key_payload(self, crypto):
        token = crypto.encrypt(CONNECTION_STRING)

        with pytest.raises(ConfigurationError):
            ConnectionStringCrypto("a passphrase").decrypt(token)

    def test_tampered_payload_fails(self, crypto):
        payload = bytearray(base64.b64decode(crypto.encrypt(CONNECTION_STRING)))
        payload[-1] ^= 0x01

        with pytest.raises(ConfigurationError) as exc_info:
            crypto.decrypt(base64.b64encode(bytes(payload)).decode("ascii"))

        assert exc_info.value.code == ErrorCodes.DECRYPTION_FAILED

    @pytest.mark.parametrize("token", ["not base64!", "", base64.b64encode(b"\x00\x00abc").decode()])
    def test_malformed_payload_fails(self, crypto, token):
        with pytest.raises(ConfigurationError):
            crypto.decrypt(token)


class TestCreateCrypto:
    """Test cases for create_crypto."""

    def test_blank_key_returns_none(self):
        assert create_crypto(None) is None
        assert create_crypto("  ") is None

    def test_key_returns_helper(self):
        assert isinstance(create_crypto("passphrase"), ConnectionStringCrypto)
