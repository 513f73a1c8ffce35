"""Tests for the Google Cloud KMS key manager (discovery client mocked)."""

import base64
from unittest.mock import Mock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from sealstore.errors import DecryptionError, EncryptionError, UnavailableError
from sealstore.kms.gckms import GoogleCloudKMS

KEY_NAME = "projects/p/locations/global/keyRings/vault/cryptoKeys/unseal"


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b'{"error": {"message": "denied"}}')


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def crypto_keys(client):
    key_rings = client.projects.return_value.locations.return_value.keyRings.return_value
    return key_rings.cryptoKeys.return_value


@pytest.fixture
def kms(client):
    return GoogleCloudKMS("p", "global", "vault", "unseal", client=client)


def test_key_name(kms):
    assert kms.key_name == KEY_NAME
    assert kms.name == f"gckms:{KEY_NAME}"


def test_encrypt_sends_base64_plaintext(kms, crypto_keys):
    crypto_keys.encrypt.return_value.execute.return_value = {
        "ciphertext": base64.b64encode(b"blob").decode()
    }

    assert kms.encrypt(b"secret") == b"blob"
    crypto_keys.encrypt.assert_called_once_with(
        name=KEY_NAME, body={"plaintext": base64.b64encode(b"secret").decode()}
    )


def test_decrypt(kms, crypto_keys):
    crypto_keys.decrypt.return_value.execute.return_value = {
        "plaintext": base64.b64encode(b"secret").decode()
    }

    assert kms.decrypt(b"blob") == b"secret"
    crypto_keys.decrypt.assert_called_once_with(
        name=KEY_NAME, body={"ciphertext": base64.b64encode(b"blob").decode()}
    )


def test_decrypt_empty_plaintext(kms, crypto_keys):
    crypto_keys.decrypt.return_value.execute.return_value = {}

    assert kms.decrypt(b"blob") == b""


def test_permission_denied_is_encryption_error(kms, crypto_keys):
    crypto_keys.encrypt.return_value.execute.side_effect = http_error(403)

    with pytest.raises(EncryptionError):
        kms.encrypt(b"x")


def test_bad_ciphertext_is_decryption_error(kms, crypto_keys):
    crypto_keys.decrypt.return_value.execute.side_effect = http_error(400)

    with pytest.raises(DecryptionError):
        kms.decrypt(b"x")


@pytest.mark.parametrize("status", [429, 503])
def test_transient_status_is_unavailable(kms, crypto_keys, status):
    crypto_keys.decrypt.return_value.execute.side_effect = http_error(status)

    with pytest.raises(UnavailableError):
        kms.decrypt(b"x")


def test_transport_error_is_unavailable(kms, crypto_keys):
    crypto_keys.encrypt.return_value.execute.side_effect = httplib2.ServerNotFoundError("dns")

    with pytest.raises(UnavailableError):
        kms.encrypt(b"x")
