"""Tests for the Alibaba Cloud OSS store (S3-compatible client mocked)."""

import io
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from sealstore.errors import NotFoundError
from sealstore.kv.oss import OSSService


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def store(client):
    return OSSService("https://oss.example.com", "id", "secret", "unseal", "vault/", client=client)


def test_builds_client_for_endpoint():
    with patch("sealstore.kv.oss.boto3.client") as build:
        OSSService("https://oss-eu-central-1.aliyuncs.com", "id", "secret", "unseal")

    kwargs = build.call_args.kwargs
    assert build.call_args.args == ("s3",)
    assert kwargs["endpoint_url"] == "https://oss-eu-central-1.aliyuncs.com"
    assert kwargs["aws_access_key_id"] == "id"
    assert kwargs["aws_secret_access_key"] == "secret"


def test_get_reads_prefixed_object(store, client):
    client.get_object.return_value = {"Body": io.BytesIO(b"cipher")}

    assert store.get("vault-root") == b"cipher"
    client.get_object.assert_called_once_with(Bucket="unseal", Key="vault/vault-root")


def test_get_missing_object(store, client):
    client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")

    with pytest.raises(NotFoundError):
        store.get("vault-root")


def test_set_puts_object(store, client):
    store.set("k", b"cipher")

    client.put_object.assert_called_once_with(Bucket="unseal", Key="vault/k", Body=b"cipher")


def test_name(store):
    assert store.name == "oss://unseal/vault/"
