"""Shared fixtures for files app tests."""

from collections.abc import Callable, Iterator
from typing import Any, Final

import boto3
import pytest
from botocore.client import BaseClient
from botocore.config import Config
from moto import mock_aws

from server.apps.files.infrastructure.storage import ObjectStore
from server.apps.files.logic.manager import FileManager, FileManagerOptions
from server.apps.files.types import AuthorizationMode

TEST_BUCKET: Final = 'files'


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fake credentials so nothing can reach a real AWS account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def s3_client(aws_credentials: None) -> Iterator[BaseClient]:
    """Mock S3 service with the test bucket.

    Yields:
        boto3 S3 client with the bucket created.
    """
    with mock_aws():
        client = boto3.client(
            's3',
            region_name='us-east-1',
            config=Config(signature_version='s3v4'),
        )
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture
def store(s3_client: BaseClient) -> ObjectStore:
    """Object store bound to the mocked bucket."""
    return ObjectStore(s3_client, TEST_BUCKET)


@pytest.fixture
def make_manager(store: ObjectStore) -> Callable[..., FileManager]:
    """Factory for managers over the mocked bucket.

    Managers allow every action unless options say otherwise.

    Returns:
        Callable accepting ``FileManagerOptions`` overrides.
    """

    def factory(**overrides: Any) -> FileManager:
        overrides.setdefault(
            'authorization_mode',
            AuthorizationMode.ALLOW_BY_DEFAULT,
        )
        return FileManager(
            store,
            FileManagerOptions(bucket=TEST_BUCKET, **overrides),
        )

    return factory


@pytest.fixture
def manager(make_manager: Callable[..., FileManager]) -> FileManager:
    """Manager with default options and allow-by-default authorization."""
    return make_manager()


@pytest.fixture
def put_objects(s3_client: BaseClient) -> Callable[..., None]:
    """Write objects straight to the mocked bucket.

    Returns:
        Callable taking keys; each object's body is its own key.
    """

    def writer(*keys: str) -> None:
        for key in keys:
            s3_client.put_object(
                Bucket=TEST_BUCKET,
                Key=key,
                Body=key.encode(),
            )

    return writer


@pytest.fixture
def bucket_keys(s3_client: BaseClient) -> Callable[[], list[str]]:
    """Read back every key in the mocked bucket.

    Returns:
        Callable returning the sorted key list.
    """

    def reader() -> list[str]:
        paginator = s3_client.get_paginator('list_objects_v2')
        keys: list[str] = []
        for page in paginator.paginate(Bucket=TEST_BUCKET):
            keys.extend(item['Key'] for item in page.get('Contents', []))
        return sorted(keys)

    return reader
