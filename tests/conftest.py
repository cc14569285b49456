"""Shared test fixtures."""

import pytest

from bucketfs import registry
from bucketfs.backends.azure import AzureBucket
from bucketfs.backends.fs import FilesystemBucket
from bucketfs.backends.memory import InMemoryBucket
from bucketfs.backends.s3 import S3Bucket, S3Options

from tests.fixtures.fake_clients import FakeBlobServiceClient, FakeS3Client


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's real bucketfs config."""
    monkeypatch.setenv("BUCKETFS_CONFIG", str(tmp_path / "no-such-config.yaml"))


@pytest.fixture
def restore_registry():
    """Snapshot the driver registry and restore it after the test."""
    saved = dict(registry._registry)
    yield
    registry._registry.clear()
    registry._registry.update(saved)


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def azure_client():
    return FakeBlobServiceClient()


@pytest.fixture
def mem_bucket():
    bucket = InMemoryBucket()
    yield bucket
    bucket.clear()


@pytest.fixture
def fs_bucket(tmp_path):
    return FilesystemBucket(tmp_path / "root")


@pytest.fixture
def s3_bucket(s3_client):
    return S3Bucket("mock-bucket", S3Options(), client=s3_client)


@pytest.fixture
def azure_bucket(azure_client):
    return AzureBucket("mock-container", client=azure_client)


@pytest.fixture(params=["mem", "fs", "s3", "azure"])
def bucket(request):
    """Every bundled driver, for contract tests."""
    return request.getfixturevalue(f"{request.param}_bucket")
