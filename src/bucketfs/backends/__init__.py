"""Bundled bucket drivers. Importing a driver module registers its scheme."""

from . import azure, fs, memory, s3
from .azure import AzureBucket
from .fs import FilesystemBucket
from .memory import InMemoryBucket
from .s3 import S3Bucket, S3Options

__all__ = [
    "AzureBucket",
    "FilesystemBucket",
    "InMemoryBucket",
    "S3Bucket",
    "S3Options",
]
