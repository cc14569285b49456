"""Uniform bucket abstraction over blob storage backends."""

from .bucket import Bucket
from .errors import (
    BlobNotFoundError,
    BucketConfigError,
    BucketError,
    InvalidPathError,
    UnknownSchemeError,
    WriterClosedError,
)
from .models import FileInfo, WriteOptions
from .paths import match_glob, normalize_path, strip_prefix
from .registry import register, registered_schemes, resolve, unregister
from .writer import AtomicWriter, WriterState
from .backends import AzureBucket, FilesystemBucket, InMemoryBucket, S3Bucket

__version__ = "0.1.0"

__all__ = [
    "AtomicWriter",
    "AzureBucket",
    "BlobNotFoundError",
    "Bucket",
    "BucketConfigError",
    "BucketError",
    "FileInfo",
    "FilesystemBucket",
    "InMemoryBucket",
    "InvalidPathError",
    "S3Bucket",
    "UnknownSchemeError",
    "WriteOptions",
    "WriterClosedError",
    "WriterState",
    "match_glob",
    "normalize_path",
    "register",
    "registered_schemes",
    "resolve",
    "strip_prefix",
    "unregister",
]
