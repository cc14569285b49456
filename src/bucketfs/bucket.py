"""Capability interface implemented by every bucket driver."""

import logging
import shutil
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterator, Optional, Union

from .models import FileInfo, WriteOptions
from .paths import normalize_path
from .writer import AtomicWriter

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


class Bucket(ABC):
    """
    Handle to one root storage location.

    Drivers implement ``ls``, ``info``, ``open``, ``create`` and ``rm``.
    ``cp`` and ``mv`` have generic implementations built on those, which
    drivers override when the backend offers a native copy or rename.

    All paths are normalized through :func:`bucketfs.paths.normalize_path`
    before they reach the backend.
    """

    def __init__(self, encoding: Optional[str] = None):
        """
        Args:
            encoding: Default encoding for ``str`` writes when a ``create``
                call does not pass its own
        """
        self.encoding = encoding

    @abstractmethod
    def ls(self, pattern: str = "**/*") -> Iterator[str]:
        """
        Lazily list blob paths matching a glob pattern.

        ``*`` matches within one path segment, ``**`` across segments.
        Only blobs are yielded, never directory markers. Order is
        unspecified; each call enumerates afresh.
        """
        ...

    @abstractmethod
    def info(self, path: str) -> FileInfo:
        """
        Return metadata for a blob.

        Raises:
            BlobNotFoundError: If no blob exists at path
        """
        ...

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """
        Open a blob for reading.

        The caller must close the returned stream, preferably with ``with``.

        Raises:
            BlobNotFoundError: If no blob exists at path
        """
        ...

    @abstractmethod
    def create(self, path: str, **options: Any) -> AtomicWriter:
        """
        Open a blob for writing.

        Options are validated into :class:`WriteOptions`; unknown keys are
        ignored so the same options work across drivers. Nothing is visible
        at ``path`` until the writer is closed successfully.
        """
        ...

    @abstractmethod
    def rm(self, path: str) -> None:
        """Delete a blob. Deleting a missing blob is not an error."""
        ...

    def cp(self, src: str, dst: str) -> None:
        """
        Copy a blob within this bucket, leaving the source intact.

        Raises:
            BlobNotFoundError: If src does not exist
        """
        src = normalize_path(src)
        dst = normalize_path(dst)
        src_info = self.info(src)
        with self.open(src) as reader:
            with self.create(
                dst,
                content_type=src_info.content_type,
                metadata=src_info.metadata,
            ) as writer:
                shutil.copyfileobj(reader, writer, COPY_CHUNK_SIZE)

    def mv(self, src: str, dst: str) -> None:
        """
        Move a blob within this bucket.

        After success ``dst`` holds the former content of ``src`` and
        ``src`` no longer exists.

        Raises:
            BlobNotFoundError: If src does not exist
        """
        src = normalize_path(src)
        dst = normalize_path(dst)
        if src == dst:
            self.info(src)
            return
        self.cp(src, dst)
        self.rm(src)

    def read(self, path: str) -> bytes:
        """Read a whole blob into memory."""
        with self.open(path) as f:
            return f.read()

    def write(self, path: str, data: Union[bytes, str], **options: Any) -> None:
        """Write a whole blob in one atomic commit."""
        with self.create(path, **options) as w:
            w.write(data)

    def close(self) -> None:
        """Release driver resources. The base implementation holds none."""

    def __enter__(self) -> "Bucket":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def _options(self, options: dict) -> WriteOptions:
        """Validate create options, filling in the bucket's default encoding."""
        opts = WriteOptions.model_validate(options)
        if opts.encoding is None and self.encoding:
            opts = opts.model_copy(update={"encoding": self.encoding})
        return opts
