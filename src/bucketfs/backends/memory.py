"""In-memory bucket implementation for testing."""

import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Iterator, Optional

from ..bucket import Bucket
from ..errors import BlobNotFoundError
from ..models import FileInfo
from ..paths import match_glob, normalize_path
from ..registry import register
from ..writer import AtomicWriter, BufferWriter


@dataclass(frozen=True)
class _Entry:
    data: bytes
    mtime: datetime
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


class InMemoryBucket(Bucket):
    """
    Bucket backed by a process-local dict.

    Needs no I/O at all, which makes it the test double of choice for code
    written against the :class:`Bucket` interface. Commits replace the
    whole entry in one assignment; readers get independent streams.
    """

    def __init__(self, encoding: Optional[str] = None):
        super().__init__(encoding=encoding)
        self._files: Dict[str, _Entry] = {}

    def clear(self) -> None:
        """Remove all blobs."""
        self._files.clear()

    def ls(self, pattern: str = "**/*") -> Iterator[str]:
        # Snapshot keys so commits during iteration do not break it
        for key in list(self._files):
            if match_glob(pattern, key):
                yield key

    def info(self, path: str) -> FileInfo:
        path = normalize_path(path)
        entry = self._get(path)
        return FileInfo(
            path=path,
            size=len(entry.data),
            mtime=entry.mtime,
            content_type=entry.content_type,
            metadata=dict(entry.metadata),
        )

    def open(self, path: str) -> BinaryIO:
        path = normalize_path(path)
        return io.BytesIO(self._get(path).data)

    def create(self, path: str, **options: Any) -> AtomicWriter:
        path = normalize_path(path)
        opts = self._options(options)

        def commit(data: bytes) -> None:
            self._files[path] = _Entry(
                data=data,
                mtime=datetime.now(timezone.utc),
                content_type=opts.content_type,
                metadata=dict(opts.metadata),
            )

        return BufferWriter(path, commit, encoding=opts.encoding)

    def rm(self, path: str) -> None:
        self._files.pop(normalize_path(path), None)

    def cp(self, src: str, dst: str) -> None:
        src = normalize_path(src)
        dst = normalize_path(dst)
        entry = self._get(src)
        # Entries are immutable, so sharing one between keys is safe
        self._files[dst] = _Entry(
            data=entry.data,
            mtime=datetime.now(timezone.utc),
            content_type=entry.content_type,
            metadata=dict(entry.metadata),
        )

    def _get(self, path: str) -> _Entry:
        try:
            return self._files[path]
        except KeyError:
            raise BlobNotFoundError(path) from None


register("mem", lambda url: InMemoryBucket())
