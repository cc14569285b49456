"""Filesystem bucket implementation."""

import logging
import mimetypes
import os
import urllib.parse
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Optional, Tuple

from ..bucket import Bucket
from ..errors import BlobNotFoundError, InvalidPathError
from ..models import FileInfo
from ..paths import match_glob, normalize_path, strip_prefix
from ..registry import query_params, register
from ..writer import AtomicWriter, TempFileWriter

logger = logging.getLogger(__name__)

# File names starting with this are in-flight writes; no blob may use it
STAGING_PREFIX = ".bucketfs-staging-"


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _sync_bucket_dir(directory: Path) -> None:
    """Flush a bucket directory entry after a blob was renamed into it."""
    if not hasattr(os, "O_DIRECTORY"):
        return  # no directory handles to fsync on this platform
    try:
        fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    except OSError as e:
        logger.debug("Cannot open bucket dir %s for sync: %s", directory, e)
        return
    try:
        os.fsync(fd)
    except OSError as e:
        logger.debug("Bucket dir %s was not synced: %s", directory, e)
    finally:
        os.close(fd)


class FilesystemBucket(Bucket):
    """
    Bucket rooted at a local directory.

    Writes go to a temp file next to the destination and are renamed over
    it on commit, so a reader sees either the old file or the new one.
    """

    def __init__(self, root: Path, encoding: Optional[str] = None):
        """
        Args:
            root: Root directory, created if missing
            encoding: Default encoding for ``str`` writes
        """
        super().__init__(encoding=encoding)
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._prefix = str(self.root).rstrip(os.sep) + os.sep

    def ls(self, pattern: str = "**/*") -> Iterator[str]:
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for name in filenames:
                if name.startswith(STAGING_PREFIX):
                    continue
                key = strip_prefix(os.path.join(dirpath, name), self._prefix)
                key = key.replace(os.sep, "/")
                if match_glob(pattern, key):
                    yield key

    def info(self, path: str) -> FileInfo:
        key, full = self._resolve(path)
        try:
            st = full.stat()
        except (FileNotFoundError, NotADirectoryError):
            raise BlobNotFoundError(key) from None
        if not full.is_file():
            raise BlobNotFoundError(key)

        return FileInfo(
            path=key,
            size=st.st_size,
            mtime=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            content_type=mimetypes.guess_type(key)[0],
        )

    def open(self, path: str) -> BinaryIO:
        key, full = self._resolve(path)
        try:
            return full.open("rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise BlobNotFoundError(key) from None

    def create(self, path: str, **options: Any) -> AtomicWriter:
        key, full = self._resolve(path)
        opts = self._options(options)
        full.parent.mkdir(parents=True, exist_ok=True)

        def commit(staged: Path) -> None:
            # NamedTemporaryFile creates 0600; give the blob the mode open() would
            os.chmod(staged, 0o666 & ~_current_umask())
            os.replace(staged, full)
            _sync_bucket_dir(full.parent)

        return TempFileWriter(
            key, commit, dir=full.parent, encoding=opts.encoding, prefix=STAGING_PREFIX
        )

    def rm(self, path: str) -> None:
        _, full = self._resolve(path)
        try:
            full.unlink()
        except (FileNotFoundError, NotADirectoryError):
            pass

    def mv(self, src: str, dst: str) -> None:
        src_key, full_src = self._resolve(src)
        _, full_dst = self._resolve(dst)
        if not full_src.is_file():
            raise BlobNotFoundError(src_key)

        full_dst.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(full_src, full_dst)
        except FileNotFoundError:
            raise BlobNotFoundError(src_key) from None
        _sync_bucket_dir(full_dst.parent)

    def _resolve(self, path: str) -> Tuple[str, Path]:
        key = normalize_path(path)
        if key.rsplit("/", 1)[-1].startswith(STAGING_PREFIX):
            raise InvalidPathError(key, f"names starting with {STAGING_PREFIX!r} are reserved")
        return key, self.root.joinpath(*key.split("/"))

    def __repr__(self) -> str:
        return f"FilesystemBucket({str(self.root)!r})"


def _from_url(url: urllib.parse.SplitResult) -> FilesystemBucket:
    # file:///abs/dir -> "/abs/dir"; file://rel/dir -> "rel/dir"
    root = urllib.parse.unquote(url.netloc + url.path)
    params = query_params(url)
    return FilesystemBucket(Path(root or "."), encoding=params.get("encoding"))


register("file", _from_url)
