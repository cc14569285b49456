"""Stage-then-commit writers.

A writer accepts bytes into a private staging area and only publishes them
at the destination when it is closed without error. Drivers supply the
commit action; everything else (state tracking, scoped usage, cleanup of
the staging resource on every exit path) lives here.

Typical usage::

    with bucket.create("reports/today.csv", content_type="text/csv") as w:
        w.write(b"a,b\\n")
    # committed here, or aborted if the block raised
"""

import io
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import WriterClosedError

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


class WriterState(str, Enum):
    """Lifecycle of an atomic writer."""
    OPEN = "open"              # Accepting bytes
    COMMITTING = "committing"  # Commit action in progress
    COMMITTED = "committed"    # Destination holds the new content
    ABORTED = "aborted"        # Destination untouched, staging discarded


class AtomicWriter:
    """
    Base class for write sinks that commit atomically on close.

    Subclasses provide the staging medium (``_stage``), the commit action
    (``_commit``) and the release of the staging resource (``_release``).
    Exactly one of commit or abort ever runs; repeated ``close()`` or
    ``abort()`` calls return the terminal state without side effects.
    """

    def __init__(self, path: str, encoding: Optional[str] = None):
        self.path = path
        self.encoding = encoding or DEFAULT_ENCODING
        self._state = WriterState.OPEN
        self._size = 0

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is not WriterState.OPEN

    def writable(self) -> bool:
        return not self.closed

    def tell(self) -> int:
        """Number of bytes staged so far."""
        return self._size

    def write(self, data: Union[bytes, bytearray, memoryview, str]) -> int:
        """Stage data for the destination.

        ``str`` input is encoded with the writer's encoding.

        Returns:
            Number of bytes staged

        Raises:
            WriterClosedError: If the writer is no longer open
        """
        if self._state is not WriterState.OPEN:
            raise WriterClosedError(self.path, self._state.value)
        if isinstance(data, str):
            data = data.encode(self.encoding)
        data = bytes(data)
        self._stage(data)
        self._size += len(data)
        return len(data)

    def writelines(self, lines) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        """No-op; content only becomes visible on commit."""

    def close(self) -> WriterState:
        """Commit staged content to the destination.

        A failing commit leaves the writer aborted and re-raises the
        original error. The staging resource is released either way.
        """
        if self._state is not WriterState.OPEN:
            return self._state

        self._state = WriterState.COMMITTING
        try:
            self._commit()
        except BaseException:
            self._state = WriterState.ABORTED
            logger.debug("Commit failed, aborted write to %s", self.path)
            raise
        else:
            self._state = WriterState.COMMITTED
            logger.debug("Committed %d bytes to %s", self._size, self.path)
        finally:
            self._release()
        return self._state

    def abort(self) -> WriterState:
        """Discard staged content, leaving the destination untouched."""
        if self._state is not WriterState.OPEN:
            return self._state

        self._state = WriterState.ABORTED
        try:
            self._release()
        finally:
            logger.debug("Aborted write to %s", self.path)
        return self._state

    def __enter__(self) -> "AtomicWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.abort()
        else:
            self.close()
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} path={self.path!r} state={self._state.value}>"

    # Subclass hooks

    def _stage(self, data: bytes) -> None:
        raise NotImplementedError

    def _commit(self) -> None:
        raise NotImplementedError

    def _release(self) -> None:
        raise NotImplementedError


class TempFileWriter(AtomicWriter):
    """
    Writer staging into a named temporary file.

    On close the file is flushed and fsynced, then handed to ``on_commit``
    as a path. The commit action may move the file away (rename) or read
    it (upload); whatever remains afterwards is deleted.

    Args:
        path: Destination blob path
        on_commit: Commit action receiving the staged file
        dir: Directory for the temp file; use the destination directory
            when the commit is a rename so it stays on one filesystem
        encoding: Encoding applied to ``str`` writes
        prefix: Temp file name prefix; defaults to ``.<name>.tmp-``
    """

    def __init__(
        self,
        path: str,
        on_commit: Callable[[Path], None],
        dir: Optional[Path] = None,
        encoding: Optional[str] = None,
        prefix: Optional[str] = None,
    ):
        super().__init__(path, encoding)
        self._on_commit = on_commit
        if prefix is None:
            prefix = f".{Path(path).name or 'blob'}.tmp-"
        self._file = tempfile.NamedTemporaryFile(
            mode="wb",
            delete=False,
            dir=dir,
            prefix=prefix,
            suffix="",
        )
        self.staging_path = Path(self._file.name)

    def _stage(self, data: bytes) -> None:
        self._file.write(data)

    def _commit(self) -> None:
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        self._on_commit(self.staging_path)

    def _release(self) -> None:
        if not self._file.closed:
            self._file.close()
        try:
            self.staging_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove staging file %s: %s", self.staging_path, e)


class BufferWriter(AtomicWriter):
    """
    Writer staging into an in-process buffer.

    On close the complete content is handed to ``on_commit`` as bytes, so
    the commit is a single assignment on the caller's side.
    """

    def __init__(
        self,
        path: str,
        on_commit: Callable[[bytes], None],
        encoding: Optional[str] = None,
    ):
        super().__init__(path, encoding)
        self._on_commit = on_commit
        self._buffer = io.BytesIO()

    def _stage(self, data: bytes) -> None:
        self._buffer.write(data)

    def _commit(self) -> None:
        self._on_commit(self._buffer.getvalue())

    def _release(self) -> None:
        self._buffer.close()
