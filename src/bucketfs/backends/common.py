"""Helpers shared by the object-store drivers."""

import logging
import tempfile
from typing import BinaryIO, Callable

logger = logging.getLogger(__name__)


def download_to_tempfile(fill: Callable[[BinaryIO], None]) -> BinaryIO:
    """
    Materialize remote content into an anonymous temp file.

    The file is removed by the OS when the returned stream is closed, so
    the stream owns its staging resource.

    Args:
        fill: Callable writing the full object content into the given file

    Returns:
        Readable stream positioned at the start
    """
    tmp = tempfile.TemporaryFile(mode="w+b")
    try:
        fill(tmp)
        tmp.flush()
        tmp.seek(0)
    except BaseException:
        tmp.close()
        raise
    logger.debug("Materialized %d bytes into local staging", tmp.seek(0, 2))
    tmp.seek(0)
    return tmp
