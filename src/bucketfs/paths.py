"""Blob path rules shared by every driver.

Paths handed to a bucket are normalized once here, so that no driver
has to reimplement traversal checks against its native addressing.
"""

import re
from functools import lru_cache
from typing import Pattern

from .errors import InvalidPathError


def normalize_path(raw: str) -> str:
    """Normalize a caller-supplied path into a bucket-relative key.

    Backslashes are treated as separators, empty and ``.`` segments are
    dropped and ``..`` segments are resolved lexically. A leading slash
    is relative to the bucket root, not the host filesystem.

    Args:
        raw: Path as given by the caller

    Returns:
        Slash-separated key with no leading slash

    Raises:
        InvalidPathError: If the path is empty or climbs above the root
    """
    if raw is None or not str(raw).strip():
        raise InvalidPathError(str(raw), "empty path")

    parts = []
    for segment in str(raw).replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise InvalidPathError(raw)
            parts.pop()
            continue
        parts.append(segment)

    if not parts:
        raise InvalidPathError(raw, "resolves to bucket root")
    return "/".join(parts)


def strip_prefix(absolute: str, prefix: str) -> str:
    """Translate a native location back into a bucket-relative key.

    Returns the input unchanged when it does not start with ``prefix``.
    """
    if prefix and absolute.startswith(prefix):
        return absolute[len(prefix):]
    return absolute


def join_key(prefix: str, path: str) -> str:
    """Join an optional key prefix and a normalized path."""
    prefix = prefix.strip("/") if prefix else ""
    return f"{prefix}/{path}" if prefix else path


def _translate_class(pattern: str, start: int):
    """Translate a ``[...]`` class starting at ``start``.

    Returns (regex, next_index) or None if the class is unterminated.
    """
    i = start + 1
    negate = False
    if i < len(pattern) and pattern[i] in "!^":
        negate = True
        i += 1
    # A leading ']' is a literal member of the class
    j = i
    if j < len(pattern) and pattern[j] == "]":
        j += 1
    while j < len(pattern) and pattern[j] != "]":
        j += 1
    if j >= len(pattern):
        return None

    body = re.sub(r"([\\\[\]])", r"\\\1", pattern[i:j])
    if negate:
        return f"[^/{body}]", j + 1
    return f"(?!/)[{body}]", j + 1


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a path-aware glob into a regular expression.

    ``*`` and ``?`` never match ``/``. ``**/`` at the start of a segment
    matches zero or more whole directories, and a trailing ``**`` matches
    everything below its position.
    """
    out = []
    i = 0
    n = len(pattern)
    while i < n:
        at_segment_start = i == 0 or pattern[i - 1] == "/"
        if pattern.startswith("**/", i) and at_segment_start:
            out.append("(?:[^/]*/)*")
            i += 3
        elif pattern.startswith("**", i) and at_segment_start and i + 2 == n:
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            # Collapse runs such as "a**b" into a single segment wildcard
            while i < n and pattern[i] == "*":
                i += 1
            out.append("[^/]*")
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        elif pattern[i] == "[":
            translated = _translate_class(pattern, i)
            if translated is None:
                out.append(re.escape("["))
                i += 1
            else:
                regex, i = translated
                out.append(regex)
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out), re.DOTALL)


def match_glob(pattern: str, path: str) -> bool:
    """Check whether a bucket-relative path matches a glob pattern."""
    return compile_glob(pattern).fullmatch(path) is not None
