"""Process-wide registry mapping URL schemes to bucket constructors.

Driver modules register themselves at import time::

    register("mem", lambda url: InMemoryBucket())

and callers turn connection strings into buckets with :func:`resolve`.
Registration overwrites; resolution is a plain lookup and never mutates.
"""

import logging
import threading
import urllib.parse
from typing import Callable, Dict, List
from urllib.parse import SplitResult

from .bucket import Bucket
from .errors import UnknownSchemeError

logger = logging.getLogger(__name__)

Constructor = Callable[[SplitResult], Bucket]

_registry: Dict[str, Constructor] = {}
_lock = threading.Lock()


def register(scheme: str, constructor: Constructor) -> None:
    """
    Register a bucket constructor for a URL scheme.

    Registering an already known scheme replaces the previous constructor.

    Args:
        scheme: URL scheme, e.g. "s3"
        constructor: Callable receiving the parsed URL and returning a Bucket
    """
    scheme = scheme.lower()
    with _lock:
        if scheme in _registry:
            logger.debug("Replacing bucket driver for scheme %s", scheme)
        _registry[scheme] = constructor


def unregister(scheme: str) -> None:
    """Remove a scheme. Unknown schemes are ignored."""
    with _lock:
        _registry.pop(scheme.lower(), None)


def registered_schemes() -> List[str]:
    """Return the registered schemes, sorted."""
    return sorted(_registry)


def resolve(url: str) -> Bucket:
    """
    Resolve a connection URL into a live bucket.

    Args:
        url: ``<scheme>://<host>[/<path>][?<query>]``

    Returns:
        Bucket built by the constructor registered for the scheme

    Raises:
        UnknownSchemeError: If no constructor is registered for the scheme
    """
    parsed = urllib.parse.urlsplit(url)
    scheme = parsed.scheme.lower()
    constructor = _registry.get(scheme)
    if constructor is None:
        raise UnknownSchemeError(scheme, url)

    logger.debug("Resolving %s://%s%s", scheme, parsed.netloc, parsed.path)
    return constructor(parsed)


def query_params(url: SplitResult) -> Dict[str, str]:
    """Return query parameters of a parsed URL, first value per key."""
    params = urllib.parse.parse_qs(url.query, keep_blank_values=True)
    return {key: values[0] for key, values in params.items() if values}
