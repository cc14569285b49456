"""Custom exceptions for bucketfs.

Every error raised by the core and by the bundled drivers derives from
:class:`BucketError`, so callers can handle the whole family in one place.
Backend-native failures that do not mean "object missing" are not wrapped.
"""


class BucketError(RuntimeError):
    """Base class for all bucket-related errors."""
    pass


class BlobNotFoundError(BucketError):
    """No blob exists at the addressed path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Blob not found: {path}")


class InvalidPathError(BucketError):
    """Path is empty or escapes the bucket root."""

    def __init__(self, path: str, reason: str = "escapes bucket root"):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid blob path {path!r}: {reason}")


class UnknownSchemeError(BucketError):
    """No driver is registered for the URL scheme."""

    def __init__(self, scheme: str, url: str):
        self.scheme = scheme
        self.url = url
        super().__init__(
            f"No bucket driver registered for scheme '{scheme}' (url: {url})"
        )


class WriterClosedError(BucketError):
    """Write attempted on a writer that was already committed or aborted."""

    def __init__(self, path: str, state: str):
        self.path = path
        self.state = state
        super().__init__(f"Writer for {path} is {state}, cannot accept more data")


class BucketConfigError(BucketError):
    """Bucket URL or configuration is incomplete or invalid."""
    pass
