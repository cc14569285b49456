"""Azure blob storage bucket implementation.

URL format::

    azure://<container>[/<prefix>][?connection_string=...]

Without a ``connection_string`` query parameter the connection string is
read from ``AZURE_STORAGE_CONNECTION_STRING``.
"""

import logging
import os
import urllib.parse
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from ..bucket import Bucket
from ..errors import BlobNotFoundError, BucketConfigError
from ..models import FileInfo
from ..paths import join_key, match_glob, normalize_path, strip_prefix
from ..registry import query_params, register
from ..writer import AtomicWriter, TempFileWriter
from .common import download_to_tempfile

logger = logging.getLogger(__name__)

CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"

# Storage classes that are valid block blob access tiers
ACCESS_TIERS = {name.lower(): name for name in ("Hot", "Cool", "Cold", "Archive")}


class AzureBucket(Bucket):
    """
    Bucket backed by an Azure Blob Storage container.

    Writes are staged to a local temp file and uploaded in one
    ``upload_blob`` call on commit. Copies go through the generic
    download-and-upload path so they complete synchronously.
    """

    def __init__(
        self,
        container: str,
        connection_string: Optional[str] = None,
        prefix: str = "",
        client: Optional[BlobServiceClient] = None,
        encoding: Optional[str] = None,
    ):
        """
        Initialize Azure bucket.

        Args:
            container: Container name, created if missing
            connection_string: Azure Storage connection string
            prefix: Optional key prefix
            client: Preconfigured service client; overrides connection_string
            encoding: Default encoding for ``str`` writes
        """
        super().__init__(encoding=encoding)
        if client is None:
            if not connection_string:
                raise BucketConfigError(
                    f"Set {CONNECTION_STRING_ENV} or pass connection_string "
                    f"for Azure container '{container}'"
                )
            client = BlobServiceClient.from_connection_string(connection_string)

        self.client = client
        self.container = container
        self.prefix = prefix.strip("/") if prefix else ""
        self._key_prefix = f"{self.prefix}/" if self.prefix else ""

        # Ensure container exists
        self._container_client = self.client.get_container_client(container)
        if not self._container_client.exists():
            self._container_client.create_container()

    def ls(self, pattern: str = "**/*") -> Iterator[str]:
        kwargs: Dict[str, Any] = {}
        if self._key_prefix:
            kwargs["name_starts_with"] = self._key_prefix
        for blob in self._container_client.list_blobs(**kwargs):
            key = strip_prefix(blob.name, self._key_prefix)
            if not key or key.endswith("/"):
                continue
            if match_glob(pattern, key):
                yield key

    def info(self, path: str) -> FileInfo:
        path = normalize_path(path)
        try:
            props = self._blob(path).get_blob_properties()
        except ResourceNotFoundError as e:
            raise BlobNotFoundError(path) from e

        settings = props.content_settings
        return FileInfo(
            path=path,
            size=props.size,
            mtime=props.last_modified,
            content_type=settings.content_type if settings else None,
            metadata=props.metadata or {},
        )

    def open(self, path: str) -> BinaryIO:
        path = normalize_path(path)
        try:
            downloader = self._blob(path).download_blob()
        except ResourceNotFoundError as e:
            raise BlobNotFoundError(path) from e
        return download_to_tempfile(downloader.readinto)

    def create(self, path: str, **options: Any) -> AtomicWriter:
        path = normalize_path(path)
        opts = self._options(options)
        blob_client = self._blob(path)

        upload_kwargs: Dict[str, Any] = {"overwrite": True}
        if opts.content_type:
            upload_kwargs["content_settings"] = ContentSettings(content_type=opts.content_type)
        if opts.metadata:
            upload_kwargs["metadata"] = dict(opts.metadata)
        tier = ACCESS_TIERS.get((opts.storage_class or "").lower())
        if tier:
            upload_kwargs["standard_blob_tier"] = tier
        elif opts.storage_class:
            logger.debug("Ignoring storage class %r, not an Azure access tier", opts.storage_class)

        def commit(staged: Path) -> None:
            with staged.open("rb") as f:
                blob_client.upload_blob(f, **upload_kwargs)
            logger.debug("Uploaded azure://%s/%s", self.container, self._key(path))

        return TempFileWriter(path, commit, encoding=opts.encoding)

    def rm(self, path: str) -> None:
        path = normalize_path(path)
        try:
            self._blob(path).delete_blob()
        except ResourceNotFoundError:
            pass

    def close(self) -> None:
        self.client.close()

    def _key(self, path: str) -> str:
        return join_key(self.prefix, path)

    def _blob(self, path: str):
        return self.client.get_blob_client(container=self.container, blob=self._key(path))

    def __repr__(self) -> str:
        return f"AzureBucket({self.container!r}, prefix={self.prefix!r})"


def _from_url(url: urllib.parse.SplitResult) -> AzureBucket:
    params = query_params(url)
    if not url.netloc:
        raise BucketConfigError(f"Azure URL needs a container: {url.geturl()}")
    connection_string = params.get("connection_string") or os.environ.get(CONNECTION_STRING_ENV)
    prefix = params.get("prefix") or urllib.parse.unquote(url.path).strip("/")
    return AzureBucket(
        url.netloc,
        connection_string=connection_string,
        prefix=prefix,
        encoding=params.get("encoding"),
    )


register("azure", _from_url)
