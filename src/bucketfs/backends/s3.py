"""S3 bucket implementation.

Works with AWS S3 and S3-compatible services (MinIO, Ceph) through boto3.

URL format::

    s3://<bucket>[/<prefix>]?region=eu-west-2&acl=private&sse=AES256
        &storage_class=STANDARD_IA&access_key_id=...&secret_access_key=...
        &endpoint_url=http://localhost:9000
"""

import logging
import urllib.parse
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Optional

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, ConfigDict

from ..bucket import Bucket
from ..errors import BlobNotFoundError
from ..models import FileInfo, WriteOptions
from ..paths import join_key, match_glob, normalize_path, strip_prefix
from ..registry import query_params, register
from ..writer import AtomicWriter, TempFileWriter
from .common import download_to_tempfile

logger = logging.getLogger(__name__)

# Error codes meaning "the object (or its bucket) does not exist"
NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


def _is_not_found(exc: ClientError) -> bool:
    code = str(exc.response.get("Error", {}).get("Code", ""))
    return code in NOT_FOUND_CODES


class S3Options(BaseModel):
    """Bucket-level S3 settings, usually taken from the URL query."""

    model_config = ConfigDict(extra="ignore")

    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    acl: Optional[str] = None               # Default canned ACL
    sse: Optional[str] = None               # Default server-side encryption
    storage_class: Optional[str] = None     # Default storage class
    prefix: str = ""                        # Key prefix inside the bucket
    encoding: Optional[str] = None


class S3Bucket(Bucket):
    """
    Bucket backed by an S3 bucket.

    Writes are staged to a local temp file and uploaded with a single
    ``put_object`` on commit; S3 never exposes a partial PUT to readers.
    Reads download the full object into a temp file first.
    """

    def __init__(self, name: str, options: Optional[S3Options] = None, client: Any = None):
        """
        Args:
            name: S3 bucket name
            options: Bucket defaults and credentials
            client: Preconfigured boto3 S3 client; built from options if omitted
        """
        self.options = options or S3Options()
        super().__init__(encoding=self.options.encoding)
        self.name = name
        self.prefix = self.options.prefix.strip("/")
        self._key_prefix = f"{self.prefix}/" if self.prefix else ""
        self.client = client if client is not None else self._build_client(self.options)

    @staticmethod
    def _build_client(options: S3Options) -> Any:
        """Create a boto3 S3 client from options."""
        return boto3.client(
            "s3",
            region_name=options.region,
            endpoint_url=options.endpoint_url,
            aws_access_key_id=options.access_key_id,
            aws_secret_access_key=options.secret_access_key,
        )

    @property
    def acl(self) -> Optional[str]:
        return self.options.acl

    @property
    def sse(self) -> Optional[str]:
        return self.options.sse

    @property
    def storage_class(self) -> Optional[str]:
        return self.options.storage_class

    def ls(self, pattern: str = "**/*") -> Iterator[str]:
        params: Dict[str, Any] = {"Bucket": self.name}
        if self._key_prefix:
            params["Prefix"] = self._key_prefix

        while True:
            response = self.client.list_objects_v2(**params)
            for obj in response.get("Contents", []):
                key = strip_prefix(obj["Key"], self._key_prefix)
                # Zero-byte "folder" placeholders, including the prefix's own, are not blobs
                if not key or key.endswith("/"):
                    continue
                if match_glob(pattern, key):
                    yield key

            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                break
            params["ContinuationToken"] = token

    def info(self, path: str) -> FileInfo:
        path = normalize_path(path)
        try:
            head = self.client.head_object(Bucket=self.name, Key=self._key(path))
        except ClientError as e:
            if _is_not_found(e):
                raise BlobNotFoundError(path) from e
            raise

        return FileInfo(
            path=path,
            size=head.get("ContentLength", 0),
            mtime=head["LastModified"],
            content_type=head.get("ContentType"),
            metadata=head.get("Metadata") or {},
        )

    def open(self, path: str) -> BinaryIO:
        path = normalize_path(path)
        try:
            response = self.client.get_object(Bucket=self.name, Key=self._key(path))
        except ClientError as e:
            if _is_not_found(e):
                raise BlobNotFoundError(path) from e
            raise

        body = response["Body"]

        def fill(f: BinaryIO) -> None:
            try:
                for chunk in iter(lambda: body.read(1024 * 1024), b""):
                    f.write(chunk)
            finally:
                body.close()

        return download_to_tempfile(fill)

    def create(self, path: str, **options: Any) -> AtomicWriter:
        path = normalize_path(path)
        opts = self._options(options)
        params = self._put_params(opts)
        params.update(Bucket=self.name, Key=self._key(path))

        def commit(staged: Path) -> None:
            with staged.open("rb") as f:
                self.client.put_object(Body=f, **params)
            logger.debug("Uploaded s3://%s/%s", self.name, params["Key"])

        return TempFileWriter(path, commit, encoding=opts.encoding)

    def rm(self, path: str) -> None:
        path = normalize_path(path)
        try:
            self.client.delete_object(Bucket=self.name, Key=self._key(path))
        except ClientError as e:
            if not _is_not_found(e):
                raise

    def cp(self, src: str, dst: str) -> None:
        src = normalize_path(src)
        dst = normalize_path(dst)
        if src == dst:
            # S3 rejects a copy onto itself unless something changes
            self.info(src)
            return

        params = self._put_params(WriteOptions())
        params.pop("Metadata", None)
        try:
            self.client.copy_object(
                Bucket=self.name,
                Key=self._key(dst),
                CopySource={"Bucket": self.name, "Key": self._key(src)},
                **params,
            )
        except ClientError as e:
            if _is_not_found(e):
                raise BlobNotFoundError(src) from e
            raise

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            close()

    def _key(self, path: str) -> str:
        return join_key(self.prefix, path)

    def _put_params(self, opts: WriteOptions) -> Dict[str, Any]:
        """Merge per-write options over the bucket defaults."""
        params: Dict[str, Any] = {}
        acl = opts.acl or self.options.acl
        sse = opts.sse or self.options.sse
        storage_class = opts.storage_class or self.options.storage_class
        if acl:
            params["ACL"] = acl
        if sse:
            params["ServerSideEncryption"] = sse
        if storage_class:
            params["StorageClass"] = storage_class
        if opts.content_type:
            params["ContentType"] = opts.content_type
        if opts.metadata:
            params["Metadata"] = dict(opts.metadata)
        return params

    def __repr__(self) -> str:
        return f"S3Bucket({self.name!r}, prefix={self.prefix!r})"


def _from_url(url: urllib.parse.SplitResult) -> S3Bucket:
    params = query_params(url)
    path_prefix = urllib.parse.unquote(url.path).strip("/")
    if path_prefix:
        params.setdefault("prefix", path_prefix)
    # Older URLs spell it out
    if "server_side_encryption" in params:
        params.setdefault("sse", params["server_side_encryption"])
    return S3Bucket(url.netloc, S3Options.model_validate(params))


register("s3", _from_url)
