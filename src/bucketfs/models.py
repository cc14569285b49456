"""Data models for blob metadata and write options."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileInfo(BaseModel):
    """Read-only snapshot of a blob's metadata."""

    model_config = ConfigDict(frozen=True)

    path: str                                  # Bucket-relative key
    size: int = Field(ge=0)                    # Size in bytes
    mtime: datetime                            # Last modification time
    content_type: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class WriteOptions(BaseModel):
    """
    Options accepted by ``Bucket.create``.

    The same option set can be handed to any driver: each driver reads
    the fields it understands and ignores the rest. Keys that are not
    declared here are dropped rather than rejected.
    """

    model_config = ConfigDict(extra="ignore")

    content_type: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    encoding: Optional[str] = None             # Used to encode str writes
    storage_class: Optional[str] = None        # Object stores only
    acl: Optional[str] = None                  # Canned ACL, object stores only
    sse: Optional[str] = None                  # Server-side encryption mode

    @field_validator("metadata", mode="before")
    @classmethod
    def stringify_metadata(cls, v):
        """Coerce metadata keys and values to strings."""
        if v is None:
            return {}
        return {str(k): str(val) for k, val in dict(v).items()}
