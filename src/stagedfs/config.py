"""Configuration models for storage and flushing."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["FlushOptions", "StorageConfig"]

# Defaults used when materializing nodes on disk
DEFAULT_DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o644
DEFAULT_CHUNK_SIZE = 4096


class StorageConfig(BaseModel):
    """Settings for the physical storage collaborator."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    dir_mode: int = Field(default=DEFAULT_DIR_MODE, alias="dirMode", ge=0, le=0o7777)
    file_mode: int = Field(default=DEFAULT_FILE_MODE, alias="fileMode", ge=0, le=0o7777)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, alias="chunkSize", gt=0)


class FlushOptions(BaseModel):
    """Flags controlling a flush.

    Attributes:
        overwrite: Truncate staged files that already exist on storage
            instead of failing.
        remove: Remove pending deletions from storage.
    """

    overwrite: bool = False
    remove: bool = False
