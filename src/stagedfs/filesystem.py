"""Storage implementation backed by the local filesystem.

``RealFileSystem`` wraps standard library ``os``, ``Path`` and ``shutil``
operations and satisfies the ``Storage`` protocol structurally.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

from stagedfs.config import StorageConfig
from stagedfs.types import Entry

logger = logging.getLogger(__name__)


class RealFileSystem:
    """Production storage implementation."""

    def __init__(self, config: StorageConfig | None = None) -> None:
        """Initialize with optional storage settings.

        Args:
            config: Modes and copy chunk size. Defaults to StorageConfig().
        """
        self.config = config or StorageConfig()

    def exists(self, path: Path) -> bool:
        """Check if a path exists, propagating errors other than not-found."""
        try:
            path.stat()
        except FileNotFoundError:
            return False
        return True

    def make_directories(self, path: Path) -> None:
        """Create a directory and its ancestors."""
        path.mkdir(mode=self.config.dir_mode, parents=True, exist_ok=True)

    def create_file(
        self, path: Path, truncate: bool = False, fail_if_exists: bool = False
    ) -> None:
        """Create an empty file, optionally truncating or failing if present."""
        flags = os.O_CREAT | os.O_RDWR
        if truncate:
            flags |= os.O_TRUNC
        if fail_if_exists:
            flags |= os.O_EXCL
        fd = os.open(path, flags, self.config.file_mode)
        os.close(fd)

    def remove_one(self, path: Path) -> None:
        """Remove a file or an empty directory."""
        if path.is_dir() and not path.is_symlink():
            path.rmdir()
        else:
            path.unlink()

    def remove_tree(self, path: Path) -> None:
        """Remove a file or a directory tree."""
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

    def open_read(self, path: Path) -> BinaryIO:
        """Open an existing file read-only."""
        return path.open("rb")

    def open_read_write(self, path: Path, truncate: bool = False) -> BinaryIO:
        """Open a file read/write, creating it if absent."""
        flags = os.O_CREAT | os.O_RDWR
        if truncate:
            flags |= os.O_TRUNC
        fd = os.open(path, flags, self.config.file_mode)
        return os.fdopen(fd, "r+b")

    def list_directory(self, path: Path) -> list[Entry]:
        """List a directory's entries sorted by name."""
        with os.scandir(path) as it:
            entries = [Entry(e.name, e.is_dir(follow_symlinks=False)) for e in it]
        return sorted(entries)

    def copy_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Copy src into dst in chunks, returning the byte count."""
        start = dst.tell()
        shutil.copyfileobj(src, dst, self.config.chunk_size)
        dst.flush()
        copied = dst.tell() - start
        logger.debug("Copied %d bytes", copied)
        return copied
