"""Protocol definitions for the storage collaborator.

The in-memory tree never touches disk directly; every physical operation goes
through an object satisfying ``Storage``. Implementations satisfy the protocol
structurally (duck typing), which lets tests substitute doubles.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from stagedfs.types import Entry


@runtime_checkable
class Storage(Protocol):
    """Protocol for physical storage operations."""

    def exists(self, path: Path) -> bool:
        """Check if a path exists.

        Args:
            path: Path to check.

        Returns:
            True if path exists, False if it does not.

        Raises:
            OSError: Any stat failure other than "not found".
        """
        ...

    def make_directories(self, path: Path) -> None:
        """Create a directory and any missing ancestors.

        Args:
            path: Directory to create. Existing directories are not an error.
        """
        ...

    def create_file(
        self, path: Path, truncate: bool = False, fail_if_exists: bool = False
    ) -> None:
        """Create an empty file.

        Args:
            path: File to create. Its parent directory must exist.
            truncate: Clear the file if it already exists.
            fail_if_exists: Raise FileExistsError if it already exists.
        """
        ...

    def remove_one(self, path: Path) -> None:
        """Remove a file or an empty directory.

        Args:
            path: Path to remove.

        Raises:
            FileNotFoundError: If path does not exist.
            OSError: If path is a non-empty directory.
        """
        ...

    def remove_tree(self, path: Path) -> None:
        """Remove a file or a directory with everything below it.

        Args:
            path: Path to remove.
        """
        ...

    def open_read(self, path: Path) -> BinaryIO:
        """Open an existing file for reading only.

        Args:
            path: File to open.

        Returns:
            Binary stream. The caller closes it.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        ...

    def open_read_write(self, path: Path, truncate: bool = False) -> BinaryIO:
        """Open a file for reading and writing, creating it if absent.

        Args:
            path: File to open.
            truncate: Clear the file on open.

        Returns:
            Seekable binary stream. The caller closes it.
        """
        ...

    def list_directory(self, path: Path) -> list[Entry]:
        """List the immediate contents of a directory.

        Args:
            path: Directory to list.

        Returns:
            Entries sorted by name.
        """
        ...

    def copy_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Copy the remaining bytes of src into dst.

        Args:
            src: Stream to read from.
            dst: Stream to write to.

        Returns:
            Number of bytes copied.
        """
        ...
