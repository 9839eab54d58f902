"""Error types for staged filesystem operations.

Storage failures are not wrapped: they surface as the builtin ``OSError``
family (``FileNotFoundError``, ``FileExistsError``, ``PermissionError``...).
The errors here describe misuse of the in-memory tree itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stagedfs.descriptor import Descriptor

__all__ = [
    "AlreadyExistsError",
    "DetachedError",
    "DirectoryNotEmptyError",
    "FsError",
    "InvalidNameError",
    "InvalidPathError",
    "OpenOnDirectoryError",
    "ParentNotDirectoryError",
    "RootNotConfiguredError",
    "RootParentTraversalError",
    "StructureConflictError",
]


class FsError(Exception):
    """Base class for errors raised by the in-memory tree.

    Attributes:
        descriptor: The descriptor the error is about, if any.
    """

    default_message = "fs: error"

    def __init__(
        self, message: str | None = None, descriptor: Descriptor | None = None
    ) -> None:
        super().__init__(message or self.default_message)
        self.descriptor = descriptor


class InvalidNameError(FsError):
    """Empty name, or a reserved token used as a name."""

    default_message = "fs: invalid name"


class InvalidPathError(FsError):
    """Path traverses through a file where a directory was expected."""

    default_message = "fs: invalid path"


class ParentNotDirectoryError(FsError):
    """Child creation was attempted under a file."""

    default_message = "fs: parent is not a directory"


class AlreadyExistsError(FsError):
    """A child of that name already exists.

    This is a soft error: ``descriptor`` holds the existing node.
    """

    default_message = "fs: file already exists"


class DirectoryNotEmptyError(FsError):
    """Non-recursive delete of a directory with children."""

    default_message = "fs: directory not empty"


class RootParentTraversalError(FsError):
    """``..`` was resolved from the container root."""

    default_message = "fs: root parent traversal"


class OpenOnDirectoryError(FsError):
    """A directory was opened as a byte stream."""

    default_message = "fs: file is a directory"


class RootNotConfiguredError(FsError):
    """Parse was requested without a root path."""

    default_message = "fs: root not set"


class StructureConflictError(InvalidPathError):
    """Mirror target exists with the other type (file vs directory)."""

    default_message = "fs: target fs structure not compatible"


class DetachedError(FsError):
    """The descriptor was deleted from its tree and has no container."""

    default_message = "fs: descriptor is detached"
