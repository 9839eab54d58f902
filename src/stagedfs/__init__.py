"""Staged in-memory directory trees committed to storage in one pass."""

__version__ = "0.1.0"

from stagedfs.descriptor import ROOT_MARKER, Descriptor
from stagedfs.errors import (
    AlreadyExistsError,
    DetachedError,
    DirectoryNotEmptyError,
    FsError,
    InvalidNameError,
    InvalidPathError,
    OpenOnDirectoryError,
    ParentNotDirectoryError,
    RootNotConfiguredError,
    RootParentTraversalError,
    StructureConflictError,
)
from stagedfs.fs import Fs, at, from_fs, parse

# Export the storage protocol for type hints and dependency injection
from stagedfs.protocols import Storage

__all__ = [
    "__version__",
    "ROOT_MARKER",
    "AlreadyExistsError",
    "Descriptor",
    "DetachedError",
    "DirectoryNotEmptyError",
    "Fs",
    "FsError",
    "InvalidNameError",
    "InvalidPathError",
    "OpenOnDirectoryError",
    "ParentNotDirectoryError",
    "RootNotConfiguredError",
    "RootParentTraversalError",
    "Storage",
    "StructureConflictError",
    "at",
    "from_fs",
    "parse",
]
