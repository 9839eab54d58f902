"""Fs: a staged reflection of a directory tree rooted on storage.

The tree is built and changed in memory, then committed with ``flush``.
Deleted nodes are remembered by path until the next flush removes them.

Example:
    >>> fs = at("build")
    >>> fs.get("/docs/index.txt")
    <Descriptor 'index.txt' (file)>
    >>> fs.flush()
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from stagedfs.config import FlushOptions
from stagedfs.descriptor import ROOT_MARKER, Descriptor, validate_name
from stagedfs.errors import RootNotConfiguredError
from stagedfs.filesystem import RealFileSystem
from stagedfs.protocols import Storage
from stagedfs.types import ParentRef

logger = logging.getLogger(__name__)

INDENT = "  "


class Fs:
    """Container owning one rooted tree and its pending deletions.

    Attributes:
        root_path: Root directory as given on construction.
        absolute_path: Absolute form of root_path, computed once.
        root: The root directory descriptor.
        pending: Root-relative paths of deleted descriptors not yet removed
            from storage, mapped to the detached descriptors.
        storage: Storage collaborator performing physical operations.
    """

    def __init__(self, root_path: str | os.PathLike[str] = "", storage: Storage | None = None) -> None:
        """Bind a container to a root directory. No storage is touched.

        Args:
            root_path: Root directory, may be relative.
            storage: Storage implementation. Defaults to RealFileSystem().
        """
        self.root_path = os.fspath(root_path)
        self.absolute_path = Path(os.path.abspath(self.root_path))
        self.storage: Storage = storage or RealFileSystem()
        self.pending: dict[str, Descriptor] = {}
        self.root = self._new_root()

    def __repr__(self) -> str:
        return f"Fs({self.root_path!r})"

    def __str__(self) -> str:
        return "".join(_render_lines(self.root, 0))

    def _new_root(self) -> Descriptor:
        return Descriptor(ROOT_MARKER, ParentRef.root(self), directory=True)

    @property
    def pending_deletions(self) -> list[str]:
        """Sorted paths waiting to be removed from storage."""
        return sorted(self.pending)

    def reset(self) -> None:
        """Replace the tree with an empty root and drop pending deletions."""
        self.root = self._new_root()
        self.pending.clear()

    # Root delegation

    def get(self, path: str, directory: bool = False) -> Descriptor:
        return self.root.get(path, directory)

    def find(self, path: str) -> Descriptor | None:
        return self.root.find(path)

    def new_file(self, name: str, exist_ok: bool = False) -> Descriptor:
        return self.root.new_file(name, exist_ok)

    def new_directory(self, name: str, exist_ok: bool = False) -> Descriptor:
        return self.root.new_directory(name, exist_ok)

    def walk(self, recursive: bool = True) -> Iterator[Descriptor]:
        return self.root.walk(recursive)

    def children_paths(self, depth: int = -1, absolute: bool = False) -> list[str]:
        return self.root.children_paths(depth, absolute)

    def files(self) -> list[Descriptor]:
        return self.root.files()

    def directories(self) -> list[Descriptor]:
        return self.root.directories()

    @property
    def count(self) -> int:
        return self.root.count

    def delete(self, recursive: bool = False) -> None:
        self.root.delete(recursive)

    def remove(self, recursive: bool = False) -> None:
        self.root.remove(recursive)

    def mirror(self, target: Fs, **kwargs: Any) -> None:
        """Mirror the whole tree into target. See ``Descriptor.mirror``."""
        self.root.mirror(target, **kwargs)

    # Storage synchronization

    def parse(self) -> None:
        """Replace the tree with the structure found on storage.

        Pending deletions whose path is found on storage are dropped once the
        new tree is in place. A failed parse changes nothing.

        Raises:
            RootNotConfiguredError: If no root path was given.
            FileNotFoundError: If the root does not exist.
            NotADirectoryError: If the root is a file.
        """
        if not self.root_path:
            raise RootNotConfiguredError()
        root = self._new_root()
        root.committed = True
        self._parse_into(root, self.absolute_path)
        self.root = root
        # Paths found on storage count as re-created
        for descriptor in self.walk():
            self.pending.pop(descriptor.path(), None)
        logger.debug("Parsed %s", self.absolute_path)

    def _parse_into(self, node: Descriptor, path: Path) -> None:
        for entry in self.storage.list_directory(path):
            validate_name(entry.name)
            child = Descriptor(entry.name, ParentRef.node(node), entry.is_directory, committed=True)
            node.children[entry.name] = child
            if entry.is_directory:
                self._parse_into(child, path / entry.name)

    def flush(self, overwrite: bool = False, remove: bool = False) -> None:
        """Commit the tree to storage.

        Every live node is touched in name-sorted depth-first order,
        creating directories along the way. The first failure stops the
        flush and is raised; nodes created before it stay on storage.

        If remove is set, pending deletions are then removed deepest path
        first so each directory is empty by the time it is removed. Paths
        already absent are skipped.

        Pending deletions are cleared whether or not the flush succeeds.

        Args:
            overwrite: Truncate staged files that already exist on storage
                instead of raising FileExistsError.
            remove: Remove pending deletions from storage.
        """
        try:
            self.root.touch(overwrite)
            touched = 0
            for descriptor in self.walk():
                descriptor.touch(overwrite)
                touched += 1
            logger.info("Materialized %d node(s) under %s", touched, self.absolute_path)
            if remove:
                self._prune()
        finally:
            self.pending.clear()

    def flush_with(self, options: FlushOptions) -> None:
        """Flush using a FlushOptions model."""
        self.flush(overwrite=options.overwrite, remove=options.remove)

    def _prune(self) -> None:
        # Reverse lexicographic order puts every path before its ancestors
        removed = 0
        for rel_path in sorted(self.pending, reverse=True):
            target = self.absolute_path / rel_path.lstrip("/")
            try:
                self.storage.remove_one(target)
            except FileNotFoundError:
                logger.debug("Already absent: %s", target)
                continue
            removed += 1
            logger.debug("Pruned %s", target)
        logger.info("Pruned %d path(s) under %s", removed, self.absolute_path)


def _render_lines(node: Descriptor, depth: int) -> Iterator[str]:
    for child in node.walk(recursive=False):
        yield f"{INDENT * depth} {child.name}\n"
        if child.count:
            yield from _render_lines(child, depth + 1)


def at(root: str | os.PathLike[str], storage: Storage | None = None) -> Fs:
    """Return an empty Fs rooted at root. No storage is touched."""
    return Fs(root, storage)


def parse(root: str | os.PathLike[str], storage: Storage | None = None) -> Fs:
    """Return an Fs reflecting the directory tree found at root.

    Raises:
        RootNotConfiguredError: If root is empty.
        OSError: If the root cannot be listed.
    """
    fs = Fs(root, storage)
    fs.parse()
    return fs


def from_fs(
    root: str | os.PathLike[str],
    source: Fs,
    *,
    content: bool = True,
    recursive: bool = True,
    overwrite: bool = False,
    storage: Storage | None = None,
) -> Fs:
    """Return a new Fs at root holding a mirror of source.

    Args:
        root: Root directory of the new Fs.
        source: Fs to mirror.
        content: Copy file contents.
        recursive: Mirror the whole tree rather than only the root.
        overwrite: Replace files already present under root.
        storage: Storage for the new Fs. Defaults to the source's storage.

    Returns:
        The new Fs. Its nodes already exist on storage.
    """
    target = Fs(root, storage or source.storage)
    source.root.mirror(target, content=content, recursive=recursive, overwrite=overwrite)
    return target
