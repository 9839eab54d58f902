"""Descriptor: one file or directory in a staged tree.

A descriptor is owned by its parent's ``children`` map (the root is owned by
its ``Fs``) and points back at its parent through a weak ``ParentRef``. All
mutations are in-memory until the owning ``Fs`` is flushed; the exceptions are
``touch``, ``open``, ``remove`` and ``mirror``, which talk to storage
immediately.
"""

from __future__ import annotations

import logging
import os
import posixpath
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

from stagedfs.errors import (
    AlreadyExistsError,
    DetachedError,
    DirectoryNotEmptyError,
    InvalidNameError,
    InvalidPathError,
    OpenOnDirectoryError,
    ParentNotDirectoryError,
    RootParentTraversalError,
    StructureConflictError,
)
from stagedfs.types import ParentKind, ParentRef

if TYPE_CHECKING:
    from stagedfs.fs import Fs

logger = logging.getLogger(__name__)

SEPARATOR = "/"
# Reserved token addressing the container root; also the root's name.
ROOT_MARKER = "/"
CURRENT_DIR = "."
PARENT_DIR = ".."

_RESERVED_NAMES = frozenset({"", ROOT_MARKER, CURRENT_DIR, PARENT_DIR})


def split_head(path: str) -> tuple[str, str]:
    """Split a path at its first separator.

    Returns an empty head if the path begins with a separator, and an empty
    rest if it contains none.

    Example:
        >>> split_head("a/b/c")
        ('a', 'b/c')
        >>> split_head("/a")
        ('', 'a')
    """
    head, _, rest = path.partition(SEPARATOR)
    return head, rest


def validate_name(name: str) -> None:
    """Raise InvalidNameError if name cannot be used for a child."""
    if name in _RESERVED_NAMES or SEPARATOR in name:
        raise InvalidNameError(f"fs: invalid name {name!r}")


class Descriptor:
    """A file or directory node.

    Attributes:
        children: Child descriptors by name. Empty for files.
        metadata: Caller-defined values, never interpreted.
        committed: True once the node is known to exist on storage.
    """

    def __init__(
        self,
        name: str,
        parent: ParentRef | None,
        directory: bool,
        committed: bool = False,
    ) -> None:
        """Initialize a descriptor.

        Args:
            name: Node name, unique among its siblings.
            parent: Reference to the parent descriptor or owning Fs.
            directory: Whether this node is a directory. Fixed for life.
            committed: Whether the node already exists on storage.

        Note:
            Descriptors are created by ``Fs`` and by the resolver; callers
            use ``get``/``new_file``/``new_directory`` instead.
        """
        self._name = name
        self._parent = parent
        self._directory = directory
        self.children: dict[str, Descriptor] = {}
        self.metadata: dict[str, Any] = {}
        self.committed = committed

    def __repr__(self) -> str:
        kind = "dir" if self._directory else "file"
        return f"<Descriptor {self._name!r} ({kind})>"

    # ------------------------------------------------------------------
    # Identity and bookkeeping
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_directory(self) -> bool:
        return self._directory

    @property
    def is_root(self) -> bool:
        return self._parent is not None and self._parent.kind is ParentKind.ROOT

    @property
    def is_detached(self) -> bool:
        """True if this node or one of its ancestors was deleted."""
        try:
            self.fs
        except DetachedError:
            return True
        return False

    @property
    def parent(self) -> Descriptor | None:
        """Parent directory, or None for the root and detached nodes."""
        if self._parent is None or self._parent.kind is ParentKind.ROOT:
            return None
        return self._parent.resolve()

    @property
    def fs(self) -> Fs:
        """The Fs this descriptor belongs to.

        Raises:
            DetachedError: If the descriptor is no longer in a tree.
        """
        node = self
        while True:
            ref = node._parent
            target = ref.resolve() if ref is not None else None
            if target is None:
                raise DetachedError(descriptor=self)
            if ref.kind is ParentKind.ROOT:
                return target
            node = target

    @property
    def count(self) -> int:
        """Number of live children."""
        return len(self.children)

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def set_meta(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def path(self, absolute: bool = False) -> str:
        """Return the path of this descriptor.

        Args:
            absolute: Prefix with the Fs absolute path instead of returning
                a root-relative path starting with a separator.

        Raises:
            DetachedError: If the descriptor is no longer in a tree.
        """
        ref = self._parent
        target = ref.resolve() if ref is not None else None
        if target is None:
            raise DetachedError(descriptor=self)
        if ref.kind is ParentKind.ROOT:
            return str(target.absolute_path) if absolute else ROOT_MARKER
        parent_path = target.path(absolute)
        if absolute:
            return os.path.join(parent_path, self._name)
        return posixpath.join(parent_path, self._name)

    @property
    def physical_path(self) -> Path:
        return Path(self.path(absolute=True))

    def _sorted_children(self) -> list[Descriptor]:
        return [self.children[name] for name in sorted(self.children)]

    def files(self) -> list[Descriptor]:
        """Child files sorted by name."""
        return [d for d in self._sorted_children() if not d.is_directory]

    def directories(self) -> list[Descriptor]:
        """Child directories sorted by name."""
        return [d for d in self._sorted_children() if d.is_directory]

    def walk(self, recursive: bool = True) -> Iterator[Descriptor]:
        """Yield descendants depth-first, siblings in name order.

        The root itself is not yielded. Stop the walk by breaking out of
        the loop.

        Args:
            recursive: Descend into subdirectories.
        """
        for child in self._sorted_children():
            yield child
            if recursive:
                yield from child.walk()

    def children_paths(self, depth: int = -1, absolute: bool = False) -> list[str]:
        """Paths of descendants up to depth levels down, sorted.

        Args:
            depth: Levels to include; 1 means direct children, -1 unlimited.
            absolute: Return absolute paths.
        """
        if depth == 0:
            return []
        paths: list[str] = []
        for child in self.children.values():
            paths.append(child.path(absolute))
            if child.is_directory:
                paths.extend(child.children_paths(depth - 1 if depth > 0 else -1, absolute))
        return sorted(paths)

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------

    def get(self, path: str, directory: bool = False) -> Descriptor:
        """Return the descriptor a path names, creating missing nodes.

        Path may be a child name, a relative path, or a rooted path starting
        with a separator which is evaluated from the Fs root. ``.`` and ``..``
        are honored. Missing intermediate nodes are created as directories;
        a missing final node is created as a directory if ``directory`` is
        True, otherwise as a file. Existing nodes are returned as they are.

        Args:
            path: Path to resolve.
            directory: Type of the final element if it must be created.

        Returns:
            The resolved descriptor.

        Raises:
            InvalidNameError: If path is empty.
            RootParentTraversalError: If ``..`` is resolved from the root.
            InvalidPathError: If the path traverses through a file.
        """
        return self._resolve(path, directory, create=True)

    def find(self, path: str) -> Descriptor | None:
        """Like ``get`` but never creates; returns None if a node is missing."""
        return self._resolve(path, False, create=False)

    def _resolve(self, path: str, directory: bool, create: bool) -> Descriptor | None:
        path = path.strip()
        if not path:
            raise InvalidNameError(f"fs: invalid name {path!r}")
        if path == ROOT_MARKER:
            return self.fs.root

        head, rest = split_head(path)
        if not head:
            return self.fs.root._resolve(rest, directory, create)

        if head == CURRENT_DIR:
            target = self
        elif head == PARENT_DIR:
            target = self._parent_for_traversal()
        else:
            if not self._directory:
                raise InvalidPathError(
                    f"fs: {self.path()!r} is not a directory", descriptor=self
                )
            if create:
                # Intermediate elements are always directories
                target = self._get_or_create(head, directory if not rest else True)
            else:
                target = self.children.get(head)
                if target is None:
                    return None

        if rest:
            return target._resolve(rest, directory, create)
        return target

    def _parent_for_traversal(self) -> Descriptor:
        if self.is_root:
            raise RootParentTraversalError(descriptor=self)
        parent = self.parent
        if parent is None:
            raise DetachedError(descriptor=self)
        return parent

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _get_or_create(self, name: str, directory: bool) -> Descriptor:
        child = self.children.get(name)
        if child is None:
            child = Descriptor(name, ParentRef.node(self), directory)
            self.children[name] = child
            fs = self.fs
            if fs.pending.pop(child.path(), None) is not None:
                logger.debug("Recreated %s, no longer pending deletion", child.path())
        return child

    def new_child(self, name: str, directory: bool, exist_ok: bool = False) -> Descriptor:
        """Create a child file or directory.

        A name containing separators is treated as a path: everything before
        the last separator is resolved as a directory with ``get`` and the
        last element is created there.

        Args:
            name: Name of the child.
            directory: Create a directory instead of a file.
            exist_ok: Return an existing child of the same type instead of
                raising AlreadyExistsError.

        Returns:
            The created descriptor.

        Raises:
            InvalidNameError: If the name is empty or reserved.
            ParentNotDirectoryError: If this descriptor is a file.
            AlreadyExistsError: If the name is taken. The existing node is
                available as the error's ``descriptor``.
        """
        if SEPARATOR in name and name != ROOT_MARKER:
            head, _, tail = name.rpartition(SEPARATOR)
            parent = self.get(head, directory=True) if head else self.fs.root
            return parent.new_child(tail, directory, exist_ok)

        validate_name(name)
        if not self._directory:
            raise ParentNotDirectoryError(
                f"fs: cannot create {name!r} in file {self.path()!r}", descriptor=self
            )
        existing = self.children.get(name)
        if existing is not None:
            if exist_ok and existing.is_directory == directory:
                return existing
            raise AlreadyExistsError(
                f"fs: {existing.path()!r} already exists", descriptor=existing
            )
        return self._get_or_create(name, directory)

    def new_file(self, name: str, exist_ok: bool = False) -> Descriptor:
        """Create a child file. See ``new_child``."""
        return self.new_child(name, directory=False, exist_ok=exist_ok)

    def new_directory(self, name: str, exist_ok: bool = False) -> Descriptor:
        """Create a child directory. See ``new_child``."""
        return self.new_child(name, directory=True, exist_ok=exist_ok)

    def _subtree(self) -> Iterator[Descriptor]:
        yield self
        yield from self.walk()

    def delete(self, recursive: bool = False) -> None:
        """Detach this descriptor and schedule it for removal from storage.

        Paths of this node and of every descendant are recorded in the Fs
        pending deletions before detaching, then removed by the next
        ``Fs.flush(remove=True)``. Deleting the root deletes its children
        and keeps the root itself.

        Args:
            recursive: Allow deleting a directory that has children.

        Raises:
            DirectoryNotEmptyError: If this is a non-empty directory and
                recursive is False. Nothing is changed.
        """
        if self._directory and self.children and not recursive:
            raise DirectoryNotEmptyError(
                f"fs: directory {self.path()!r} not empty", descriptor=self
            )
        if self.is_root:
            for child in self._sorted_children():
                child.delete(recursive=True)
            return

        fs = self.fs
        own_path = self.path()
        snapshot = {node.path(): node for node in self._subtree()}
        parent = self.parent
        del parent.children[self._name]
        self._parent = None
        fs.pending.update(snapshot)
        logger.debug("Deleted %s (%d node(s) pending removal)", own_path, len(snapshot))

    def remove(self, recursive: bool = False) -> None:
        """Delete this descriptor from storage immediately.

        Staging is bypassed and the in-memory tree is left as it is, except
        for the root: removing the root also resets the Fs to an empty tree.

        Args:
            recursive: Remove a directory with its contents.

        Raises:
            FileNotFoundError: If the target does not exist on storage.
            OSError: If a non-recursive removal hits a non-empty directory.
        """
        fs = self.fs
        target = self.physical_path
        if recursive:
            fs.storage.remove_tree(target)
        else:
            fs.storage.remove_one(target)
        logger.debug("Removed %s", target)
        if self.is_root:
            fs.reset()

    # ------------------------------------------------------------------
    # Storage access
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        """Check if this descriptor exists on storage."""
        return self.fs.storage.exists(self.physical_path)

    def touch(self, overwrite: bool = False) -> None:
        """Create this descriptor on storage.

        Directories are created with their ancestors. Files get their parent
        directories created, then an empty file; an existing file raises
        FileExistsError unless overwrite is set, in which case it is
        truncated. A committed file is only ensured to exist.

        Args:
            overwrite: Truncate an existing file instead of failing.
        """
        storage = self.fs.storage
        target = self.physical_path
        if self._directory:
            storage.make_directories(target)
        else:
            storage.make_directories(target.parent)
            if self.committed:
                if not storage.exists(target):
                    storage.create_file(target)
            else:
                storage.create_file(target, truncate=overwrite, fail_if_exists=not overwrite)
        self.committed = True

    def open(self, truncate: bool = False) -> BinaryIO:
        """Open the backing file read/write, creating it if absent.

        Args:
            truncate: Clear the file on open.

        Returns:
            Seekable binary stream. Close it, or use it as a context manager.

        Raises:
            OpenOnDirectoryError: If this descriptor is a directory.
        """
        if self._directory:
            raise OpenOnDirectoryError(descriptor=self)
        return self.fs.storage.open_read_write(self.physical_path, truncate=truncate)

    def mirror(
        self,
        target: Fs,
        *,
        content: bool = True,
        recursive: bool = True,
        overwrite: bool = False,
    ) -> None:
        """Reproduce this descriptor in another Fs at the same relative path.

        The counterpart is resolved in the target tree, created on the
        target storage, and for files filled with this file's bytes. Nothing
        is ever deleted from the target.

        Args:
            target: Fs to mirror into.
            content: Copy file contents, not only structure.
            recursive: Mirror every descendant as well.
            overwrite: Replace existing target files. Without it they are
                left untouched.

        Raises:
            StructureConflictError: If the counterpart exists with the other
                type.
            InvalidPathError: If a target path element is a file.
            FileNotFoundError: If a source file to copy is missing on storage.
        """
        counterpart = target.get(self.path(), directory=self._directory)
        if counterpart.is_directory != self._directory:
            kind = "directory" if counterpart.is_directory else "file"
            raise StructureConflictError(
                f"fs: {counterpart.path()!r} is a {kind} in target",
                descriptor=counterpart,
            )

        if self._directory:
            counterpart.touch()
        elif counterpart.exists() and not overwrite:
            logger.debug("Keeping existing %s", counterpart.physical_path)
            counterpart.committed = True
        else:
            counterpart.touch(overwrite=True)
            if content:
                self._copy_content(counterpart)

        if recursive:
            for child in self._sorted_children():
                child.mirror(target, content=content, recursive=True, overwrite=overwrite)

    def _copy_content(self, counterpart: Descriptor) -> int:
        # Source is opened read-only
        with self.fs.storage.open_read(self.physical_path) as src, counterpart.open(truncate=True) as dst:
            copied = counterpart.fs.storage.copy_stream(src, dst)
        logger.debug("Mirrored %s -> %s (%d bytes)", self.path(), counterpart.physical_path, copied)
        return copied
