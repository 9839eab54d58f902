"""Shared data types for stagedfs."""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from stagedfs.descriptor import Descriptor
    from stagedfs.fs import Fs

__all__ = ["Entry", "ParentKind", "ParentRef"]


class Entry(NamedTuple):
    """One item of a physical directory listing."""

    name: str
    is_directory: bool


class ParentKind(Enum):
    """What a descriptor's parent reference points at."""

    NODE = "node"
    ROOT = "root"


@dataclass(frozen=True)
class ParentRef:
    """Non-owning reference from a descriptor to its parent.

    A root descriptor points at its owning ``Fs`` (``ROOT``); every other
    descriptor points at the directory holding it (``NODE``). Only a weak
    reference is held so the tree has no ownership cycles.
    """

    kind: ParentKind
    target: weakref.ReferenceType

    @classmethod
    def node(cls, parent: Descriptor) -> ParentRef:
        return cls(ParentKind.NODE, weakref.ref(parent))

    @classmethod
    def root(cls, fs: Fs) -> ParentRef:
        return cls(ParentKind.ROOT, weakref.ref(fs))

    def resolve(self) -> Descriptor | Fs | None:
        """Return the referent, or None if it has been garbage collected."""
        return self.target()
