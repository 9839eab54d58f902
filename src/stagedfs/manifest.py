"""Change-set manifests applied through the staged API.

A manifest is a YAML document listing nodes to create and paths to delete
under a root, plus the flush options to commit them with:

    root: ./build
    create:
      - path: /docs/index.txt
        content: "hello"
      - path: /cache
        directory: true
    delete:
      - path: /old
        recursive: true
    flush:
      overwrite: false
      remove: true
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from stagedfs.config import FlushOptions
from stagedfs.errors import InvalidPathError
from stagedfs.fs import Fs
from stagedfs.protocols import Storage

logger = logging.getLogger(__name__)


class CreateEntry(BaseModel):
    """A node to create."""

    path: str
    directory: bool = False
    content: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def _path_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path cannot be empty")
        return value

    @model_validator(mode="after")
    def _directory_has_no_content(self) -> CreateEntry:
        if self.directory and self.content is not None:
            raise ValueError(f"directory {self.path!r} cannot have content")
        return self


class DeleteEntry(BaseModel):
    """A path to delete."""

    path: str
    recursive: bool = False


class Manifest(BaseModel):
    """A staged change set for one root."""

    root: str
    parse: bool = True
    create: list[CreateEntry] = Field(default_factory=list)
    delete: list[DeleteEntry] = Field(default_factory=list)
    flush: FlushOptions = Field(default_factory=FlushOptions)

    @classmethod
    def from_file(cls, path: Path) -> Manifest:
        """Load a manifest from a YAML file.

        Relative roots are resolved against the manifest's directory.

        Args:
            path: Path to the manifest.

        Returns:
            Parsed Manifest.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If the YAML is malformed.
            pydantic.ValidationError: If the document doesn't match.
        """
        if not path.exists():
            raise FileNotFoundError(f"Manifest not found: {path}")

        data = yaml.safe_load(path.read_text()) or {}
        manifest = cls.model_validate(data)
        if not Path(manifest.root).is_absolute():
            manifest.root = str(path.parent / manifest.root)
        return manifest


def stage_manifest(manifest: Manifest, storage: Storage | None = None) -> Fs:
    """Build the staged Fs a manifest describes without flushing it.

    Args:
        manifest: The change set.
        storage: Storage implementation for the Fs.

    Returns:
        Fs with creations and deletions staged.

    Raises:
        InvalidPathError: If a path to delete is not in the tree.
        FsError: For any invalid creation or deletion.
    """
    fs = Fs(manifest.root, storage)
    if manifest.parse and fs.storage.exists(fs.absolute_path):
        fs.parse()

    for entry in manifest.create:
        descriptor = fs.get(entry.path, directory=entry.directory)
        for key, value in entry.meta.items():
            descriptor.set_meta(key, value)

    for entry in manifest.delete:
        descriptor = fs.find(entry.path)
        if descriptor is None:
            raise InvalidPathError(f"fs: {entry.path!r} not found")
        descriptor.delete(recursive=entry.recursive)

    return fs


def apply_manifest(manifest: Manifest, storage: Storage | None = None, dry_run: bool = False) -> Fs:
    """Stage a manifest, flush it, and write file contents.

    Args:
        manifest: The change set.
        storage: Storage implementation for the Fs.
        dry_run: Stage only; nothing is written to storage.

    Returns:
        The staged (and, unless dry_run, flushed) Fs.
    """
    fs = stage_manifest(manifest, storage)
    if dry_run:
        logger.info("Dry run: %d pending deletion(s) not applied", len(fs.pending))
        return fs

    fs.flush_with(manifest.flush)
    for entry in manifest.create:
        if entry.content is None:
            continue
        descriptor = fs.find(entry.path)
        if descriptor is None:
            # Deleted later in the same manifest
            continue
        with descriptor.open(truncate=True) as stream:
            stream.write(entry.content.encode())
        logger.debug("Wrote %d characters to %s", len(entry.content), entry.path)
    return fs
