"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from stagedfs.fs import Fs


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Directory the staged tree is rooted at (not created)."""
    return tmp_path / "data"


@pytest.fixture
def fs(root_dir: Path) -> Fs:
    """Create an empty Fs over the real filesystem."""
    return Fs(root_dir)


@pytest.fixture
def populated_dir(tmp_path: Path) -> Path:
    """Create a physical directory tree.

    Layout::

        abc/file1.ext
        abc/file2.ext
        abc/def/file1.ext
        ghi/file1.ext
        top.txt
    """
    root = tmp_path / "populated"
    (root / "abc" / "def").mkdir(parents=True)
    (root / "ghi").mkdir()
    (root / "abc" / "file1.ext").write_text("abc-1")
    (root / "abc" / "file2.ext").write_text("abc-2")
    (root / "abc" / "def" / "file1.ext").write_text("def-1")
    (root / "ghi" / "file1.ext").write_text("ghi-1")
    (root / "top.txt").write_text("top")
    return root


# ============================================================================
# Mock Storage Fixture
# ============================================================================


@pytest.fixture
def mock_storage() -> MagicMock:
    """Create a mock Storage for testing.

    The mock tracks all storage operations without touching real files.
    """
    storage = MagicMock()
    storage.exists.return_value = False
    storage.list_directory.return_value = []
    return storage
