"""Application context for dependency injection.

Separates object creation from object use so CLI commands can be exercised
with test doubles. Dependencies are typed with the Storage protocol rather
than the concrete implementation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stagedfs.config import StorageConfig
from stagedfs.protocols import Storage


def _default_storage() -> Storage:
    """Create the default storage implementation."""
    from stagedfs.filesystem import RealFileSystem
    return RealFileSystem()


@dataclass
class AppContext:
    """Container for application dependencies."""

    storage: Storage = field(default_factory=_default_storage)
    config: StorageConfig = field(default_factory=StorageConfig)


def create_context(config: StorageConfig | None = None) -> AppContext:
    """Factory for application dependencies.

    Use this in production code. For tests, construct AppContext directly
    with test doubles.

    Args:
        config: Storage settings. Defaults to StorageConfig().

    Returns:
        Configured AppContext.
    """
    from stagedfs.filesystem import RealFileSystem

    config = config or StorageConfig()
    return AppContext(storage=RealFileSystem(config), config=config)
