"""Factory functions for creating chunk stores.

This module provides a registry-based factory pattern for creating chunk
store instances. New store backends can be registered at runtime.
"""

from __future__ import annotations

from typing import Any, Callable

from chunkvault.stores.base import ChunkStore, StoreError

# Type for store constructor functions
StoreConstructor = Callable[..., ChunkStore[Any]]

# Registry of store constructors
_store_registry: dict[str, StoreConstructor] = {}


def register_store(name: str) -> Callable[[StoreConstructor], StoreConstructor]:
    """Decorator to register a chunk store backend.

    Args:
        name: Name to register the store under.

    Returns:
        Decorator function.

    Example:
        >>> @register_store("my_store")
        ... class MyStore(ChunkStore):
        ...     pass
    """

    def decorator(cls: StoreConstructor) -> StoreConstructor:
        _store_registry[name] = cls
        return cls

    return decorator


def get_store(backend: str, **kwargs: Any) -> ChunkStore[Any]:
    """Create a chunk store instance for the specified backend.

    Args:
        backend: Name of the store backend to use. Options:
            - "filesystem": Local filesystem storage
            - "memory": In-memory storage
        **kwargs: Backend-specific configuration options.

    Returns:
        Configured store instance.

    Raises:
        StoreError: If the backend is not available.

    Example:
        >>> store = get_store("filesystem", base_path=".chunkvault/chunks")
        >>> store = get_store("memory")
    """
    backend = backend.lower().strip()

    if backend in _store_registry:
        return _store_registry[backend](**kwargs)

    if backend in ("filesystem", "fs", "disk"):
        from chunkvault.stores.filesystem import FileSystemChunkStore

        return FileSystemChunkStore(**kwargs)

    elif backend == "memory":
        from chunkvault.stores.memory import MemoryChunkStore

        return MemoryChunkStore(**kwargs)

    available = ["filesystem", "memory", *sorted(_store_registry)]
    raise StoreError(f"Unknown store backend: {backend}. Available: {', '.join(available)}")


def list_available_backends() -> list[str]:
    """List all registered and built-in backends."""
    return ["filesystem", "memory", *sorted(_store_registry)]
