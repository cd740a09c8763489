"""
Infrastructure Layer - Durable storage implementations.
"""

from repoindex.infrastructure.durable_storage import (
    DurableStorageInterface,
    LocalDurableStorage,
    StorageError,
    create_durable_storage,
)
from repoindex.infrastructure.fakes import InMemoryDurableStorage

__all__ = [
    # Durable storage
    "DurableStorageInterface",
    "LocalDurableStorage",
    "StorageError",
    "create_durable_storage",
    # Fakes for testing
    "InMemoryDurableStorage",
]
