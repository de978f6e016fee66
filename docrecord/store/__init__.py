"""Store connector and in-memory store for docrecord."""

from docrecord.store.connector import (
    DEFAULT_CLIENT_OPTIONS,
    DEFAULT_URI,
    Store,
    StoreConfig,
    redact_uri,
)
from docrecord.store.memory import (
    InMemoryClient,
    InMemoryCollection,
    InMemoryCursor,
    InMemoryDatabase,
)

__all__ = [
    "DEFAULT_CLIENT_OPTIONS",
    "DEFAULT_URI",
    "Store",
    "StoreConfig",
    "redact_uri",
    "InMemoryClient",
    "InMemoryCollection",
    "InMemoryCursor",
    "InMemoryDatabase",
]
