"""
Testing framework for docrecord.

Provides store drivers and a multi-store test base for store-agnostic tests.
"""

from .drivers import (
    StoreDriver,
    InMemoryStoreDriver,
    MongoStoreDriver,
)
from .multi_store_base import (
    MultiStoreTestBase,
    multi_store_test_class,
)

__all__ = [
    # Drivers
    "StoreDriver",
    "InMemoryStoreDriver",
    "MongoStoreDriver",
    # Test base
    "MultiStoreTestBase",
    "multi_store_test_class",
]
