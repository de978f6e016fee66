"""
docrecord - ActiveRecord-style document mapper for Python.

Maps model instances to documents in a MongoDB-compatible store, translating
finders, saves and deletes into canonical query objects and back into
typed model instances.
"""

from docrecord.exceptions import (
    DocRecordError,
    DuplicateKeyError,
    InvalidArgument,
    ModelNotInitialized,
    StoreFailure,
)
from docrecord.models import Attribute, FieldDescriptor, Model, Registry, Schema
from docrecord.query import QueryExecutor, QueryObject, QueryType, log_query
from docrecord.store import InMemoryClient, Store, StoreConfig

__version__ = "0.1.0"

__all__ = [
    "DocRecordError",
    "DuplicateKeyError",
    "InvalidArgument",
    "ModelNotInitialized",
    "StoreFailure",
    "Attribute",
    "FieldDescriptor",
    "Model",
    "Registry",
    "Schema",
    "QueryExecutor",
    "QueryObject",
    "QueryType",
    "log_query",
    "InMemoryClient",
    "Store",
    "StoreConfig",
]
