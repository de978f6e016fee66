"""Canonical query objects, builders and the executor for docrecord."""

from docrecord.query.base import (
    IDENTIFIER_FIELD,
    TIMESTAMP_FIELD,
    QueryObject,
    QueryType,
)
from docrecord.query.builders import (
    DEFAULT_LIMIT,
    DEFAULT_ORDER,
    DEFAULT_SKIP,
    build_all,
    build_count,
    build_delete,
    build_drop,
    build_find,
    build_insert,
    build_insert_many,
    build_one,
    build_update,
    sort_spec,
)
from docrecord.query.executor import QueryExecutor, QueryLog, log_query

__all__ = [
    "IDENTIFIER_FIELD",
    "TIMESTAMP_FIELD",
    "QueryObject",
    "QueryType",
    "DEFAULT_LIMIT",
    "DEFAULT_ORDER",
    "DEFAULT_SKIP",
    "build_all",
    "build_count",
    "build_delete",
    "build_drop",
    "build_find",
    "build_insert",
    "build_insert_many",
    "build_one",
    "build_update",
    "sort_spec",
    "QueryExecutor",
    "QueryLog",
    "log_query",
]
