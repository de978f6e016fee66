"""
Builders that turn call-site arguments into canonical query objects.

These are pure functions: they never touch a store, and they raise
``InvalidArgument`` synchronously for unusable input.
"""

from typing import Any, Iterable, Mapping, Optional

from docrecord.exceptions import InvalidArgument
from docrecord.query.base import IDENTIFIER_FIELD, QueryObject, QueryType

DEFAULT_LIMIT = 20
DEFAULT_SKIP = 0
DEFAULT_ORDER = "ASC"

_DIRECTIONS = {"ASC": 1, "DESC": -1}


def sort_spec(sort: str, order: str) -> dict[str, int]:
    """
    Translate a field name and ``ASC``/``DESC`` order into a sort mapping.

    Example:
        >>> sort_spec("username", "DESC")
        {'username': -1}
    """
    if not sort:
        raise InvalidArgument("A sort field name is required")
    direction = _DIRECTIONS.get(str(order).upper())
    if direction is None:
        raise InvalidArgument(f"Unknown sort order {order!r}, expected 'ASC' or 'DESC'")
    return {sort: direction}


def build_all(
    limit: int = DEFAULT_LIMIT,
    skip: int = DEFAULT_SKIP,
    order: str = DEFAULT_ORDER,
    sort: str = IDENTIFIER_FIELD,
) -> QueryObject:
    """
    Build a paginated, unfiltered ``find``.

    Example:
        >>> build_all(limit=11, order="DESC", sort="username").to_dict()
        {'type': 'find', 'where': {}, 'sort': {'username': -1}, 'skip': 0, 'limit': 11}
    """
    return build_find(None, limit=limit, skip=skip, order=order, sort=sort)


def build_find(
    where: Optional[Mapping[str, Any]] = None,
    limit: int = DEFAULT_LIMIT,
    skip: int = DEFAULT_SKIP,
    order: str = DEFAULT_ORDER,
    sort: str = IDENTIFIER_FIELD,
) -> QueryObject:
    """Build a paginated ``find`` filtered by equality on ``where``."""
    return QueryObject.build(
        type=QueryType.FIND,
        where=dict(where or {}),
        sort=sort_spec(sort, order),
        skip=skip,
        limit=limit,
    )


def build_one(identifier: Any = None) -> QueryObject:
    """
    Build a ``findOne`` by identifier.

    Raises:
        InvalidArgument: If no identifier is given
    """
    if not identifier:
        raise InvalidArgument("Model.one() requires an identifier")
    return QueryObject.build(type=QueryType.FIND_ONE, where={IDENTIFIER_FIELD: identifier})


def build_count(where: Optional[Mapping[str, Any]] = None) -> QueryObject:
    """Build a ``count`` of documents matching ``where``."""
    return QueryObject.build(type=QueryType.COUNT, where=dict(where or {}))


def build_insert(document: Mapping[str, Any]) -> QueryObject:
    """Build a single-document ``insert``; the document travels in ``where``."""
    return QueryObject.build(type=QueryType.INSERT, where=dict(document))


def build_insert_many(documents: Iterable[Mapping[str, Any]]) -> QueryObject:
    """Build a multi-document ``insert``."""
    documents = [dict(document) for document in documents]
    if not documents:
        raise InvalidArgument("insert_many() requires at least one document")
    return QueryObject.build(type=QueryType.INSERT, documents=documents)


def build_update(identifier: Any, changes: Mapping[str, Any]) -> QueryObject:
    """Build an ``update`` that sets ``changes`` on the identified document."""
    if not identifier:
        raise InvalidArgument("An update requires an identifier")
    if not changes:
        raise InvalidArgument("An update requires at least one changed field")
    return QueryObject.build(
        type=QueryType.UPDATE,
        where={IDENTIFIER_FIELD: identifier},
        changes=dict(changes),
    )


def build_delete(identifier: Any) -> QueryObject:
    """Build a ``delete`` of the identified document."""
    if not identifier:
        raise InvalidArgument("A delete requires an identifier")
    return QueryObject.build(type=QueryType.DELETE, where={IDENTIFIER_FIELD: identifier})


def build_drop() -> QueryObject:
    """Build a ``drop`` of the whole collection."""
    return QueryObject.build(type=QueryType.DROP)
