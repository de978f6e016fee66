"""
Canonical query object for docrecord.

Every finder and every save/delete is translated into a ``QueryObject``
before it reaches the executor, so there is exactly one shape to log,
test and dispatch.
"""

from enum import Enum
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from docrecord.exceptions import InvalidArgument

IDENTIFIER_FIELD = "_id"
TIMESTAMP_FIELD = "updated_at"

SortDirection = Literal[1, -1]


class QueryType(str, Enum):
    """Operations understood by the query executor."""
    FIND = "find"
    FIND_ONE = "findOne"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    COUNT = "count"
    DROP = "drop"


class QueryObject(BaseModel):
    """
    Normalized ``{type, where, sort, skip, limit}`` query.

    ``where`` is always present. The optional parts are only set for the
    operations that use them: ``sort``/``skip``/``limit`` for ``find``,
    ``changes`` for ``update`` and ``documents`` for a multi-document
    ``insert``.

    Example:
        >>> QueryObject(type="findOne", where={"_id": 111}).to_dict()
        {'type': 'findOne', 'where': {'_id': 111}}
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,  # ObjectId values in filters
    )

    type: QueryType
    where: dict[str, Any] = Field(default_factory=dict)
    sort: Optional[dict[str, SortDirection]] = None
    skip: Optional[int] = Field(None, ge=0)
    limit: Optional[int] = Field(None, ge=0)
    changes: Optional[dict[str, Any]] = None
    documents: Optional[list[dict[str, Any]]] = None

    @classmethod
    def build(cls, **fields: Any) -> "QueryObject":
        """
        Construct a query object, reporting bad input as ``InvalidArgument``.

        Raises:
            InvalidArgument: If any field fails validation
        """
        try:
            return cls(**fields)
        except ValidationError as e:
            raise InvalidArgument(f"Invalid query object: {e}") from e

    @classmethod
    def coerce(
        cls,
        query: Union["QueryObject", Mapping[str, Any], None]
    ) -> Optional["QueryObject"]:
        """
        Accept a query object, a plain mapping, or nothing.

        Falsy input (``None`` or an empty mapping) stays ``None`` so callers
        can short-circuit on it.
        """
        if not query:
            return None
        if isinstance(query, QueryObject):
            return query
        return cls.build(**dict(query))

    def to_dict(self) -> dict[str, Any]:
        """Return the canonical mapping, omitting parts that are not set."""
        data: dict[str, Any] = {"type": self.type.value, "where": dict(self.where)}
        for name in ("sort", "skip", "limit", "changes", "documents"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data
