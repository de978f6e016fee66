"""
Base model class for docrecord.

Provides an ActiveRecord-style interface over a document collection, with
dirty tracking split between persisted (canonical) and pending (dirty)
attribute maps.
"""

import logging
from typing import Any, Awaitable, ClassVar, Mapping, Optional, Iterable

import inflection
from bson import ObjectId

from docrecord.exceptions import InvalidArgument
from docrecord.models.fields import Attribute, FieldDescriptor, utcnow
from docrecord.models.schema import Registry
from docrecord.query.base import IDENTIFIER_FIELD, TIMESTAMP_FIELD
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
)
from docrecord.query.executor import QueryExecutor

logger = logging.getLogger(__name__)

_REVERSED_ORDER = {"ASC": "DESC", "DESC": "ASC"}


class Model:
    """
    Base model class for docrecord.

    A payload that carries an ``_id`` is treated as a stored document and
    becomes the canonical state in full; any other payload is pending.
    Writes go to the pending state and are flushed by ``save()``.

    Example:
        >>> registry = Registry()
        >>> class User(Model, registry=registry):
        ...     username = Attribute(str)
        ...
        >>> await User.init(handle)
        >>> user = User(username="Billy")
        >>> await user.save()
        >>> again = await User.one(user.id)
        >>> again.username
        'Billy'
    """

    # Wrapper so schemas can name the identifier type
    ObjectId: ClassVar[type] = ObjectId

    # Registry holding this model's schema, store and audit hook
    model_registry: ClassVar[Optional[Registry]] = None

    # Optional explicit collection name
    __collection__: ClassVar[Optional[str]] = None

    def __init_subclass__(cls, registry: Optional[Registry] = None, **kwargs: Any):
        """
        Register the model class and its declared attributes.

        Args:
            registry: Registry to join. Subclasses inherit their parent's
                registry; a model with none gets a private one.
            **kwargs: Additional arguments passed to parent
        """
        super().__init_subclass__(**kwargs)

        if registry is not None:
            cls.model_registry = registry
        elif cls.model_registry is None:
            cls.model_registry = Registry()

        schema = cls.model_registry.register(cls)
        for base in reversed(cls.__mro__):
            for name, value in vars(base).items():
                if isinstance(value, Attribute):
                    schema.attribute(name, value.descriptor)

    def __init__(self, data: Optional[Mapping[str, Any]] = None, **fields: Any):
        """
        Create an instance of the model.

        Args:
            data: Attribute mapping, e.g. a document returned by the store
            **fields: Attributes given as keywords, overriding ``data``
        """
        payload = {**dict(data or {}), **fields}

        self.collection_name = type(self).get_collection_name()
        self._canonical: dict[str, Any] = {}
        self._dirty: dict[str, Any] = {}

        # A payload with an identifier is a stored document, not a new record
        if payload.get(IDENTIFIER_FIELD):
            self._canonical = payload
        else:
            self._dirty = payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_object()!r})"

    # === Class configuration ===

    @classmethod
    def get_collection_name(cls) -> str:
        """Collection name: ``__collection__`` or the pluralized, lower-cased class name."""
        return cls.__collection__ or inflection.pluralize(cls.__name__.lower())

    @classmethod
    def _get_registry(cls) -> Registry:
        # Model itself is never registered; only its subclasses are
        if cls.model_registry is None:
            raise InvalidArgument(f"{cls.__name__} must be subclassed before use")
        return cls.model_registry

    @classmethod
    def attribute(
        cls,
        name: str,
        properties: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> FieldDescriptor:
        """
        Declare an attribute and install an accessor for it.

        Args:
            name: Field name
            properties: Mapping of ``type``/``required``/``default``/``default_factory``
            **kwargs: Properties given as keywords

        Returns:
            The registered field descriptor

        Raises:
            InvalidArgument: If ``name`` is empty or clashes with a model member

        Example:
            >>> User.attribute("email", type=str, required=True)
            >>> user.email = "billy@example.com"
        """
        existing = getattr(cls, name, None) if name else None
        if existing is not None and not isinstance(existing, Attribute):
            raise InvalidArgument(f"Attribute '{name}' clashes with {cls.__name__}.{name}")

        descriptor = cls._get_registry().schema_for(cls).attribute(name, properties, **kwargs)

        accessor = Attribute.from_descriptor(descriptor)
        setattr(cls, name, accessor)
        accessor.__set_name__(cls, name)
        return descriptor

    @classmethod
    async def init(cls, store: Any) -> Any:
        """
        Finalize the field table and bind the model to a store handle.

        Must be awaited before any query that needs the store.

        Returns:
            The store handle, for chaining
        """
        return await cls._get_registry().init(cls, store)

    @classmethod
    def get_fields(cls) -> Optional[dict[str, FieldDescriptor]]:
        """Field table frozen by the last ``init()``, or None before it."""
        return cls._get_registry().schema_for(cls).fields

    @classmethod
    def _get_executor(cls) -> QueryExecutor:
        return cls._get_registry().executor_for(cls)

    # === Attribute access ===

    @staticmethod
    def _field_name(field: str) -> str:
        return IDENTIFIER_FIELD if field == "id" else field

    def get(self, field: str, default: Any = None) -> Any:
        """
        Read an attribute, preferring the pending value over the stored one.

        ``"id"`` reads the identifier (``_id``).
        """
        field = self._field_name(field)
        if field in self._dirty:
            return self._dirty[field]
        return self._canonical.get(field, default)

    def set(self, field: str, value: Any) -> Any:
        """Write an attribute to the pending state and return the value."""
        self._dirty[self._field_name(field)] = value
        return value

    @property
    def id(self) -> Any:
        """Identifier of the document, or None before the first save."""
        return self.get(IDENTIFIER_FIELD)

    @property
    def is_persisted(self) -> bool:
        """True once the canonical state carries an identifier."""
        return bool(self._canonical.get(IDENTIFIER_FIELD))

    @property
    def canonical(self) -> dict[str, Any]:
        """Copy of the last-known stored attributes."""
        return dict(self._canonical)

    @property
    def dirty(self) -> dict[str, Any]:
        """Copy of the attributes changed since construction or the last save."""
        return dict(self._dirty)

    def to_object(self) -> dict[str, Any]:
        """Serialize: stored attributes overlaid with pending ones."""
        return {**self._canonical, **self._dirty}

    def _flush(self, stored: Mapping[str, Any]) -> None:
        self._canonical.update(stored)
        self._dirty = {}

    # === Persistence ===

    async def save(self) -> "Model":
        """
        Write pending changes to the store.

        A new record is inserted; a stored one is updated by identifier with
        only its pending fields. Both stamp ``updated_at`` with the write
        time. Without pending changes nothing is sent to the store. If an
        update matches no document, the changes are kept pending.

        Returns:
            Self for method chaining

        Example:
            >>> user = User(username="Billy")
            >>> await user.save()      # insert
            >>> user.username = "Bill"
            >>> await user.save()      # update of username and updated_at
        """
        executor = self._get_executor()

        if not self._dirty:
            await executor.run(None)
            return self

        now = utcnow()
        if self.is_persisted:
            changes = {**self._dirty, TIMESTAMP_FIELD: now}
            matched = await executor.run(build_update(self.id, changes))
            if not matched:
                # Pending changes stay dirty; the record is not in sync
                logger.warning(
                    f"Update of {type(self).__name__} {self.id!r} matched no document in "
                    f"'{self.collection_name}'"
                )
                return self
            self._flush(changes)
        else:
            document = {**self._canonical, **self._dirty, TIMESTAMP_FIELD: now}
            stored = await executor.run(build_insert(document), lean=True)
            self._flush(stored)

        return self

    async def delete(self) -> bool:
        """
        Remove this record from the store.

        Returns:
            True if a document was removed. False if nothing was removed,
            including when the record was never saved.

        After a removal the record is new again: its attributes become
        pending without the identifier, so a later ``save()`` inserts it.
        """
        executor = self._get_executor()

        # Nothing stored yet, nothing to delete
        if not self.is_persisted:
            await executor.run(None)
            return False

        removed = await executor.run(build_delete(self.id))
        if removed:
            pending = {**self._canonical, **self._dirty}
            pending.pop(IDENTIFIER_FIELD, None)
            self._canonical = {}
            self._dirty = pending
        return bool(removed)

    # === Finders ===
    # Finders build their query synchronously, so bad arguments raise before
    # an awaitable exists, and return the executor's coroutine.

    @classmethod
    def run_query(cls, query: Any, **options: Any) -> Awaitable[Any]:
        """
        Run a query object (or mapping) through this model's executor.

        Args:
            query: ``QueryObject``, canonical mapping, or None
            **options: ``stream``, ``lean``, ``first``, ``last``, ``query_log``
        """
        return cls._get_executor().run(query, **options)

    @classmethod
    def all(
        cls,
        *,
        limit: int = DEFAULT_LIMIT,
        skip: int = DEFAULT_SKIP,
        order: str = DEFAULT_ORDER,
        sort: str = IDENTIFIER_FIELD,
        **options: Any,
    ) -> Awaitable[Any]:
        """
        Return a page of all records.

        Example:
            >>> users = await User.all(limit=11, order="DESC", sort="username")
        """
        return cls.run_query(build_all(limit=limit, skip=skip, order=order, sort=sort), **options)

    @classmethod
    def find(
        cls,
        where: Optional[Mapping[str, Any]] = None,
        *,
        limit: int = DEFAULT_LIMIT,
        skip: int = DEFAULT_SKIP,
        order: str = DEFAULT_ORDER,
        sort: str = IDENTIFIER_FIELD,
        **options: Any,
    ) -> Awaitable[Any]:
        """
        Return a page of records whose fields equal ``where``.

        Example:
            >>> admins = await User.find({"role": "admin"}, limit=5)
        """
        query = build_find(where, limit=limit, skip=skip, order=order, sort=sort)
        return cls.run_query(query, **options)

    @classmethod
    def one(cls, identifier: Any = None, **options: Any) -> Awaitable[Any]:
        """
        Return the record with this identifier, or None.

        Raises:
            InvalidArgument: Immediately, if no identifier is given
        """
        return cls.run_query(build_one(identifier), **options)

    @classmethod
    def count(cls, where: Optional[Mapping[str, Any]] = None, **options: Any) -> Awaitable[Any]:
        """Count records whose fields equal ``where``."""
        return cls.run_query(build_count(where), **options)

    @classmethod
    def first(
        cls,
        where: Optional[Mapping[str, Any]] = None,
        *,
        order: str = DEFAULT_ORDER,
        sort: str = IDENTIFIER_FIELD,
        **options: Any,
    ) -> Awaitable[Any]:
        """
        Return the first matching record in ``sort`` order, or None.

        Example:
            >>> oldest = await User.first(sort="created_at")
        """
        query = build_find(where, limit=1, skip=0, order=order, sort=sort)
        return cls.run_query(query, first=True, **options)

    @classmethod
    def last(
        cls,
        where: Optional[Mapping[str, Any]] = None,
        *,
        order: str = DEFAULT_ORDER,
        sort: str = IDENTIFIER_FIELD,
        **options: Any,
    ) -> Awaitable[Any]:
        """
        Return the last matching record in ``sort`` order, or None.

        Runs the reversed order with a limit of one.
        """
        reversed_order = _REVERSED_ORDER.get(str(order).upper(), order)
        query = build_find(where, limit=1, skip=0, order=reversed_order, sort=sort)
        return cls.run_query(query, first=True, **options)

    @classmethod
    def insert_many(cls, rows: Iterable[Mapping[str, Any]], **options: Any) -> Awaitable[Any]:
        """
        Insert several documents in one call, stamping each with ``updated_at``.

        Returns (when awaited) the inserted record, or a list when more than
        one was inserted.
        """
        now = utcnow()
        documents = [{**dict(row), TIMESTAMP_FIELD: now} for row in rows]
        return cls.run_query(build_insert_many(documents), **options)

    @classmethod
    def drop(cls, **options: Any) -> Awaitable[Any]:
        """Drop the model's whole collection."""
        return cls.run_query(build_drop(), **options)
