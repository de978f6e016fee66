"""
In-memory document store for docrecord.

Dict-based stand-in for the subset of pymongo's asyncio API that the query
executor uses. It returns pymongo's own result types and generates
``bson.ObjectId`` identifiers, so models cannot tell it apart from a real
database for equality-filtered queries. Data is lost when the process ends.
Useful for testing and examples.
"""

from copy import deepcopy
from datetime import datetime
from typing import Any, AsyncIterator, Mapping, Optional, Union
from urllib.parse import urlsplit

from bson import ObjectId
from pymongo.errors import ConfigurationError
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from docrecord.exceptions import DuplicateKeyError, StoreFailure
from docrecord.query.base import IDENTIFIER_FIELD


def _matches(document: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
    """Equality match; a scalar also matches an array field containing it."""
    for field, expected in where.items():
        actual = document.get(field)
        if actual == expected:
            continue
        if isinstance(actual, list) and not isinstance(expected, list) and expected in actual:
            continue
        return False
    return True


def _type_rank(value: Any) -> int:
    """Position of a value's type in MongoDB's cross-type sort order."""
    if value is None:
        return 0
    # bool before numbers: it is an int subclass but sorts after ObjectId
    if isinstance(value, bool):
        return 7
    if isinstance(value, (int, float)):
        return 1
    if isinstance(value, str):
        return 2
    if isinstance(value, Mapping):
        return 3
    if isinstance(value, list):
        return 4
    if isinstance(value, bytes):
        return 5
    if isinstance(value, ObjectId):
        return 6
    if isinstance(value, datetime):
        return 8
    return 9


def _sort_key(field: str):
    # Missing and None values sort before everything else, like MongoDB
    def key(document: Mapping[str, Any]) -> tuple:
        value = document.get(field)
        rank = _type_rank(value)
        return (rank, value) if rank else (rank,)
    return key


class InMemoryCursor:
    """
    Lazy cursor over a snapshot of matching documents.

    Supports ``skip``/``limit``/``sort`` chaining, ``to_list()`` and
    ``async for``.
    """

    def __init__(self, documents: list[dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0
        self._sort: list[tuple[str, int]] = []

    def skip(self, n: int) -> "InMemoryCursor":
        self._skip = n
        return self

    def limit(self, n: int) -> "InMemoryCursor":
        self._limit = n
        return self

    def sort(
        self,
        key_or_list: Union[str, list[tuple[str, int]]],
        direction: Optional[int] = None,
    ) -> "InMemoryCursor":
        if isinstance(key_or_list, str):
            self._sort = [(key_or_list, direction or 1)]
        else:
            self._sort = list(key_or_list)
        return self

    def _materialize(self) -> list[dict[str, Any]]:
        documents = list(self._documents)
        # Stable sorts applied from the least significant key up
        for field, direction in reversed(self._sort):
            documents.sort(key=_sort_key(field), reverse=direction == -1)
        documents = documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        return documents

    async def to_list(self, length: Optional[int] = None) -> list[dict[str, Any]]:
        documents = self._materialize()
        return documents[:length] if length else documents

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        for document in self._materialize():
            yield document

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()


class InMemoryCollection:
    """One named collection: documents keyed by identifier."""

    def __init__(self, name: str):
        self.name = name
        # Storage: {_id: document}
        self._documents: dict[Any, dict[str, Any]] = {}

    def _matching(self, where: Optional[Mapping[str, Any]]) -> list[dict[str, Any]]:
        where = where or {}
        return [doc for doc in self._documents.values() if _matches(doc, where)]

    def find(self, filter: Optional[Mapping[str, Any]] = None) -> InMemoryCursor:
        return InMemoryCursor([deepcopy(doc) for doc in self._matching(filter)])

    async def find_one(self, filter: Optional[Mapping[str, Any]] = None) -> Optional[dict[str, Any]]:
        for document in self._matching(filter):
            return deepcopy(document)
        return None

    def _insert(self, document: dict[str, Any]) -> Any:
        # Stamp the caller's document the way the driver does
        if IDENTIFIER_FIELD not in document:
            document[IDENTIFIER_FIELD] = ObjectId()
        identifier = document[IDENTIFIER_FIELD]
        if identifier in self._documents:
            raise DuplicateKeyError(f"Document with _id {identifier!r} already exists in '{self.name}'")
        self._documents[identifier] = deepcopy(document)
        return identifier

    async def insert_one(self, document: dict[str, Any]) -> InsertOneResult:
        return InsertOneResult(self._insert(document), True)

    async def insert_many(self, documents: list[dict[str, Any]]) -> InsertManyResult:
        return InsertManyResult([self._insert(document) for document in documents], True)

    async def update_one(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> UpdateResult:
        unsupported = set(update) - {"$set", "$unset"}
        if unsupported:
            raise StoreFailure(f"Unsupported update operators: {sorted(unsupported)}")

        for document in self._matching(filter):
            document.update(deepcopy(dict(update.get("$set", {}))))
            for field in update.get("$unset", {}):
                document.pop(field, None)
            return UpdateResult({"n": 1, "nModified": 1, "ok": 1.0}, True)

        return UpdateResult({"n": 0, "nModified": 0, "ok": 1.0}, True)

    async def delete_many(self, filter: Mapping[str, Any]) -> DeleteResult:
        matching = self._matching(filter)
        for document in matching:
            del self._documents[document[IDENTIFIER_FIELD]]
        return DeleteResult({"n": len(matching), "ok": 1.0}, True)

    async def count_documents(self, filter: Mapping[str, Any]) -> int:
        return len(self._matching(filter))

    async def drop(self) -> None:
        self._documents.clear()


class InMemoryDatabase:
    """Named database holding in-memory collections."""

    def __init__(self, name: str):
        self.name = name
        self._collections: dict[str, InMemoryCollection] = {}

    def get_collection(self, name: str) -> InMemoryCollection:
        if name not in self._collections:
            self._collections[name] = InMemoryCollection(name)
        return self._collections[name]


class InMemoryClient:
    """
    Client double accepted by ``Store(client_factory=InMemoryClient)``.

    Example:
        >>> store = Store(client_factory=InMemoryClient)
        >>> handle = await store.init("mongodb://localhost/test")
    """

    def __init__(self, uri: Optional[str] = None, **options: Any):
        self.uri = uri
        self.options = options
        self._default_database = urlsplit(uri).path.lstrip("/") if uri else ""
        self._databases: dict[str, InMemoryDatabase] = {}
        self.closed = False

    async def aconnect(self) -> None:
        self.closed = False

    def get_database(self, name: str) -> InMemoryDatabase:
        if name not in self._databases:
            self._databases[name] = InMemoryDatabase(name)
        return self._databases[name]

    def get_default_database(self, default: Optional[str] = None) -> InMemoryDatabase:
        name = self._default_database or default
        if not name:
            raise ConfigurationError("No default database name defined or provided.")
        return self.get_database(name)

    async def close(self) -> None:
        self.closed = True
