"""
Query executor for docrecord.

Every query, and through them every save and delete, passes through
``QueryExecutor.run()``. It calls the audit hook, dispatches the canonical
query object to the collection handle, and materializes the results.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Union, TYPE_CHECKING

from docrecord.exceptions import InvalidArgument, ModelNotInitialized
from docrecord.query.base import IDENTIFIER_FIELD, QueryObject, QueryType

if TYPE_CHECKING:
    from docrecord.models.base import Model

logger = logging.getLogger(__name__)

QueryLog = Callable[[Optional[dict[str, Any]]], None]
QueryInput = Union[QueryObject, Mapping[str, Any], None]


def log_query(query: Optional[dict[str, Any]]) -> None:
    """
    Default query-audit hook: log the canonical query at INFO.

    Args:
        query: Canonical query mapping, or None for a no-op query
    """
    logger.info(f"[QUERY] {query}")


class QueryExecutor:
    """
    Runs canonical query objects against one model's collection.

    The executor is cheap to build. ``Registry.executor_for()`` creates one
    per call with the registry's store and audit hook.

    Example:
        >>> executor = QueryExecutor(User, store=handle)
        >>> users = await executor.run(build_all(limit=5))
        >>> newest = await executor.run(build_all(order="DESC"), first=True)
    """

    def __init__(
        self,
        model_class: type["Model"],
        store: Any = None,
        query_log: QueryLog = log_query,
    ):
        """
        Initialize the executor.

        Args:
            model_class: Model class used to name the collection and wrap results
            store: Database handle exposing ``get_collection(name)``
            query_log: Audit hook called once per ``run()``
        """
        self.model_class = model_class
        self.store = store
        self.query_log = query_log

    def collection(self) -> Any:
        """
        Resolve the model's collection on the bound store.

        Raises:
            ModelNotInitialized: If no store has been bound to the model
        """
        if self.store is None:
            raise ModelNotInitialized(
                f"No store bound to {self.model_class.__name__}. "
                f"Call `await {self.model_class.__name__}.init(store)` first."
            )
        return self.store.get_collection(self.model_class.get_collection_name())

    async def run(
        self,
        query: QueryInput = None,
        *,
        stream: bool = False,
        lean: bool = False,
        first: bool = False,
        last: bool = False,
        query_log: Optional[QueryLog] = None,
    ) -> Any:
        """
        Execute a query and return its materialized result.

        Args:
            query: Query object or mapping. A falsy query is a no-op.
            stream: Return the raw cursor (``find``) or un-awaited driver
                call (other types) without post-processing
            lean: Return raw documents instead of model instances
            first: For ``find``, return only the first row (or None)
            last: For ``find``, return only the last row (or None);
                ``first`` wins when both are set
            query_log: Audit hook for this call only

        Returns:
            A list of rows, a single row, a scalar, or a raw cursor,
            depending on the query type and options.
        """
        query_log = query_log or self.query_log
        try:
            query = QueryObject.coerce(query)
        except InvalidArgument:
            # Malformed mappings are audited as given, then rejected
            query_log(dict(query))
            raise
        query_log(query.to_dict() if query else None)

        if not query:
            return []

        collection = self.collection()

        if query.type is QueryType.FIND:
            cursor = collection.find(query.where)
            if query.skip:
                cursor = cursor.skip(query.skip)
            if query.limit:
                cursor = cursor.limit(query.limit)
            if query.sort:
                cursor = cursor.sort(list(query.sort.items()))
            if stream:
                return cursor
            rows = await cursor.to_list()
            return self._materialize_rows(rows, lean=lean, first=first, last=last)

        if query.type is QueryType.INSERT:
            # the driver stamps _id onto the documents it is handed
            if query.documents is None:
                documents = [dict(query.where)]
                pending = collection.insert_one(documents[0])
            else:
                documents = [dict(document) for document in query.documents]
                pending = collection.insert_many(documents)
            if stream:
                return pending
            result = await pending
            return self._materialize_inserted(documents, result, lean=lean)

        pending = self._dispatch(collection, query)
        if stream:
            return pending
        result = await pending

        if query.type is QueryType.FIND_ONE:
            return self._wrap(result, lean)
        if query.type is QueryType.UPDATE:
            return result.matched_count
        if query.type is QueryType.DELETE:
            return result.deleted_count
        # count and drop pass through as scalars
        return result

    def _dispatch(self, collection: Any, query: QueryObject) -> Any:
        """Call the driver operation for a non-find, non-insert query."""
        if query.type is QueryType.FIND_ONE:
            return collection.find_one(query.where)
        if query.type is QueryType.UPDATE:
            return collection.update_one(query.where, {"$set": dict(query.changes or {})})
        if query.type is QueryType.DELETE:
            return collection.delete_many(query.where)
        if query.type is QueryType.COUNT:
            return collection.count_documents(query.where)
        if query.type is QueryType.DROP:
            return collection.drop()
        raise InvalidArgument(f"Unsupported query type: {query.type.value}")

    def _materialize_rows(
        self,
        rows: list[dict[str, Any]],
        *,
        lean: bool,
        first: bool,
        last: bool,
    ) -> Any:
        """Apply the single-row options and wrap rows."""
        if first or last:
            if not rows:
                return None
            return self._wrap(rows[0] if first else rows[-1], lean)
        if lean:
            return rows
        return [self.model_class(row) for row in rows]

    def _materialize_inserted(
        self,
        documents: list[dict[str, Any]],
        result: Any,
        *,
        lean: bool,
    ) -> Any:
        """Fill in driver-assigned identifiers and collapse a single insert."""
        inserted_ids = getattr(result, "inserted_ids", None)
        if inserted_ids is None:
            inserted_ids = [result.inserted_id]
        for document, inserted_id in zip(documents, inserted_ids):
            document.setdefault(IDENTIFIER_FIELD, inserted_id)

        if len(documents) == 1:
            return self._wrap(documents[0], lean)
        if lean:
            return documents
        return [self.model_class(document) for document in documents]

    def _wrap(self, document: Optional[dict[str, Any]], lean: bool) -> Any:
        if document is None or lean:
            return document
        return self.model_class(document)
