"""
Schema registry for docrecord.

A ``Registry`` is built once by the application and shared by reference.
It owns each model's ``Schema``, the store handle each model is bound to,
and the query-audit hook used when that model's queries run.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Union, TYPE_CHECKING

from bson import ObjectId

from docrecord.exceptions import InvalidArgument
from docrecord.models.fields import FieldDescriptor, utcnow
from docrecord.query.base import IDENTIFIER_FIELD, TIMESTAMP_FIELD
from docrecord.query.executor import QueryExecutor, QueryLog, log_query

if TYPE_CHECKING:
    from docrecord.models.base import Model

logger = logging.getLogger(__name__)


class Schema:
    """
    Declared attributes of one model and its finalized field table.

    Example:
        >>> schema = Schema("User")
        >>> descriptor = schema.attribute("username", type=str)
        >>> list(schema.finalize())
        ['_id', 'username', 'updated_at']
    """

    def __init__(self, model_name: str):
        self.model_name = model_name
        self.attributes: dict[str, FieldDescriptor] = {}
        self.fields: Optional[dict[str, FieldDescriptor]] = None

    def attribute(
        self,
        name: str,
        properties: Union[FieldDescriptor, Mapping[str, Any], None] = None,
        **kwargs: Any,
    ) -> FieldDescriptor:
        """
        Declare an attribute.

        Args:
            name: Field name
            properties: Descriptor or mapping of ``type``/``required``/``default``
            **kwargs: Properties given as keywords, overriding ``properties``

        Returns:
            The registered descriptor

        Raises:
            InvalidArgument: If ``name`` is empty or a property is unknown
        """
        if not name:
            raise InvalidArgument(f"{self.model_name}.attribute() must provide an attribute name")

        if isinstance(properties, FieldDescriptor):
            descriptor = properties.model_copy(update=kwargs) if kwargs else properties
        else:
            descriptor = FieldDescriptor.build(**{**dict(properties or {}), **kwargs})

        self.attributes[name] = descriptor
        return descriptor

    def finalize(self) -> dict[str, FieldDescriptor]:
        """
        Build the field table: identifier, declared attributes, last-modified stamp.
        """
        fields = {IDENTIFIER_FIELD: FieldDescriptor(type=ObjectId, required=True)}
        fields.update(self.attributes)
        fields[TIMESTAMP_FIELD] = FieldDescriptor(type=datetime, default_factory=utcnow)
        self.fields = fields
        return fields


class Registry:
    """
    Shared registry of model schemas, store bindings and the audit hook.

    Example:
        >>> registry = Registry()
        >>> class User(Model, registry=registry):
        ...     username = Attribute(str)
        ...
        >>> await registry.bind(handle)  # or: await User.init(handle)
    """

    def __init__(self, query_log: QueryLog = log_query):
        """
        Initialize the registry.

        Args:
            query_log: Audit hook for every query run by this registry's models
        """
        self.query_log = query_log
        self._schemas: dict[type["Model"], Schema] = {}
        self._stores: dict[type["Model"], Any] = {}

    @property
    def models(self) -> list[type["Model"]]:
        """Model classes registered so far, in declaration order."""
        return list(self._schemas)

    def register(self, model_class: type["Model"]) -> Schema:
        """Register a model class and return its (possibly new) schema."""
        if model_class not in self._schemas:
            self._schemas[model_class] = Schema(model_class.__name__)
        return self._schemas[model_class]

    def schema_for(self, model_class: type["Model"]) -> Schema:
        return self.register(model_class)

    def store_for(self, model_class: type["Model"]) -> Any:
        """Return the store handle bound to a model, or None."""
        return self._stores.get(model_class)

    async def init(self, model_class: type["Model"], store: Any) -> Any:
        """
        Finalize a model's field table and bind it to a store handle.

        Calling ``init`` again rebinds the model and refreshes its table.

        Returns:
            The store handle, for chaining
        """
        fields = self.register(model_class).finalize()
        self._stores[model_class] = store
        logger.debug(
            f"Initialized {model_class.__name__} on collection "
            f"'{model_class.get_collection_name()}' with fields {list(fields)}"
        )
        return store

    async def bind(self, store: Any) -> Any:
        """Initialize every registered model against one store handle."""
        for model_class in self.models:
            await self.init(model_class, store)
        return store

    def executor_for(
        self,
        model_class: type["Model"],
        query_log: Optional[QueryLog] = None,
    ) -> QueryExecutor:
        """Build an executor for a model using its bound store and the audit hook."""
        return QueryExecutor(
            model_class,
            store=self.store_for(model_class),
            query_log=query_log or self.query_log,
        )
