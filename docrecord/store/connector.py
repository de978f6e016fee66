"""
Store connector for docrecord.

Opens a pymongo asyncio client from a ``StoreConfig`` and yields the
database handle that models are bound to with ``init()``.
"""

import logging
import os
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pymongo import AsyncMongoClient

from docrecord.exceptions import InvalidArgument

logger = logging.getLogger(__name__)

DEFAULT_URI = "mongodb://localhost:27017/docrecord"

DEFAULT_CLIENT_OPTIONS: dict[str, Any] = {
    "serverSelectionTimeoutMS": 5000,
    "appname": "docrecord",
}


def redact_uri(uri: str) -> str:
    """Strip credentials and options from a connection string for logging."""
    scheme, _, rest = uri.partition("://")
    hosts = rest.split("/", 1)[0].rpartition("@")[2]
    return f"{scheme}://{hosts}"


class StoreConfig(BaseModel):
    """
    Connection settings for the document store.

    Example:
        >>> config = StoreConfig(uri="mongodb://localhost/app", options={"tz_aware": True})
        >>> config.client_options()["appname"]
        'docrecord'
    """

    model_config = ConfigDict(extra="forbid")

    uri: str = Field(min_length=1)
    database: Optional[str] = None  # overrides the database named in the URI
    options: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """
        Build a config from environment variables.

        Reads ``DOCRECORD_MONGO_URI`` (falling back to ``MONGO_URI``, then
        ``DEFAULT_URI``) and ``DOCRECORD_MONGO_DATABASE``.
        """
        environ = os.environ if environ is None else environ
        uri = environ.get("DOCRECORD_MONGO_URI") or environ.get("MONGO_URI") or DEFAULT_URI
        return cls(uri=uri, database=environ.get("DOCRECORD_MONGO_DATABASE") or None)

    @classmethod
    def coerce(cls, config: Union["StoreConfig", Mapping[str, Any], str]) -> "StoreConfig":
        """Accept a config, a mapping of its fields, or a bare URI."""
        if isinstance(config, StoreConfig):
            return config
        try:
            if isinstance(config, str):
                return cls(uri=config)
            return cls(**dict(config))
        except ValidationError as e:
            raise InvalidArgument(f"Invalid store config: {e}") from e

    def client_options(self) -> dict[str, Any]:
        """Client keyword options: defaults overlaid with ``options``."""
        return {**DEFAULT_CLIENT_OPTIONS, **self.options}


class Store:
    """
    Owns one client connection and the database handle built from it.

    Example:
        >>> store = Store()
        >>> handle = await store.init(StoreConfig.from_env())
        >>> await User.init(handle)
        >>> ...
        >>> await store.close()
    """

    def __init__(self, client_factory: Optional[Callable[..., Any]] = None):
        """
        Initialize the store.

        Args:
            client_factory: Client constructor called as ``factory(uri, **options)``.
                Defaults to ``pymongo.AsyncMongoClient``; tests pass a double.
        """
        self._client_factory = client_factory or AsyncMongoClient
        self._client: Any = None
        self._handle: Any = None

    @property
    def client(self) -> Any:
        return self._client

    @property
    def handle(self) -> Any:
        """Database handle from the last ``init()``, or None."""
        return self._handle

    async def init(self, config: Union[StoreConfig, Mapping[str, Any], str]) -> Any:
        """
        Connect and return the database handle.

        Driver errors (e.g. ``pymongo.errors.ServerSelectionTimeoutError``)
        propagate unchanged.

        Args:
            config: ``StoreConfig``, mapping of its fields, or a connection URI

        Returns:
            Database handle exposing ``get_collection(name)``
        """
        config = StoreConfig.coerce(config)
        logger.info(f"Connecting to document store at {redact_uri(config.uri)}")

        client = self._client_factory(config.uri, **config.client_options())
        try:
            await client.aconnect()
            if config.database:
                handle = client.get_database(config.database)
            else:
                handle = client.get_default_database()
        except Exception:
            # The driver error propagates; the half-open client must not leak
            logger.error(f"Failed to connect to document store at {redact_uri(config.uri)}")
            await client.close()
            raise

        self._client = client
        self._handle = handle
        logger.info(f"Connected to document store database '{handle.name}'")
        return handle

    async def close(self) -> None:
        """Close the client connection. Safe to call when not connected."""
        if self._client is None:
            return
        await self._client.close()
        logger.info("Closed document store connection")
        self._client = None
        self._handle = None
