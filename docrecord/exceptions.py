"""
Exceptions raised by docrecord.

Failures reported by the document store driver itself (``pymongo.errors``)
are never wrapped; they reach the caller unchanged.
"""


class DocRecordError(Exception):
    """Base exception for docrecord errors."""

    pass


class InvalidArgument(DocRecordError, ValueError):
    """Raised synchronously when a call site passes unusable arguments."""

    pass


class ModelNotInitialized(DocRecordError, RuntimeError):
    """Raised when a model queries the store before ``init()`` bound one."""

    pass


class StoreFailure(DocRecordError):
    """Base exception for failures raised by docrecord's own stores."""

    pass


class DuplicateKeyError(StoreFailure):
    """An insert reused an identifier that is already stored."""

    pass
