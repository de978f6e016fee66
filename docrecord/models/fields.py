"""
Field definitions for docrecord.

``FieldDescriptor`` is one row of a model's field table. ``Attribute`` is the
class-level accessor that exposes a declared field as a plain property,
delegating to the model's ``get()``/``set()``.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError

from docrecord.exceptions import InvalidArgument

if TYPE_CHECKING:
    from docrecord.models.base import Model


def utcnow() -> datetime:
    """Timezone-aware current time, used for last-modified stamps."""
    return datetime.now(timezone.utc)


class FieldDescriptor(BaseModel):
    """
    Declared type, requiredness and default of a field.

    The table is descriptive: documents are not validated against it.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    type: Any = None
    required: bool = False
    default: Any = None
    default_factory: Optional[Callable[[], Any]] = None

    @classmethod
    def build(cls, **properties: Any) -> "FieldDescriptor":
        """
        Construct a descriptor, reporting unknown properties as ``InvalidArgument``.
        """
        try:
            return cls(**properties)
        except ValidationError as e:
            raise InvalidArgument(f"Invalid attribute properties: {e}") from e


class Attribute:
    """
    Accessor for a declared model attribute.

    Reads return the pending value if there is one, otherwise the persisted
    value. Writes always land in the pending (dirty) state.

    Example:
        >>> class User(Model, registry=registry):
        ...     username = Attribute(str, required=True)
        ...
        >>> user = User()
        >>> user.username = "Billy"
        >>> user.dirty
        {'username': 'Billy'}
    """

    def __init__(
        self,
        type: Any = None,
        *,
        required: bool = False,
        default: Any = None,
        default_factory: Optional[Callable[[], Any]] = None,
    ):
        self.descriptor = FieldDescriptor.build(
            type=type,
            required=required,
            default=default,
            default_factory=default_factory,
        )
        self.name: Optional[str] = None

    @classmethod
    def from_descriptor(cls, descriptor: FieldDescriptor) -> "Attribute":
        attribute = cls.__new__(cls)
        attribute.descriptor = descriptor
        attribute.name = None
        return attribute

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Optional["Model"], owner: type) -> Any:
        if instance is None:
            return self
        return instance.get(self.name)

    def __set__(self, instance: "Model", value: Any) -> None:
        instance.set(self.name, value)

    def __repr__(self) -> str:
        return f"Attribute({self.name!r}, type={self.descriptor.type!r})"
