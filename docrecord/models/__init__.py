"""Model definitions for docrecord."""

from docrecord.models.base import Model
from docrecord.models.fields import Attribute, FieldDescriptor
from docrecord.models.schema import Registry, Schema

__all__ = [
    "Model",
    "Attribute",
    "FieldDescriptor",
    "Registry",
    "Schema",
]
