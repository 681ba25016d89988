"""Schema catalog domain exports."""
from .entity import (
    UNKNOWN_NAMESPACE,
    Namespace,
    PackageDefinition,
    SchemaFormat,
    SchemaNode,
    SchemaSource,
    ServiceDefinition,
    ServiceDescriptor,
)

__all__ = [
    "UNKNOWN_NAMESPACE",
    "Namespace",
    "PackageDefinition",
    "SchemaFormat",
    "SchemaNode",
    "SchemaSource",
    "ServiceDefinition",
    "ServiceDescriptor",
]
