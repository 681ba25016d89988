"""Domain entities describing a merged schema catalog."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Union

# Reserved namespace for services declared without a package
UNKNOWN_NAMESPACE = "unknown"


class SchemaFormat(str, Enum):
    PROTO = "proto"
    DESCRIPTOR_SET = "descriptor_set"


@dataclass(frozen=True)
class SchemaSource:
    """One schema location, tagged with the format it is parsed as."""

    path: str
    format: SchemaFormat

    @classmethod
    def from_path(cls, path: str) -> "SchemaSource":
        fmt = SchemaFormat.DESCRIPTOR_SET if Path(path).suffix == ".pb" else SchemaFormat.PROTO
        return cls(path=path, format=fmt)


@dataclass(frozen=True)
class ServiceDefinition:
    """Leaf of the schema tree: one service and its protobuf descriptor."""

    name: str
    descriptor: Any

    @property
    def full_name(self) -> str:
        return self.descriptor.full_name

    @property
    def methods(self) -> list[str]:
        return [m.name for m in self.descriptor.methods]


@dataclass
class Namespace:
    """Inner node of the schema tree, keyed by package segment."""

    children: dict[str, "SchemaNode"] = field(default_factory=dict)

    def __contains__(self, key: str) -> bool:
        return key in self.children

    def __getitem__(self, key: str) -> "SchemaNode":
        return self.children[key]


SchemaNode = Union[Namespace, ServiceDefinition]

# Flat mapping of fully-qualified symbol name -> definition for one source
PackageDefinition = dict[str, ServiceDefinition]


@dataclass(frozen=True)
class ServiceDescriptor:
    """A resolved service: where it lives and how to build a client for it."""

    package: str
    name: str
    definition: Callable[..., Any] = field(compare=False, repr=False)
    service: ServiceDefinition = field(compare=False, repr=False)

    @property
    def fqn(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name
