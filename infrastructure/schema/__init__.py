"""Schema loading: parsers per source format and the merged catalog."""
from .catalog import (
    JSON_FORMAT_OPTIONS,
    build_tree,
    load_catalog,
    load_definitions,
    merge_definitions,
)
from .parsers import DescriptorSetParser, ProtoFileParser, SchemaParser

__all__ = [
    "JSON_FORMAT_OPTIONS",
    "build_tree",
    "load_catalog",
    "load_definitions",
    "merge_definitions",
    "DescriptorSetParser",
    "ProtoFileParser",
    "SchemaParser",
]
