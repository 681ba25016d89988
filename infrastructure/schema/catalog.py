"""Schema catalog: load schema sources and merge them into one tree."""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from google.protobuf import descriptor_pb2, descriptor_pool

from core.logging_config import get_logger
from domain.common.exceptions import SchemaLoadError
from domain.schema import (
    UNKNOWN_NAMESPACE,
    Namespace,
    PackageDefinition,
    SchemaFormat,
    SchemaSource,
    ServiceDefinition,
)
from .parsers import DescriptorSetParser, ProtoFileParser, SchemaParser

logger = get_logger(__name__)

# Options shared by request parsing and reply printing. protobuf's JSON
# mapping already renders 64-bit integers and enums as strings and keeps
# oneof members flat.
JSON_FORMAT_OPTIONS = {
    "preserving_proto_field_name": True,
    "always_print_fields_with_no_presence": True,
}


def _default_parsers(import_paths: Sequence[str]) -> dict[SchemaFormat, SchemaParser]:
    return {
        SchemaFormat.PROTO: ProtoFileParser(import_paths),
        SchemaFormat.DESCRIPTOR_SET: DescriptorSetParser(),
    }


def _well_known_file(name: str) -> Optional[descriptor_pb2.FileDescriptorProto]:
    try:
        fd = descriptor_pool.Default().FindFileByName(name)
    except KeyError:
        return None
    proto = descriptor_pb2.FileDescriptorProto()
    fd.CopyToProto(proto)
    return proto


def build_pool(path: str, fds: descriptor_pb2.FileDescriptorSet) -> descriptor_pool.DescriptorPool:
    """Add every file of ``fds`` to a fresh pool, dependencies first."""
    pool = descriptor_pool.DescriptorPool()
    by_name = {f.name: f for f in fds.file}
    added: set[str] = set()
    visiting: set[str] = set()

    def add(name: str) -> None:
        if name in added:
            return
        if name in visiting:
            raise SchemaLoadError(path, f"import cycle through {name}")
        proto = by_name.get(name) or _well_known_file(name)
        if proto is None:
            raise SchemaLoadError(path, f"missing dependency {name}")
        visiting.add(name)
        for dep in proto.dependency:
            add(dep)
        try:
            pool.AddSerializedFile(proto.SerializeToString())
        except (TypeError, ValueError, KeyError) as exc:
            raise SchemaLoadError(path, f"invalid descriptor {name}: {exc}") from exc
        visiting.discard(name)
        added.add(name)

    for name in by_name:
        add(name)
    return pool


def parse_source(source: SchemaSource, parsers: dict[SchemaFormat, SchemaParser]) -> PackageDefinition:
    """Parse one source into a flat mapping of service fqn -> definition."""
    parser = parsers.get(source.format)
    if parser is None:
        raise SchemaLoadError(source.path, f"no parser for format {source.format.value}")
    fds = parser.parse(source.path)
    pool = build_pool(source.path, fds)

    definition: PackageDefinition = {}
    for file_proto in fds.file:
        file_desc = pool.FindFileByName(file_proto.name)
        for svc in file_desc.services_by_name.values():
            definition[svc.full_name] = ServiceDefinition(name=svc.name, descriptor=svc)
    logger.info("schema_loaded", path=source.path, format=source.format.value, services=len(definition))
    return definition


def merge_definitions(partials: Sequence[PackageDefinition]) -> PackageDefinition:
    """Shallow-merge partial definitions; the first listed source wins.

    Sources are applied back to front, so a key defined by several sources
    ends up holding the value of the one closest to the start of the list.
    """
    merged: PackageDefinition = {}
    for partial in reversed(partials):
        merged.update(partial)
    return merged


def build_tree(definition: PackageDefinition) -> Namespace:
    """Nest a flat definition on package segments.

    Package-less services are collected under the reserved ``unknown``
    namespace, which is always present.
    """
    root = Namespace()
    unknowns: dict[str, ServiceDefinition] = {}

    for fqn, service in definition.items():
        *package, name = fqn.split(".")
        if not package:
            unknowns[name] = service
            continue
        node = root
        for segment in package:
            child = node.children.get(segment)
            if child is None:
                child = node.children[segment] = Namespace()
            elif not isinstance(child, Namespace):
                logger.warning("schema_namespace_conflict", fqn=fqn, segment=segment)
                break
            node = child
        else:
            node.children[name] = service

    existing = root.children.get(UNKNOWN_NAMESPACE)
    if isinstance(existing, Namespace):
        existing.children.update(unknowns)
    else:
        root.children[UNKNOWN_NAMESPACE] = Namespace(children=dict(unknowns))
    return root


def load_definitions(
    sources: Iterable[SchemaSource],
    import_paths: Sequence[str] = (),
    parsers: Optional[dict[SchemaFormat, SchemaParser]] = None,
) -> PackageDefinition:
    parsers = parsers or _default_parsers(import_paths)
    partials = [parse_source(source, parsers) for source in sources]
    return merge_definitions(partials)


def load_catalog(
    sources: Iterable[SchemaSource],
    import_paths: Sequence[str] = (),
    parsers: Optional[dict[SchemaFormat, SchemaParser]] = None,
) -> Namespace:
    """Load all sources and return the merged schema tree.

    Raises:
        SchemaLoadError: If any source cannot be parsed in its declared format
    """
    sources = list(sources)
    if not sources:
        raise SchemaLoadError("<none>", "at least one schema source is required")
    return build_tree(load_definitions(sources, import_paths, parsers))
