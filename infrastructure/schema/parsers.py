"""Schema parsers, one per declared source format.

Every parser turns a schema location into a ``FileDescriptorSet``; the
catalog never needs to know how a given format is read.
"""
from __future__ import annotations

import tempfile
from importlib import resources
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError
# Well-known types must be present in the default pool so that descriptor
# sets compiled without --include_imports can still be resolved.
from google.protobuf import (  # noqa: F401
    any_pb2,
    api_pb2,
    duration_pb2,
    empty_pb2,
    field_mask_pb2,
    source_context_pb2,
    struct_pb2,
    timestamp_pb2,
    type_pb2,
    wrappers_pb2,
)
from grpc_tools import protoc

from core.logging_config import get_logger
from domain.common.exceptions import SchemaLoadError
from domain.schema import SchemaFormat

logger = get_logger(__name__)


@runtime_checkable
class SchemaParser(Protocol):
    """Parser protocol for duck typing."""

    format: SchemaFormat

    def parse(self, path: str) -> descriptor_pb2.FileDescriptorSet:
        """Parse one schema location into a descriptor set."""
        ...


def well_known_include_dir() -> str:
    """Directory holding google/protobuf/*.proto shipped with grpcio-tools."""
    return str(resources.files("grpc_tools") / "_proto")


class ProtoFileParser:
    """Compile a textual ``.proto`` file with the bundled protoc."""

    format = SchemaFormat.PROTO

    def __init__(self, import_paths: Sequence[str] = ()) -> None:
        self._import_paths = [str(Path(p).expanduser()) for p in import_paths]

    def parse(self, path: str) -> descriptor_pb2.FileDescriptorSet:
        source = Path(path).expanduser()
        if not source.is_file():
            raise SchemaLoadError(path, "no such file")
        source = source.resolve()
        include_dirs = [str(source.parent), *self._import_paths, well_known_include_dir()]

        with tempfile.TemporaryDirectory(prefix="grpcc-") as tmp:
            out = Path(tmp) / "descriptor_set.pb"
            args = [
                "grpc_tools.protoc",
                *(f"--proto_path={d}" for d in include_dirs),
                f"--descriptor_set_out={out}",
                "--include_imports",
                str(source),
            ]
            status = protoc.main(args)
            if status != 0:
                raise SchemaLoadError(path, f"protoc exited with status {status}")
            data = out.read_bytes()

        logger.debug("proto_compiled", path=path, size=len(data))
        return descriptor_pb2.FileDescriptorSet.FromString(data)


class DescriptorSetParser:
    """Read a precompiled, serialized ``FileDescriptorSet`` (``.pb``)."""

    format = SchemaFormat.DESCRIPTOR_SET

    def parse(self, path: str) -> descriptor_pb2.FileDescriptorSet:
        try:
            data = Path(path).expanduser().read_bytes()
        except OSError as exc:
            raise SchemaLoadError(path, exc.strerror or str(exc)) from exc
        try:
            return descriptor_pb2.FileDescriptorSet.FromString(data)
        except DecodeError as exc:
            raise SchemaLoadError(path, f"not a FileDescriptorSet: {exc}") from exc
