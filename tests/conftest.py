"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings.
"""
import os

# Never touch the real ~/.grpcc_history from tests
os.environ.setdefault("GRPCC_HISTORY", "")
os.environ.setdefault("GRPCC_LOG_FORMAT", "console")

import shutil
import tempfile
from concurrent import futures
from pathlib import Path
from typing import Iterator, Tuple

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


def fixture_path(name: str) -> str:
    return str(FIXTURES / name)


@pytest.fixture
def short_tmp() -> Iterator[Path]:
    """Temporary directory with a path short enough for a Unix socket."""
    path = Path(tempfile.mkdtemp(prefix="grpcc-"))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def greeter_services():
    from application.services.resolver import resolve
    from domain.schema import SchemaSource
    from infrastructure.schema import load_catalog

    tree = load_catalog([SchemaSource.from_path(fixture_path("greeter.proto"))])
    return resolve(tree)


def _start_greeter_server(bind: str, services) -> Tuple[object, int]:
    """Start a minimal gRPC server implementing a.b.Greeter.

    Message classes come from the same catalog the client uses, so no
    generated stubs are needed.
    """
    import grpc
    from google.protobuf import message_factory

    descriptor = services[0].service.descriptor
    say_hello = descriptor.methods_by_name["SayHello"]
    request_cls = message_factory.GetMessageClass(say_hello.input_type)
    reply_cls = message_factory.GetMessageClass(say_hello.output_type)

    def SayHello(request, context):
        context.set_trailing_metadata((("x-served-by", "fake-greeter"),))
        return reply_cls(message=f"Hello {request.name}", request_count=1)

    def SayHellos(request, context):
        for i in range(max(1, request.times)):
            yield reply_cls(message=f"Hello {request.name} #{i}", request_count=i + 1)

    def Fail(request, context):
        context.set_trailing_metadata((("x-error-type", "Boom"),))
        context.abort(grpc.StatusCode.NOT_FOUND, f"{request.name} not found")

    handlers = {
        "SayHello": grpc.unary_unary_rpc_method_handler(
            SayHello,
            request_deserializer=request_cls.FromString,
            response_serializer=reply_cls.SerializeToString,
        ),
        "SayHellos": grpc.unary_stream_rpc_method_handler(
            SayHellos,
            request_deserializer=request_cls.FromString,
            response_serializer=reply_cls.SerializeToString,
        ),
        "Fail": grpc.unary_unary_rpc_method_handler(
            Fail,
            request_deserializer=request_cls.FromString,
            response_serializer=reply_cls.SerializeToString,
        ),
    }
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler("a.b.Greeter", handlers),))
    port = server.add_insecure_port(bind)
    server.start()
    return server, port


@pytest.fixture
def greeter_server(greeter_services) -> Iterator[str]:
    """In-process insecure Greeter server on an ephemeral TCP port."""
    server, port = _start_greeter_server("127.0.0.1:0", greeter_services)
    try:
        yield f"127.0.0.1:{port}"
    finally:
        server.stop(grace=None)


@pytest.fixture
def greeter_unix_server(greeter_services, short_tmp) -> Iterator[str]:
    """Same server listening on a Unix domain socket."""
    sock = short_tmp / "greeter.sock"
    server, _ = _start_greeter_server(f"unix:{sock}", greeter_services)
    try:
        yield str(sock)
    finally:
        server.stop(grace=None)


@pytest.fixture
def proto_path():
    return fixture_path
