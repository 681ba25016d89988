"""Generic gRPC client built at runtime from a protobuf service descriptor."""
from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

import grpc
from google.protobuf import json_format, message_factory
from google.protobuf.message import Message

from core.logging_config import get_logger
from .credentials import Credentials
from .metadata import create_metadata

logger = get_logger(__name__)


class RpcMethod:
    """One RPC of a service, callable with a message or a plain mapping.

    Unary replies are returned (or passed to ``callback(error, reply)``);
    streamed replies are returned as an iterator (or passed one by one to
    ``callback(reply)``).
    """

    def __init__(self, channel: grpc.Channel, method: Any) -> None:
        self.name: str = method.name
        self.path = f"/{method.containing_service.full_name}/{method.name}"
        self.client_streaming: bool = method.client_streaming
        self.server_streaming: bool = method.server_streaming
        self.request_class = message_factory.GetMessageClass(method.input_type)
        self.response_class = message_factory.GetMessageClass(method.output_type)

        factories = {
            (False, False): channel.unary_unary,
            (False, True): channel.unary_stream,
            (True, False): channel.stream_unary,
            (True, True): channel.stream_stream,
        }
        factory = factories[(self.client_streaming, self.server_streaming)]
        self._multicallable = factory(
            self.path,
            request_serializer=self.request_class.SerializeToString,
            response_deserializer=self.response_class.FromString,
        )

    @property
    def kind(self) -> str:
        return {
            (False, False): "unary",
            (False, True): "server_stream",
            (True, False): "client_stream",
            (True, True): "bidi_stream",
        }[(self.client_streaming, self.server_streaming)]

    def coerce_request(self, request: Any) -> Message:
        if request is None:
            return self.request_class()
        if isinstance(request, self.request_class):
            return request
        if isinstance(request, Message):
            raise TypeError(
                f"{self.name} expects {self.request_class.DESCRIPTOR.full_name}, "
                f"got {request.DESCRIPTOR.full_name}"
            )
        if isinstance(request, Mapping):
            return json_format.ParseDict(request, self.request_class())
        raise TypeError(f"{self.name} expects a message or a mapping, got {type(request).__name__}")

    def _requests(self, request: Any) -> Any:
        if not self.client_streaming:
            return self.coerce_request(request)
        if request is None:
            return iter(())
        return (self.coerce_request(item) for item in request)

    def __call__(
        self,
        request: Any = None,
        metadata: Any = None,
        timeout: Optional[float] = None,
        callback: Optional[Callable[..., Any]] = None,
    ) -> Any:
        requests = self._requests(request)
        md = create_metadata(metadata) or None

        if self.server_streaming:
            replies: Iterator[Message] = self._multicallable(requests, metadata=md, timeout=timeout)
            if callback is None:
                return replies
            for reply in replies:
                callback(reply)
            return None

        if callback is None:
            return self._multicallable(requests, metadata=md, timeout=timeout)
        try:
            reply = self._multicallable(requests, metadata=md, timeout=timeout)
        except grpc.RpcError as exc:
            callback(exc, None)
        else:
            callback(None, reply)
        return None

    def with_call(self, request: Any = None, metadata: Any = None, timeout: Optional[float] = None):
        """Return ``(reply, call)`` so response metadata can be inspected."""
        if self.server_streaming:
            raise TypeError(f"{self.name} streams its replies; iterate the call instead")
        md = create_metadata(metadata) or None
        return self._multicallable.with_call(self._requests(request), metadata=md, timeout=timeout)

    def future(self, request: Any = None, metadata: Any = None, timeout: Optional[float] = None) -> grpc.Future:
        if self.server_streaming:
            raise TypeError(f"{self.name} streams its replies; iterate the call instead")
        md = create_metadata(metadata) or None
        return self._multicallable.future(self._requests(request), metadata=md, timeout=timeout)

    def __repr__(self) -> str:
        return (
            f"<RpcMethod {self.path} ({self.kind}) "
            f"{self.request_class.DESCRIPTOR.full_name} -> {self.response_class.DESCRIPTOR.full_name}>"
        )


class ServiceClient:
    """Client bound to one service on one channel."""

    def __init__(
        self,
        descriptor: Any,
        address: str,
        credentials: Credentials,
        options: Optional[Sequence[tuple[str, Any]]] = None,
    ) -> None:
        self.descriptor = descriptor
        self.address = address
        self.credentials = credentials
        self.channel = credentials.open_channel(address, options)
        self.methods: dict[str, RpcMethod] = {
            method.name: RpcMethod(self.channel, method) for method in descriptor.methods
        }
        logger.debug("client_created", service=descriptor.full_name, address=address, secure=not credentials.insecure)

    def __getattr__(self, name: str) -> RpcMethod:
        methods = self.__dict__.get("methods") or {}
        try:
            return methods[name]
        except KeyError:
            raise AttributeError(f"{self.descriptor.full_name} has no method {name!r}") from None

    def __dir__(self) -> Iterable[str]:
        return [*super().__dir__(), *self.methods]

    def close(self) -> None:
        self.channel.close()

    def __enter__(self) -> "ServiceClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<ServiceClient {self.descriptor.full_name} @ {self.address}>"


# Instance attributes set in ServiceClient.__init__; an RPC with one of these
# names is only reachable through ``client.methods``.
_INSTANCE_ATTRIBUTES = frozenset({"descriptor", "address", "credentials", "channel", "methods"})
RESERVED_NAMES = _INSTANCE_ATTRIBUTES | {name for name in dir(ServiceClient) if not name.startswith("_")}


def method_accessor(name: str) -> str:
    """How an RPC is spelled on a client: ``Name`` or ``methods['name']``."""
    if name in RESERVED_NAMES:
        return f"methods[{name!r}]"
    return name
