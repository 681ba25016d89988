"""Transport layer: credentials, the Unix socket bridge and dynamic clients."""
from .bridge import UnixSocketBridge, bridge_address
from .client import RpcMethod, ServiceClient, method_accessor
from .credentials import Credentials, build_credentials, credentials_from_options
from .metadata import create_metadata, flatten_metadata

__all__ = [
    "UnixSocketBridge",
    "bridge_address",
    "RpcMethod",
    "ServiceClient",
    "method_accessor",
    "Credentials",
    "build_credentials",
    "credentials_from_options",
    "create_metadata",
    "flatten_metadata",
]
