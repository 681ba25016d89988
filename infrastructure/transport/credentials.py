"""Channel credentials: insecure, system-default TLS, or custom cert material."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import grpc

from core.logging_config import get_logger
from domain.common.exceptions import CredentialLoadError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Immutable credential handle; ``channel_credentials`` is None when insecure."""

    channel_credentials: Optional[grpc.ChannelCredentials] = None

    @property
    def insecure(self) -> bool:
        return self.channel_credentials is None

    def open_channel(self, target: str, options: Optional[Sequence[tuple[str, Any]]] = None) -> grpc.Channel:
        if self.channel_credentials is None:
            return grpc.insecure_channel(target, options=options)
        return grpc.secure_channel(target, self.channel_credentials, options=options)


def _read(path: str) -> bytes:
    try:
        return Path(path).expanduser().read_bytes()
    except OSError as exc:
        raise CredentialLoadError(path, exc.strerror or str(exc)) from exc


def build_credentials(
    insecure: bool = False,
    root_cert: Optional[str] = None,
    private_key: Optional[str] = None,
    cert_chain: Optional[str] = None,
) -> Credentials:
    """Build channel credentials.

    ``insecure`` never reads any file. Without ``root_cert`` the OS trust
    store is used. With it, the optional key and chain are read as well.

    Raises:
        CredentialLoadError: If a configured file cannot be read; callers
            must treat it as fatal instead of falling back
    """
    if insecure:
        return Credentials()

    if not root_cert:
        return Credentials(grpc.ssl_channel_credentials())

    root_bytes = _read(root_cert)
    key_bytes = _read(private_key) if private_key else None
    chain_bytes = _read(cert_chain) if cert_chain else None
    logger.debug(
        "custom_ssl_credentials",
        root_cert=root_cert,
        private_key=bool(private_key),
        cert_chain=bool(cert_chain),
    )
    return Credentials(
        grpc.ssl_channel_credentials(
            root_certificates=root_bytes,
            private_key=key_bytes,
            certificate_chain=chain_bytes,
        )
    )


def credentials_from_options(options: Mapping[str, Any]) -> Credentials:
    """Build credentials from a mapping using the CLI option names."""
    return build_credentials(
        insecure=bool(options.get("insecure", False)),
        root_cert=options.get("root_cert"),
        private_key=options.get("private_key"),
        cert_chain=options.get("cert_chain"),
    )
