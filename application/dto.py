"""
数据传输对象（DTO）- CLI 与应用层之间的数据传输
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CredentialOptions(BaseModel):
    """Channel credential configuration."""
    model_config = ConfigDict(frozen=True)

    insecure: bool = False
    root_cert: Optional[str] = None
    private_key: Optional[str] = None
    cert_chain: Optional[str] = None


class ClientOptions(CredentialOptions):
    """Everything one client invocation is configured with."""

    address: Optional[str] = Field(None, description="unix:<path> or <host>:<port>")
    protos: list[str] = Field(default_factory=list, description="Schema sources, in precedence order")
    import_paths: list[str] = Field(default_factory=list)
    service: Optional[str] = Field(None, description="Case-insensitive service filter")
    manual: bool = False
    eval: Optional[str] = None
    exec: Optional[str] = None

    @field_validator("address", "service", "eval", "exec", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def credential_options(self) -> CredentialOptions:
        return CredentialOptions(
            insecure=self.insecure,
            root_cert=self.root_cert,
            private_key=self.private_key,
            cert_chain=self.cert_chain,
        )
