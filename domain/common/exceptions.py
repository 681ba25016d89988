"""Client error taxonomy shared by every layer.

The core (core) layer only renders and maps these; the domain layer stays
free of any reverse dependency on it.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import ErrorCode


class GrpccError(Exception):
    """Base class for every error raised by the client."""

    fatal: bool = False

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "GrpccError",
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        super().__init__(self.message)

    @property
    def exit_code(self) -> int:
        return int(self.code) or int(ErrorCode.UNKNOWN_ERROR)


class ConfigurationError(GrpccError):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=ErrorCode.CONFIGURATION_ERROR,
            message=message,
            error_type="ConfigurationError",
            details=details,
        )


class SchemaLoadError(GrpccError):
    def __init__(self, path: str, reason: str):
        super().__init__(
            code=ErrorCode.SCHEMA_LOAD_ERROR,
            message=f"Unable to load schema {path}: {reason}",
            error_type="SchemaLoadError",
            details={"path": path, "reason": reason},
        )


class NoServiceFoundError(GrpccError):
    def __init__(self):
        super().__init__(
            code=ErrorCode.NO_SERVICE_FOUND,
            message="Unable to find any service in proto file",
            error_type="NoServiceFound",
        )


class ServiceSelectionError(GrpccError):
    def __init__(self, message: str, pattern: Optional[str] = None):
        details = {"pattern": pattern} if pattern else None
        super().__init__(
            code=ErrorCode.SERVICE_SELECTION_ERROR,
            message=message,
            error_type="ServiceSelectionError",
            details=details,
        )


class UnknownServiceError(GrpccError):
    def __init__(self, fqn: str):
        super().__init__(
            code=ErrorCode.UNKNOWN_SERVICE,
            message=f'no service name match "{fqn}"',
            error_type="UnknownService",
            details={"fqn": fqn},
        )


class CredentialLoadError(GrpccError):
    """Certificate material could not be read. Always ends the process."""

    fatal = True

    def __init__(self, path: str, reason: str):
        super().__init__(
            code=ErrorCode.CREDENTIAL_LOAD_ERROR,
            message=f"Unable to load custom SSL certs: {path}: {reason}",
            error_type="CredentialLoadError",
            details={"path": path, "reason": reason},
        )


class TransportBridgeError(GrpccError):
    def __init__(self, unix_path: str, reason: str):
        super().__init__(
            code=ErrorCode.TRANSPORT_BRIDGE_ERROR,
            message=f"Unable to prepare proxy for {unix_path}: {reason}",
            error_type="TransportBridgeError",
            details={"unix_path": unix_path, "reason": reason},
        )


class EvalCompileError(GrpccError):
    def __init__(self, filename: str, exc: SyntaxError):
        super().__init__(
            code=ErrorCode.EVAL_COMPILE_ERROR,
            message=f"{filename}:{exc.lineno}:{exc.offset}: {exc.msg}",
            error_type="EvalCompileError",
            details={"filename": filename, "lineno": exc.lineno, "offset": exc.offset, "text": exc.text},
        )


class SessionTerminated(BaseException):
    """Ends the run from inside user code.

    Derives from ``BaseException`` so a script's ``except Exception`` cannot
    keep the process alive after a fatal error.
    """

    def __init__(self, error: GrpccError) -> None:
        self.error = error
        super().__init__(error.message)

    @property
    def exit_code(self) -> int:
        return self.error.exit_code
