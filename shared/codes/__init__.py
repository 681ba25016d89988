"""
Shared error codes used across layers (Domain/Core/CLI).

Each code doubles as the process exit status when the error ends the run,
so values stay within 1..125.
"""
from enum import IntEnum


class ErrorCode(IntEnum):
    """Error codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Unclassified
    UNKNOWN_ERROR = 1

    # Configuration / input errors (1x)
    CONFIGURATION_ERROR = 10
    EVAL_COMPILE_ERROR = 11

    # Schema errors (2x)
    SCHEMA_LOAD_ERROR = 20
    NO_SERVICE_FOUND = 21
    SERVICE_SELECTION_ERROR = 22
    UNKNOWN_SERVICE = 23

    # Transport errors (3x)
    CREDENTIAL_LOAD_ERROR = 30
    TRANSPORT_BRIDGE_ERROR = 31


__all__ = ["ErrorCode"]
