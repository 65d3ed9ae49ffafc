"""Module errors: structured error taxonomy for Ghostleak."""
#
# PURPOSE:
# Provides error codes and typed exceptions so failures can be logged,
# searched and mapped to API responses consistently.
#
# ERROR CODE FORMAT:
# - STORAGE_XXX: durable key-value store errors
# - PROBE_XXX: outbound probe errors
# - TARGET_XXX: navigation / target parsing errors
# - CONFIG_XXX: configuration errors
# - SYSTEM_XXX: everything else
#
# USAGE:
#   from ghostleak.errors import StorageError, ErrorCode
#
#   raise StorageError(
#       ErrorCode.STORAGE_WRITE_FAILED,
#       "Could not persist checkedTargets",
#       details={"key": "checkedTargets"}
#   )
#
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(Enum):
    # Storage Errors
    STORAGE_CONNECTION_FAILED = "STORAGE_001"
    STORAGE_READ_FAILED = "STORAGE_002"
    STORAGE_WRITE_FAILED = "STORAGE_003"
    STORAGE_DECODE_FAILED = "STORAGE_004"

    # Probe Errors
    PROBE_TRANSPORT_FAILED = "PROBE_001"
    PROBE_TIMEOUT = "PROBE_002"

    # Target Errors
    TARGET_INVALID = "TARGET_001"
    TARGET_UNSUPPORTED_SCHEME = "TARGET_002"

    # Config Errors
    CONFIG_INVALID = "CONFIG_001"

    # Control surface errors
    ACTION_UNKNOWN = "ACTION_001"

    # System Errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


class GhostleakError(Exception):
    """
    Base exception class for Ghostleak with structured error information.

    Attributes:
        code: ErrorCode enum value
        message: Human-readable error message
        details: Optional dictionary with additional context
        http_status: Suggested HTTP status code for API responses
    """

    HTTP_STATUS_MAP: Dict[ErrorCode, int] = {
        ErrorCode.STORAGE_CONNECTION_FAILED: 503,
        ErrorCode.STORAGE_READ_FAILED: 500,
        ErrorCode.STORAGE_WRITE_FAILED: 500,
        ErrorCode.STORAGE_DECODE_FAILED: 500,
        ErrorCode.PROBE_TRANSPORT_FAILED: 502,
        ErrorCode.PROBE_TIMEOUT: 504,
        ErrorCode.TARGET_INVALID: 400,
        ErrorCode.TARGET_UNSUPPORTED_SCHEME: 400,
        ErrorCode.CONFIG_INVALID: 500,
        ErrorCode.ACTION_UNKNOWN: 400,
        ErrorCode.SYSTEM_INTERNAL_ERROR: 500,
    }

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.http_status = http_status or self.HTTP_STATUS_MAP.get(code, 500)

        # Code first so log lines are greppable
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "http_status": self.http_status
        }


class StorageError(GhostleakError):
    """Raised when the durable key-value store cannot be read or written."""


class ProbeError(GhostleakError):
    """Raised by the probe client when a request fails at the transport level."""


class TargetError(GhostleakError):
    """Raised when a navigation URL cannot be turned into an origin key."""


# ============================================================================
# Convenience Functions
# ============================================================================

def handle_error(error: Exception, context: Optional[str] = None) -> GhostleakError:
    """
    Convert a generic exception to a GhostleakError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while flushing checkedTargets")

    Returns:
        GhostleakError with appropriate code and message
    """
    if isinstance(error, GhostleakError):
        return error

    error_type = type(error).__name__

    if "Timeout" in error_type:
        code = ErrorCode.PROBE_TIMEOUT
    elif "Connect" in error_type or "Transport" in error_type:
        code = ErrorCode.PROBE_TRANSPORT_FAILED
    elif "sqlite" in type(error).__module__ or "Operational" in error_type:
        code = ErrorCode.STORAGE_WRITE_FAILED
    else:
        code = ErrorCode.SYSTEM_INTERNAL_ERROR

    message = str(error) or error_type
    if context:
        message = f"{context}: {message}"

    return GhostleakError(
        code=code,
        message=message,
        details={
            "original_type": error_type,
            "original_message": str(error)
        }
    )


__all__ = [
    "ErrorCode",
    "GhostleakError",
    "StorageError",
    "ProbeError",
    "TargetError",
    "handle_error",
]
