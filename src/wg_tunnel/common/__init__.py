"""Common utilities and shared functionality."""

from .exceptions import (
    AlreadyConnectedError,
    ConfigNotFoundError,
    ConfigValidationError,
    ErrorKind,
    ExecutionFailedError,
    InterfaceNotFoundError,
    MalformedFieldError,
    MissingFieldError,
    PermissionDeniedError,
    PlatformNotSupportedError,
    TimedOutError,
    ToolNotInstalledError,
    TunnelError,
)
from .logging import get_logger, setup_logging
from .process import ProcessExecutor, ProcessResult
from .utils import (
    MAX_PORT,
    MIN_PORT,
    redact_key_material,
    sanitize_log_data,
    split_csv,
    validate_port,
)

__all__ = [
    # Process execution
    "ProcessExecutor",
    "ProcessResult",
    # Exceptions
    "ErrorKind",
    "TunnelError",
    "ConfigValidationError",
    "MissingFieldError",
    "MalformedFieldError",
    "ToolNotInstalledError",
    "PlatformNotSupportedError",
    "PermissionDeniedError",
    "InterfaceNotFoundError",
    "ExecutionFailedError",
    "TimedOutError",
    "AlreadyConnectedError",
    "ConfigNotFoundError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "validate_port",
    "split_csv",
    "sanitize_log_data",
    "redact_key_material",
    "MIN_PORT",
    "MAX_PORT",
]
