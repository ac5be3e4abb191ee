"""wg-tunnel - lifecycle manager for a single WireGuard tunnel."""

from .api import connect_from_directory, create_manager, managed_connection
from .common.exceptions import (
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
from .common.logging import get_logger, setup_logging
from .common.process import ProcessExecutor, ProcessResult
from .directory import InMemoryConfigDirectory, RemoteConfigDirectory
from .platforms import PlatformCapability, create_platform
from .tunnel import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    ManagerSettings,
    RemoteConfigDescriptor,
    TunnelConfig,
    parse,
    serialize,
)

# Package level logger
logger = get_logger(__name__)

__version__ = "0.1.0"


__all__ = [
    # High-level API
    "create_manager",
    "managed_connection",
    "connect_from_directory",
    # Lifecycle
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "ManagerSettings",
    # Config
    "TunnelConfig",
    "RemoteConfigDescriptor",
    "parse",
    "serialize",
    # Platforms
    "PlatformCapability",
    "create_platform",
    "ProcessExecutor",
    "ProcessResult",
    # Directory
    "RemoteConfigDirectory",
    "InMemoryConfigDirectory",
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
]
