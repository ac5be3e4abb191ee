"""Custom exceptions for the tunnel lifecycle manager."""

from enum import Enum


class ErrorKind(str, Enum):
    """Canonical error kinds callers can branch on."""

    VALIDATION = "validation"
    TOOL_NOT_INSTALLED = "tool_not_installed"
    PERMISSION_DENIED = "permission_denied"
    INTERFACE_NOT_FOUND = "interface_not_found"
    EXECUTION_FAILED = "execution_failed"
    TIMED_OUT = "timed_out"
    ALREADY_CONNECTED = "already_connected"
    NOT_FOUND = "not_found"

    @property
    def message_category(self) -> str:
        """Stable human-readable category for this kind."""
        return _MESSAGE_CATEGORIES[self]


_MESSAGE_CATEGORIES = {
    ErrorKind.VALIDATION: "Invalid configuration",
    ErrorKind.TOOL_NOT_INSTALLED: "WireGuard tools are not installed",
    ErrorKind.PERMISSION_DENIED: "Elevated privileges are required",
    ErrorKind.INTERFACE_NOT_FOUND: "Tunnel interface not found",
    ErrorKind.EXECUTION_FAILED: "WireGuard helper failed",
    ErrorKind.TIMED_OUT: "Operation timed out",
    ErrorKind.ALREADY_CONNECTED: "A tunnel is already connected",
    ErrorKind.NOT_FOUND: "Configuration not found",
}


class TunnelError(Exception):
    """Base exception for all tunnel manager errors."""

    kind: ErrorKind = ErrorKind.EXECUTION_FAILED


class ConfigValidationError(TunnelError):
    """Raised when a tunnel configuration is missing or has malformed fields."""

    kind = ErrorKind.VALIDATION


class MissingFieldError(ConfigValidationError):
    """Raised when a required configuration key is absent."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class MalformedFieldError(ConfigValidationError):
    """Raised when a configuration value cannot be accepted.

    The offending value is deliberately not part of the message; it may be
    key material.
    """

    def __init__(self, field: str, reason: str = "invalid value"):
        self.field = field
        self.reason = reason
        super().__init__(f"Malformed field {field}: {reason}")


class ToolNotInstalledError(TunnelError):
    """Raised when the WireGuard helper cannot be found on the host."""

    kind = ErrorKind.TOOL_NOT_INSTALLED

    def __init__(self, message: str | None = None, *, tool: str = "wg-quick"):
        self.tool = tool
        super().__init__(
            message
            or f"'{tool}' not found. Please install wireguard-tools "
            "(e.g. 'apt install wireguard-tools' or 'brew install wireguard-tools') "
            f"and ensure '{tool}' is available in your PATH."
        )


class PlatformNotSupportedError(ToolNotInstalledError):
    """Raised when no WireGuard helper integration exists for this OS."""

    def __init__(self, system: str):
        self.system = system
        super().__init__(
            f"WireGuard tunnels are not supported on platform '{system}'"
        )


class PermissionDeniedError(TunnelError):
    """Raised when the helper could not run with sufficient privileges."""

    kind = ErrorKind.PERMISSION_DENIED


class InterfaceNotFoundError(TunnelError):
    """Raised when the named interface does not exist."""

    kind = ErrorKind.INTERFACE_NOT_FOUND

    def __init__(self, interface_name: str):
        self.interface_name = interface_name
        super().__init__(f"Interface not found: {interface_name}")


class ExecutionFailedError(TunnelError):
    """Raised when the helper ran but reported failure."""

    kind = ErrorKind.EXECUTION_FAILED

    def __init__(self, exit_code: int | None, message: str):
        self.exit_code = exit_code
        self.message = message
        if exit_code is None:
            super().__init__(message)
        else:
            super().__init__(f"Command failed with exit code {exit_code}: {message}")


class TimedOutError(TunnelError):
    """Raised when an external command exceeded its time bound."""

    kind = ErrorKind.TIMED_OUT

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"'{command}' timed out after {timeout:.1f}s")


class AlreadyConnectedError(TunnelError):
    """Raised when apply is called while a tunnel is already active."""

    kind = ErrorKind.ALREADY_CONNECTED

    def __init__(self, config_name: str, interface_name: str):
        self.config_name = config_name
        self.interface_name = interface_name
        super().__init__(
            f"Tunnel '{config_name}' is already connected on {interface_name}; "
            "disconnect first"
        )


class ConfigNotFoundError(TunnelError):
    """Raised by a config directory when an id is unknown."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, config_id: str):
        self.config_id = config_id
        super().__init__(f"Configuration '{config_id}' not found")
