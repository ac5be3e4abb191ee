"""Utility functions for the tunnel manager."""

import re
from collections.abc import Iterable
from typing import Any

# Port range constants
MIN_PORT = 1
MAX_PORT = 65535

# WireGuard keys are 32 bytes, base64 encoded: 43 significant chars plus '='
WG_KEY_PATTERN = re.compile(r"(?<![A-Za-z0-9+/])[A-Za-z0-9+/]{42}[AEIMQUYcgkosw048]=")

REDACTED = "<redacted>"

SENSITIVE_FIELDS = frozenset(
    {
        "private_key",
        "peer_public_key",
        "public_key",
        "preshared_key",
        "token",
        "password",
        "secret",
        "key",
    }
)


def validate_port(port: int, port_name: str = "Port") -> None:
    """Validate port number range.

    Args:
        port: Port number to validate
        port_name: Name of the port for error messages

    Raises:
        ValueError: If port is not in valid range (1-65535)
    """
    if not isinstance(port, int) or not (MIN_PORT <= port <= MAX_PORT):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")


def split_csv(value: str) -> list[str]:
    """Split a comma separated value, dropping empty entries."""
    return [item.strip() for item in value.split(",") if item.strip()]


def is_sensitive_field(name: str) -> bool:
    """Return True if a field name looks like it carries secret material."""
    lowered = name.lower()
    return any(field in lowered for field in SENSITIVE_FIELDS)


def sanitize_log_data(data: dict[str, Any]) -> dict[str, Any]:
    """Sanitize dictionary data for safe logging by masking sensitive fields.

    Args:
        data: Dictionary potentially containing sensitive data

    Returns:
        Sanitized dictionary safe for logging
    """
    sanitized = {}
    for key, value in data.items():
        if is_sensitive_field(key):
            sanitized[key] = REDACTED if value else "<None>"
        else:
            sanitized[key] = value

    return sanitized


def redact_key_material(text: str, secrets: Iterable[str] = ()) -> str:
    """Remove key material from free-form text such as helper diagnostics.

    Known secret values are replaced first, then anything shaped like a
    WireGuard key.

    Args:
        text: Text that may contain echoed key material
        secrets: Exact secret values to remove

    Returns:
        Text safe to surface in errors and logs
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return WG_KEY_PATTERN.sub(REDACTED, text)
