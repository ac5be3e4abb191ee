"""Tunnel configuration, codec and lifecycle management."""

from .models import (
    DEFAULT_ALLOWED_IPS,
    ActiveConnection,
    ConnectionState,
    ConnectionStatus,
    RemoteConfigDescriptor,
    TunnelConfig,
)
from .settings import ManagerSettings
from .codec import parse, serialize
from .artifact import ConfigArtifact
from .manager import ConnectionManager

__all__ = [
    # Models
    "TunnelConfig",
    "RemoteConfigDescriptor",
    "ConnectionStatus",
    "ConnectionState",
    "ActiveConnection",
    "DEFAULT_ALLOWED_IPS",
    # Codec
    "parse",
    "serialize",
    # Lifecycle
    "ConfigArtifact",
    "ConnectionManager",
    "ManagerSettings",
]
