"""Tunnel value types.

This module defines the tunnel configuration, the remote directory
descriptor, the connection status snapshot and the manager's internal record
of an active connection.
"""

import ipaddress
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from ..common.utils import split_csv, validate_port

DEFAULT_CONFIG_NAME = "tunnel"
DEFAULT_ALLOWED_IPS = "0.0.0.0/0, ::/0"


class ConnectionState(str, Enum):
    """Connection state machine states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


def split_endpoint(endpoint: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into its parts.

    Raises:
        ValueError: If the endpoint is not in host:port form
    """
    if endpoint.startswith("["):
        host, sep, port_text = endpoint[1:].partition("]:")
    else:
        host, sep, port_text = endpoint.rpartition(":")
        if ":" in host:
            raise ValueError("IPv6 endpoint hosts must be enclosed in brackets")

    if not sep or not host:
        raise ValueError("Endpoint must be in host:port form")
    if not port_text.isdigit():
        raise ValueError("Endpoint port must be numeric")

    port = int(port_text)
    validate_port(port, "Endpoint port")
    return host, port


class TunnelConfig(BaseModel):
    """Configuration for a single WireGuard tunnel.

    Key material is held in ``SecretStr`` so it never shows up in reprs or
    logs. Instances are immutable.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="forbid",
        hide_input_in_errors=True,
    )

    name: str = Field(
        default=DEFAULT_CONFIG_NAME, min_length=1, description="Display label"
    )
    private_key: SecretStr = Field(description="Interface private key")
    peer_public_key: SecretStr = Field(description="Peer public key")
    endpoint: str = Field(min_length=1, description="Peer endpoint as host:port")
    local_address: str = Field(
        min_length=1, description="Interface address(es) in CIDR form"
    )
    allowed_ips: str = Field(
        default=DEFAULT_ALLOWED_IPS, min_length=1, description="Routed networks"
    )
    dns: str | None = Field(default=None, description="DNS servers or search domains")
    keepalive_interval: int | None = Field(
        default=None, ge=1, le=65535, description="Persistent keepalive in seconds"
    )

    @field_validator("private_key", "peer_public_key")
    @classmethod
    def validate_key_present(cls, v: SecretStr) -> SecretStr:
        """Reject empty key material."""
        if not v.get_secret_value().strip():
            raise ValueError("Key must not be empty")
        return SecretStr(v.get_secret_value().strip())

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate host:port form."""
        split_endpoint(v)
        return v

    @field_validator("local_address")
    @classmethod
    def validate_local_address(cls, v: str) -> str:
        """Validate interface addresses, e.g. ``10.0.0.2/24``."""
        addresses = split_csv(v)
        if not addresses:
            raise ValueError("At least one address is required")
        for address in addresses:
            if "/" not in address:
                raise ValueError(f"Address '{address}' must be in CIDR form")
            ipaddress.ip_interface(address)
        return ", ".join(addresses)

    @field_validator("allowed_ips")
    @classmethod
    def validate_allowed_ips(cls, v: str) -> str:
        """Validate routed networks, e.g. ``0.0.0.0/0, ::/0``."""
        networks = split_csv(v)
        if not networks:
            raise ValueError("At least one allowed network is required")
        for network in networks:
            ipaddress.ip_network(network, strict=False)
        return ", ".join(networks)

    @field_validator("dns")
    @classmethod
    def validate_dns(cls, v: str | None) -> str | None:
        """Normalize DNS list; empty means absent."""
        if v is None:
            return None
        servers = split_csv(v)
        return ", ".join(servers) if servers else None

    @property
    def endpoint_host(self) -> str:
        """Host part of the endpoint."""
        return split_endpoint(self.endpoint)[0]

    @property
    def endpoint_port(self) -> int:
        """Port part of the endpoint."""
        return split_endpoint(self.endpoint)[1]


class RemoteConfigDescriptor(BaseModel):
    """Named configuration offered by a remote directory."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(min_length=1, description="Identifier unique within one listing")
    name: str = Field(description="Display name")
    location: str = Field(default="", description="Human readable location")
    endpoint: str = Field(description="Server endpoint as host:port")


class ConnectionStatus(BaseModel):
    """Point-in-time view of the tunnel.

    ``connected`` is True exactly when both optional fields are set.
    """

    model_config = ConfigDict(frozen=True)

    connected: bool = False
    current_config_name: str | None = None
    interface_name: str | None = None

    @model_validator(mode="after")
    def check_consistency(self) -> "ConnectionStatus":
        """Enforce connected <=> both names present."""
        has_names = (
            self.current_config_name is not None and self.interface_name is not None
        )
        if self.connected and not has_names:
            raise ValueError("Connected status requires config and interface names")
        if not self.connected and (
            self.current_config_name is not None or self.interface_name is not None
        ):
            raise ValueError("Disconnected status must not carry names")
        return self

    @classmethod
    def disconnected(cls) -> "ConnectionStatus":
        """Snapshot for 'nothing active'."""
        return cls()

    @classmethod
    def active(cls, config_name: str, interface_name: str) -> "ConnectionStatus":
        """Snapshot for an active tunnel."""
        return cls(
            connected=True,
            current_config_name=config_name,
            interface_name=interface_name,
        )


class ActiveConnection(BaseModel):
    """Manager-internal record of the tunnel that is currently up."""

    model_config = ConfigDict(frozen=True)

    interface_name: str = Field(min_length=1)
    config_name: str = Field(min_length=1)
    config_artifact_path: Path
    connected_at: datetime = Field(default_factory=datetime.now)

    def to_status(self) -> ConnectionStatus:
        """Project into a caller-facing snapshot."""
        return ConnectionStatus.active(self.config_name, self.interface_name)
