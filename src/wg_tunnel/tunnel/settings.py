"""Pydantic configuration for ConnectionManager and platform behavior."""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Same rule wg-quick applies to interface names
INTERFACE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_=+.-]{1,15}$")


class ManagerSettings(BaseModel):
    """Runtime settings for the tunnel manager."""

    model_config = ConfigDict(
        str_strip_whitespace=True, validate_assignment=True, extra="forbid"
    )

    interface_name: str = Field(
        default="wg0", description="Interface name requested from wg-quick"
    )
    command_timeout: float = Field(
        default=30.0, ge=0.1, le=600.0, description="Timeout for up/down in seconds"
    )
    status_timeout: float = Field(
        default=5.0, ge=0.1, le=60.0, description="Timeout for status queries"
    )
    artifact_dir: Path | None = Field(
        default=None, description="Base directory for temporary config artifacts"
    )
    privilege_command: list[str] = Field(
        default_factory=list,
        description="Prefix for helper invocations, e.g. ['sudo', '-n']",
    )
    tool_search_paths: list[Path] = Field(
        default_factory=list, description="Extra directories searched for wg-quick"
    )

    @field_validator("interface_name")
    @classmethod
    def validate_interface_name(cls, v: str) -> str:
        """Validate interface name format."""
        if not INTERFACE_NAME_PATTERN.match(v):
            raise ValueError(
                "Interface name must be 1-15 characters of letters, digits, "
                "and _=+.-"
            )
        return v

    @field_validator("artifact_dir")
    @classmethod
    def validate_artifact_dir(cls, v: Path | None) -> Path | None:
        """Require an absolute artifact directory."""
        if v is not None and not v.is_absolute():
            raise ValueError("Artifact directory must be an absolute path")
        return v
