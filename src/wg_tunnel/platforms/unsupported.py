"""Fallback for operating systems without a WireGuard integration."""

from pathlib import Path

from ..common.exceptions import PlatformNotSupportedError
from ..tunnel.models import ConnectionStatus


class UnsupportedPlatform:
    """Reports the tool as unavailable and rejects every mutation."""

    def __init__(self, system: str):
        self.system = system

    def is_tool_available(self) -> bool:
        return False

    def tool_path(self) -> str | None:
        return None

    def bring_up(self, config_artifact_path: Path) -> str:
        raise PlatformNotSupportedError(self.system)

    def bring_down(
        self, interface_name: str, config_artifact_path: Path | None = None
    ) -> None:
        raise PlatformNotSupportedError(self.system)

    def query_status(self, interface_name: str | None = None) -> ConnectionStatus:
        return ConnectionStatus.disconnected()

    def list_interfaces(self) -> list[str]:
        return []
