"""Windows WireGuard platform: tunnel services managed by wireguard.exe."""

from pathlib import Path

from .base import WireGuardPlatform


class WindowsPlatform(WireGuardPlatform):
    """Tunnels installed as services via ``wireguard.exe``.

    ``/installtunnelservice`` names the tunnel after the config file stem, and
    ``/uninstalltunnelservice`` takes that name back.
    """

    system = "windows"
    helper_name = "wireguard.exe"
    status_tool_name = "wg.exe"
    search_paths = (r"C:\Program Files\WireGuard",)

    def up_args(self, config_artifact_path: Path) -> list[str]:
        return ["/installtunnelservice", str(config_artifact_path)]

    def down_args(
        self, interface_name: str, config_artifact_path: Path | None
    ) -> list[str]:
        return ["/uninstalltunnelservice", interface_name]
