"""macOS WireGuard platform.

wg-quick on macOS runs the userspace implementation on a ``utunN`` device
and records the mapping from the friendly name in
``/var/run/wireguard/<name>.name``. ``wg`` only knows the ``utunN`` name, so
status queries translate through that file.
"""

from pathlib import Path

from ..common.logging import get_logger
from ..common.process import ProcessExecutor
from ..tunnel.settings import ManagerSettings
from .base import WireGuardPlatform

logger = get_logger(__name__)

NAME_FILE_DIR = Path("/var/run/wireguard")


class MacOSPlatform(WireGuardPlatform):
    """wg-quick on macOS (Homebrew wireguard-tools)."""

    system = "darwin"
    search_paths = ("/usr/local/bin", "/opt/homebrew/bin", "/usr/bin")

    def __init__(
        self,
        settings: ManagerSettings | None = None,
        executor: ProcessExecutor | None = None,
        name_file_dir: Path = NAME_FILE_DIR,
    ):
        super().__init__(settings, executor)
        self.name_file_dir = name_file_dir

    def _name_mapping(self) -> dict[str, str]:
        """Map friendly interface names to utun devices."""
        mapping: dict[str, str] = {}
        if not self.name_file_dir.is_dir():
            return mapping
        for name_file in self.name_file_dir.glob("*.name"):
            try:
                mapping[name_file.stem] = name_file.read_text().strip()
            except OSError as e:
                logger.debug("Unreadable name file", path=str(name_file), error=str(e))
        return mapping

    def device_name(self, interface_name: str) -> str:
        return self._name_mapping().get(interface_name, interface_name)

    def _interface_is_up(self, interface_name: str) -> bool:
        # wg-quick removes the name file on teardown
        if not interface_name.startswith("utun") and (
            interface_name not in self._name_mapping()
        ):
            logger.debug("No utun mapping, interface is down", interface=interface_name)
            return False
        return super()._interface_is_up(interface_name)

    def list_interfaces(self) -> list[str]:
        devices = super().list_interfaces()
        reverse = {device: name for name, device in self._name_mapping().items()}
        return [reverse.get(device, device) for device in devices]
