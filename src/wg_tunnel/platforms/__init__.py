"""OS-specific tunnel mechanics behind a single capability interface."""

import platform

from ..common.logging import get_logger
from ..common.process import ProcessExecutor
from ..tunnel.settings import ManagerSettings
from .base import WireGuardPlatform, classify_failure
from .interfaces import PlatformCapability
from .linux import LinuxPlatform
from .macos import MacOSPlatform
from .unsupported import UnsupportedPlatform
from .windows import WindowsPlatform

logger = get_logger(__name__)

PLATFORMS: dict[str, type[WireGuardPlatform]] = {
    "linux": LinuxPlatform,
    "darwin": MacOSPlatform,
    "windows": WindowsPlatform,
}


def create_platform(
    settings: ManagerSettings | None = None,
    executor: ProcessExecutor | None = None,
    system: str | None = None,
) -> PlatformCapability:
    """Select the platform implementation for this host.

    Args:
        settings: Manager settings passed to the implementation
        executor: Command executor passed to the implementation
        system: OS name override (``platform.system()`` if None)

    Returns:
        Platform capability for the detected OS
    """
    system = (system or platform.system()).lower()
    platform_class = PLATFORMS.get(system)
    if platform_class is None:
        logger.warning("No WireGuard integration for this OS", system=system)
        return UnsupportedPlatform(system)

    logger.debug("Selected platform", system=system, platform=platform_class.__name__)
    return platform_class(settings, executor)


__all__ = [
    "PlatformCapability",
    "WireGuardPlatform",
    "LinuxPlatform",
    "MacOSPlatform",
    "WindowsPlatform",
    "UnsupportedPlatform",
    "classify_failure",
    "create_platform",
]
