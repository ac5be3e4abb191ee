"""Linux WireGuard platform: wg-quick with kernel interfaces."""

from .base import WireGuardPlatform


class LinuxPlatform(WireGuardPlatform):
    """wg-quick on Linux. The interface is named after the config file stem."""

    system = "linux"
    search_paths = ("/usr/bin", "/usr/local/bin", "/usr/sbin")
