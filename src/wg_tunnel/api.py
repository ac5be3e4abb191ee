"""High-level API for the tunnel manager.

This module provides the composition root and a context manager for
short-lived tunnels.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from .common.logging import get_logger
from .common.process import ProcessExecutor
from .directory import RemoteConfigDirectory
from .platforms import PlatformCapability, create_platform
from .tunnel.manager import ConnectionManager
from .tunnel.models import ConnectionStatus, TunnelConfig
from .tunnel.settings import ManagerSettings

logger = get_logger(__name__)


def create_manager(
    settings: ManagerSettings | None = None,
    *,
    platform: PlatformCapability | None = None,
    executor: ProcessExecutor | None = None,
) -> ConnectionManager:
    """Create the application's ConnectionManager.

    Call this once and pass the manager to whatever issues control calls.

    Args:
        settings: Manager settings (defaults if None)
        platform: Platform capability (detected from the host OS if None)
        executor: Command executor for the detected platform

    Returns:
        ConnectionManager bound to the selected platform

    Example:
        >>> manager = create_manager(ManagerSettings(interface_name="wg-home"))
        >>> manager.is_platform_ready()
        True
    """
    settings = settings or ManagerSettings()
    if platform is None:
        platform = create_platform(settings, executor)
    return ConnectionManager(platform, settings)


@contextmanager
def managed_connection(
    manager: ConnectionManager, config: TunnelConfig | str
) -> Iterator[ConnectionStatus]:
    """Keep a tunnel up for the duration of a ``with`` block.

    Args:
        manager: Manager that owns the tunnel
        config: Config object or wg-quick text

    Yields:
        Connected status snapshot

    Example:
        >>> with managed_connection(manager, config) as status:
        ...     print(status.interface_name)
        wg0
    """
    status = manager.apply(config)
    try:
        yield status
    finally:
        manager.disconnect()
        logger.debug("Managed connection closed", interface=status.interface_name)


def connect_from_directory(
    manager: ConnectionManager, directory: RemoteConfigDirectory, config_id: str
) -> ConnectionStatus:
    """Fetch a config from a directory and apply it.

    Raises:
        ConfigNotFoundError: If the directory does not know the id
    """
    config = directory.fetch_config(config_id)
    logger.info("Applying config from directory", config_id=config_id)
    return manager.apply(config)
