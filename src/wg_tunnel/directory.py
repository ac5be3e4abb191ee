"""Remote configuration directory.

The manager never talks to a directory itself; the composition root fetches a
config and hands it to ``ConnectionManager.apply`` by value.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from .common.exceptions import ConfigNotFoundError
from .common.logging import get_logger
from .tunnel.models import RemoteConfigDescriptor, TunnelConfig

logger = get_logger(__name__)


class RemoteConfigDirectory(Protocol):
    """Source of selectable named configurations."""

    def list_configs(self) -> list[RemoteConfigDescriptor]:
        """List available configurations."""
        ...

    def fetch_config(self, config_id: str) -> TunnelConfig:
        """Fetch one configuration by id."""
        ...


class InMemoryConfigDirectory:
    """Directory backed by a fixed set of configurations."""

    def __init__(
        self, entries: Iterable[tuple[RemoteConfigDescriptor, TunnelConfig]] = ()
    ):
        self._descriptors: dict[str, RemoteConfigDescriptor] = {}
        self._configs: dict[str, TunnelConfig] = {}
        for descriptor, config in entries:
            self.add(descriptor, config)

    def add(self, descriptor: RemoteConfigDescriptor, config: TunnelConfig) -> None:
        """Register a configuration.

        Raises:
            ValueError: If the id is already registered
        """
        if descriptor.id in self._descriptors:
            raise ValueError(f"Configuration id '{descriptor.id}' already exists")
        self._descriptors[descriptor.id] = descriptor
        self._configs[descriptor.id] = config

    def list_configs(self) -> list[RemoteConfigDescriptor]:
        return list(self._descriptors.values())

    def fetch_config(self, config_id: str) -> TunnelConfig:
        """Return the configuration with the given id.

        Raises:
            ConfigNotFoundError: If the id is unknown
        """
        try:
            return self._configs[config_id]
        except KeyError:
            logger.debug("Configuration not found", config_id=config_id)
            raise ConfigNotFoundError(config_id) from None
