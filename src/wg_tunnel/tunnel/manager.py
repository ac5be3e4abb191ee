"""Connection manager for the single-tunnel lifecycle."""

from __future__ import annotations

import asyncio
import threading
from contextlib import ExitStack
from types import TracebackType
from typing import TYPE_CHECKING, Literal

from ..common.exceptions import (
    AlreadyConnectedError,
    ExecutionFailedError,
    InterfaceNotFoundError,
    ToolNotInstalledError,
    TunnelError,
)
from ..common.logging import get_logger
from ..common.utils import redact_key_material
from . import codec
from .artifact import ConfigArtifact
from .models import ActiveConnection, ConnectionState, ConnectionStatus, TunnelConfig
from .settings import ManagerSettings

if TYPE_CHECKING:
    from ..platforms.interfaces import PlatformCapability

logger = get_logger(__name__)


def _secrets_of(config: TunnelConfig | None) -> tuple[str, ...]:
    if config is None:
        return ()
    return (
        config.private_key.get_secret_value(),
        config.peer_public_key.get_secret_value(),
    )


def _to_boundary_error(
    error: TunnelError | OSError, config: TunnelConfig | None
) -> TunnelError:
    """Map a lower-layer failure into the error taxonomy, scrubbing key material."""
    if isinstance(error, ExecutionFailedError):
        return ExecutionFailedError(
            error.exit_code, redact_key_material(error.message, _secrets_of(config))
        )
    if isinstance(error, TunnelError):
        return error
    return ExecutionFailedError(
        None, redact_key_material(str(error), _secrets_of(config))
    )


class ConnectionManager:
    """Owns the connection state machine for at most one tunnel.

    ``apply`` and ``disconnect`` are serialized against each other. ``get_status``
    never waits for them; it reads the last committed state.
    """

    def __init__(
        self,
        platform: PlatformCapability,
        settings: ManagerSettings | None = None,
    ):
        """Initialize the manager.

        Args:
            platform: OS capability used to create and remove interfaces
            settings: Manager settings (defaults if None)
        """
        self.platform = platform
        self.settings = settings or ManagerSettings()

        self._operation_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self._active: ActiveConnection | None = None
        self._artifact: ConfigArtifact | None = None
        self._config: TunnelConfig | None = None

        logger.info(
            "Initialized ConnectionManager",
            platform=type(platform).__name__,
            interface=self.settings.interface_name,
        )

    @property
    def state(self) -> ConnectionState:
        """Current state machine state."""
        with self._state_lock:
            return self._state

    @property
    def active_config_name(self) -> str | None:
        """Name of the connected config, if any."""
        with self._state_lock:
            return self._active.config_name if self._active else None

    def _set_state(self, state: ConnectionState) -> None:
        with self._state_lock:
            logger.debug("State transition", old=self._state.value, new=state.value)
            self._state = state

    def _commit(
        self,
        state: ConnectionState,
        active: ActiveConnection | None,
        artifact: ConfigArtifact | None,
        config: TunnelConfig | None,
    ) -> None:
        with self._state_lock:
            logger.debug("State transition", old=self._state.value, new=state.value)
            self._state = state
            self._active = active
            self._artifact = artifact
            self._config = config

    def is_platform_ready(self) -> bool:
        """Check whether the WireGuard helper is available."""
        return self.platform.is_tool_available()

    def apply(self, config: TunnelConfig | str) -> ConnectionStatus:
        """Bring up a tunnel for the given configuration.

        Args:
            config: Validated config, or wg-quick text to parse

        Returns:
            Connected status snapshot

        Raises:
            ConfigValidationError: If configuration text is invalid
            AlreadyConnectedError: If a tunnel is already active
            ToolNotInstalledError: If the helper is not available
            PermissionDeniedError: If privileges are insufficient
            TimedOutError: If the helper did not finish in time
            ExecutionFailedError: If the helper reported failure
        """
        if isinstance(config, str):
            config = codec.parse(config)

        with self._operation_lock:
            active = self._active
            if active is not None:
                logger.warning(
                    "Rejecting apply while connected",
                    active_config=active.config_name,
                    requested_config=config.name,
                )
                raise AlreadyConnectedError(active.config_name, active.interface_name)

            if not self.platform.is_tool_available():
                logger.error("WireGuard helper not available", config=config.name)
                raise ToolNotInstalledError()

            self._set_state(ConnectionState.CONNECTING)
            logger.info("Applying tunnel config", config=config.name)

            try:
                with ExitStack() as stack:
                    artifact = stack.enter_context(
                        ConfigArtifact(
                            config,
                            self.settings.interface_name,
                            self.settings.artifact_dir,
                        )
                    )
                    interface_name = self.platform.bring_up(artifact.path)
                    # keep the artifact; wg-quick needs it again for teardown
                    stack.pop_all()
            except (TunnelError, OSError) as e:
                self._set_state(ConnectionState.DISCONNECTED)
                error = _to_boundary_error(e, config)
                logger.error(
                    "Failed to apply tunnel config",
                    config=config.name,
                    kind=error.kind.value,
                )
                if error is e:
                    raise
                raise error from e
            except BaseException:
                self._set_state(ConnectionState.DISCONNECTED)
                raise

            active = ActiveConnection(
                interface_name=interface_name,
                config_name=config.name,
                config_artifact_path=artifact.path,
            )
            self._commit(ConnectionState.CONNECTED, active, artifact, config)

        logger.info("Tunnel connected", config=config.name, interface=interface_name)
        return active.to_status()

    def disconnect(self) -> ConnectionStatus:
        """Tear down the active tunnel, if any.

        Disconnecting while already disconnected succeeds without doing
        anything. If the interface is already gone the tunnel is treated as
        disconnected.

        Returns:
            Disconnected status snapshot

        Raises:
            ToolNotInstalledError: If the helper is not available
            PermissionDeniedError: If privileges are insufficient
            TimedOutError: If the helper did not finish in time
            ExecutionFailedError: If the helper reported failure
        """
        with self._operation_lock:
            active = self._active
            if active is None:
                logger.debug("Disconnect requested with no active tunnel")
                return ConnectionStatus.disconnected()

            self._set_state(ConnectionState.DISCONNECTING)
            logger.info("Disconnecting tunnel", interface=active.interface_name)

            try:
                self.platform.bring_down(
                    active.interface_name, active.config_artifact_path
                )
            except InterfaceNotFoundError:
                logger.info(
                    "Interface already down, treating as disconnected",
                    interface=active.interface_name,
                )
            except (TunnelError, OSError) as e:
                # interface state unknown; keep tracking it so the caller can retry
                self._set_state(ConnectionState.CONNECTED)
                error = _to_boundary_error(e, self._config)
                logger.error(
                    "Failed to disconnect tunnel",
                    interface=active.interface_name,
                    kind=error.kind.value,
                )
                if error is e:
                    raise
                raise error from e
            except BaseException:
                self._set_state(ConnectionState.CONNECTED)
                raise

            artifact = self._artifact
            self._commit(ConnectionState.DISCONNECTED, None, None, None)
            if artifact is not None:
                artifact.release()

        logger.info("Tunnel disconnected", interface=active.interface_name)
        return ConnectionStatus.disconnected()

    def get_status(self) -> ConnectionStatus:
        """Return a status snapshot without changing any state.

        For a tracked tunnel the platform is asked about its interface; if
        that query fails the tracked state is reported instead.
        """
        with self._state_lock:
            active = self._active

        if active is None:
            return ConnectionStatus.disconnected()

        try:
            status = self.platform.query_status(active.interface_name)
        except (TunnelError, OSError) as e:
            logger.warning(
                "Status query failed, reporting tracked state",
                interface=active.interface_name,
                error=redact_key_material(str(e)),
            )
            return active.to_status()

        if status.connected:
            return active.to_status()

        logger.warning(
            "Tracked interface is no longer up", interface=active.interface_name
        )
        return status

    async def apply_async(self, config: TunnelConfig | str) -> ConnectionStatus:
        """Run ``apply`` in a worker thread."""
        return await asyncio.to_thread(self.apply, config)

    async def disconnect_async(self) -> ConnectionStatus:
        """Run ``disconnect`` in a worker thread."""
        return await asyncio.to_thread(self.disconnect)

    async def get_status_async(self) -> ConnectionStatus:
        """Run ``get_status`` in a worker thread."""
        return await asyncio.to_thread(self.get_status)

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        """Disconnect any active tunnel.

        Returns:
            False to propagate any exception
        """
        try:
            self.disconnect()
        except TunnelError as e:
            logger.error("Error during context exit", error=str(e))
        return False
