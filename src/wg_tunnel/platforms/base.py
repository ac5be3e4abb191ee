"""Shared implementation for platforms driven by WireGuard command line tools.

Subclasses only supply tool names, search locations, the argv used for
up/down and the interface naming convention.
"""

import shutil
from collections.abc import Sequence
from pathlib import Path

from ..common.exceptions import (
    ExecutionFailedError,
    InterfaceNotFoundError,
    PermissionDeniedError,
    TimedOutError,
    ToolNotInstalledError,
    TunnelError,
)
from ..common.logging import get_logger
from ..common.process import ProcessExecutor, ProcessResult
from ..common.utils import redact_key_material
from ..tunnel.models import ConnectionStatus
from ..tunnel.settings import ManagerSettings

logger = get_logger(__name__)

TOOL_MISSING_MARKERS = ("command not found", "not recognized as an internal")
PERMISSION_MARKERS = (
    "must be run as root",
    "operation not permitted",
    "permission denied",
    "access is denied",
    "a password is required",
    "a terminal is required",
    "not in the sudoers",
)
NOT_FOUND_MARKERS = (
    "is not a wireguard interface",
    "no such device",
    "does not exist",
)
# wg show on macOS and Windows reports a missing socket or named pipe
STATUS_NOT_FOUND_MARKERS = (
    "no such file or directory",
    "cannot find the file specified",
)
ALREADY_EXISTS_MARKER = "already exists"


def failure_message(result: ProcessResult) -> str:
    """Diagnostic text of a failed command with key material removed."""
    return redact_key_material((result.stderr or result.stdout).strip())


def classify_failure(result: ProcessResult, interface_name: str) -> TunnelError:
    """Map a failed helper invocation to a taxonomy error.

    Args:
        result: Result of the failed command
        interface_name: Interface the command was about

    Returns:
        The error to raise, with key material removed from the diagnostic
    """
    message = failure_message(result)
    lowered = message.lower()

    if any(marker in lowered for marker in TOOL_MISSING_MARKERS):
        return ToolNotInstalledError()
    if any(marker in lowered for marker in PERMISSION_MARKERS):
        return PermissionDeniedError(
            f"Managing {interface_name} requires elevated privileges: {message}"
        )
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return InterfaceNotFoundError(interface_name)
    return ExecutionFailedError(result.exit_code, message or "no diagnostic output")


class WireGuardPlatform:
    """Base for platforms that shell out to WireGuard tools."""

    system = "generic"
    helper_name = "wg-quick"
    status_tool_name = "wg"
    search_paths: tuple[str, ...] = ()

    def __init__(
        self,
        settings: ManagerSettings | None = None,
        executor: ProcessExecutor | None = None,
    ):
        """Initialize platform.

        Args:
            settings: Manager settings (defaults if None)
            executor: Command executor (created from settings if None)
        """
        self.settings = settings or ManagerSettings()
        self.executor = executor or ProcessExecutor(self.settings.command_timeout)

    def _find_tool(self, name: str) -> str | None:
        found = shutil.which(name)
        if found:
            return found

        candidates = [*self.settings.tool_search_paths, *map(Path, self.search_paths)]
        for directory in candidates:
            path = Path(directory) / name
            if path.is_file():
                return str(path)
        return None

    def tool_path(self) -> str | None:
        """Find the helper in PATH or in well-known locations."""
        return self._find_tool(self.helper_name)

    def status_tool_path(self) -> str | None:
        """Find ``wg``, preferring the helper's own directory."""
        helper = self.tool_path()
        if helper:
            sibling = Path(helper).with_name(self.status_tool_name)
            if sibling.is_file():
                return str(sibling)
        return self._find_tool(self.status_tool_name)

    def is_tool_available(self) -> bool:
        """Check whether the helper is resolvable on this host."""
        return self.tool_path() is not None

    def _require(self, path: str | None, name: str) -> str:
        if path is None:
            raise ToolNotInstalledError(tool=name)
        return path

    def _run(self, tool: str, args: Sequence[str], timeout: float) -> ProcessResult:
        prefix = self.settings.privilege_command
        if prefix:
            return self.executor.run(prefix[0], [*prefix[1:], tool, *args], timeout)
        return self.executor.run(tool, args, timeout)

    # Naming and argv hooks

    def interface_name_for(self, config_artifact_path: Path) -> str:
        """Interface name the helper derives from an artifact path."""
        return config_artifact_path.stem

    def device_name(self, interface_name: str) -> str:
        """Kernel device behind an interface name."""
        return interface_name

    def up_args(self, config_artifact_path: Path) -> list[str]:
        return ["up", str(config_artifact_path)]

    def down_args(
        self, interface_name: str, config_artifact_path: Path | None
    ) -> list[str]:
        if config_artifact_path is not None and config_artifact_path.exists():
            return ["down", str(config_artifact_path)]
        return ["down", interface_name]

    # Capability surface

    def bring_up(self, config_artifact_path: Path) -> str:
        """Create an interface from the artifact.

        On failure a best-effort teardown is attempted so no half-created
        interface remains, unless the helper reported that the interface
        already existed before this call.

        Args:
            config_artifact_path: Path of the config artifact

        Returns:
            Name of the created interface

        Raises:
            ToolNotInstalledError: If the helper is missing
            PermissionDeniedError: If privileges are insufficient
            TimedOutError: If the helper did not finish in time
            ExecutionFailedError: If the helper reported failure
        """
        tool = self._require(self.tool_path(), self.helper_name)
        interface_name = self.interface_name_for(config_artifact_path)
        logger.info(
            "Bringing interface up", interface=interface_name, system=self.system
        )

        try:
            result = self._run(
                tool, self.up_args(config_artifact_path), self.settings.command_timeout
            )
        except TimedOutError:
            self._cleanup_failed_up(tool, interface_name, config_artifact_path)
            raise

        if not result.ok:
            error = classify_failure(result, interface_name)
            if isinstance(error, InterfaceNotFoundError):
                # only teardown may report a missing interface
                error = ExecutionFailedError(
                    result.exit_code, failure_message(result) or "no diagnostic output"
                )
            already_exists = ALREADY_EXISTS_MARKER in result.stderr.lower()
            if not already_exists and not isinstance(error, ToolNotInstalledError):
                self._cleanup_failed_up(tool, interface_name, config_artifact_path)
            logger.error(
                "Failed to bring interface up",
                interface=interface_name,
                exit_code=result.exit_code,
                kind=error.kind.value,
            )
            raise error

        logger.info("Interface is up", interface=interface_name)
        return interface_name

    def _cleanup_failed_up(
        self, tool: str, interface_name: str, config_artifact_path: Path
    ) -> None:
        try:
            result = self._run(
                tool,
                self.down_args(interface_name, config_artifact_path),
                self.settings.status_timeout,
            )
        except TunnelError as e:
            logger.warning(
                "Cleanup after failed bring-up did not run",
                interface=interface_name,
                error=str(e),
            )
            return
        if result.ok:
            logger.info("Removed partially created interface", interface=interface_name)

    def bring_down(
        self, interface_name: str, config_artifact_path: Path | None = None
    ) -> None:
        """Tear down an interface.

        Args:
            interface_name: Interface to remove
            config_artifact_path: Artifact used for bring-up, if still present

        Raises:
            InterfaceNotFoundError: If the interface is already gone
            ToolNotInstalledError: If the helper is missing
            PermissionDeniedError: If privileges are insufficient
            TimedOutError: If the helper did not finish in time
            ExecutionFailedError: If the helper reported failure
        """
        tool = self._require(self.tool_path(), self.helper_name)
        logger.info("Bringing interface down", interface=interface_name)

        result = self._run(
            tool,
            self.down_args(interface_name, config_artifact_path),
            self.settings.command_timeout,
        )
        if not result.ok:
            raise classify_failure(result, interface_name)

        logger.info("Interface is down", interface=interface_name)

    def _interface_is_up(self, interface_name: str) -> bool:
        wg = self._require(self.status_tool_path(), self.status_tool_name)
        device = self.device_name(interface_name)
        result = self._run(wg, ["show", device], self.settings.status_timeout)
        if result.ok:
            return True

        error = classify_failure(result, interface_name)
        if isinstance(error, InterfaceNotFoundError):
            return False
        if isinstance(error, ExecutionFailedError) and any(
            marker in error.message.lower() for marker in STATUS_NOT_FOUND_MARKERS
        ):
            return False
        raise error

    def list_interfaces(self) -> list[str]:
        """List WireGuard interfaces reported by ``wg show interfaces``.

        Raises:
            ToolNotInstalledError: If ``wg`` is missing
            PermissionDeniedError: If privileges are insufficient
        """
        wg = self._require(self.status_tool_path(), self.status_tool_name)
        result = self._run(wg, ["show", "interfaces"], self.settings.status_timeout)
        if not result.ok:
            error = classify_failure(result, "*")
            if isinstance(error, InterfaceNotFoundError):
                return []
            raise error
        return result.stdout.split()

    def query_status(self, interface_name: str | None = None) -> ConnectionStatus:
        """Report whether the given interface, or any interface, is up.

        The config name in the snapshot is the interface name; the manager
        overlays the real config name for tunnels it tracks. A missing
        interface yields a disconnected snapshot rather than an error.

        Raises:
            ToolNotInstalledError: If ``wg`` is missing
            PermissionDeniedError: If privileges are insufficient
            TimedOutError: If the query did not finish in time
            ExecutionFailedError: If the query failed otherwise
        """
        if interface_name is None:
            interfaces = self.list_interfaces()
            if not interfaces:
                return ConnectionStatus.disconnected()
            interface_name = interfaces[0]
            return ConnectionStatus.active(interface_name, interface_name)

        if self._interface_is_up(interface_name):
            return ConnectionStatus.active(interface_name, interface_name)
        return ConnectionStatus.disconnected()
