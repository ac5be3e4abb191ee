"""Protocol for OS-specific tunnel mechanics."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..tunnel.models import ConnectionStatus


@runtime_checkable
class PlatformCapability(Protocol):
    """Operations every supported OS must provide."""

    def is_tool_available(self) -> bool:
        """Check whether the helper can be resolved, without side effects."""
        ...

    def tool_path(self) -> str | None:
        """Resolved path of the helper, if any."""
        ...

    def bring_up(self, config_artifact_path: Path) -> str:
        """Create the interface described by the artifact; return its name."""
        ...

    def bring_down(
        self, interface_name: str, config_artifact_path: Path | None = None
    ) -> None:
        """Tear down the named interface."""
        ...

    def query_status(self, interface_name: str | None = None) -> ConnectionStatus:
        """Snapshot of the named interface, or of any managed interface."""
        ...

    def list_interfaces(self) -> list[str]:
        """Names of active managed interfaces."""
        ...
