"""Shared pytest fixtures for wg-tunnel tests."""

import threading
from pathlib import Path
from unittest.mock import Mock

import pytest

from wg_tunnel.common.process import ProcessExecutor, ProcessResult
from wg_tunnel.tunnel.models import ConnectionStatus, TunnelConfig
from wg_tunnel.tunnel.settings import ManagerSettings

# Well-formed but throwaway keys; not used anywhere real
PRIVATE_KEY = "yAnz5TF+lXXJte14tji3zlMNq+hd2rYUIgJBgB3fBmk="
PUBLIC_KEY = "xTIBA5rboUvnH4htodjb6e697QjLERt1NAB4mZqp8Dg="

CONFIG_TEXT = f"""[Interface]
PrivateKey = {PRIVATE_KEY}
Address = 10.0.0.2/24
DNS = 1.1.1.1, 8.8.8.8

[Peer]
PublicKey = {PUBLIC_KEY}
Endpoint = vpn.example.com:51820
AllowedIPs = 0.0.0.0/0
PersistentKeepalive = 25
"""


class FakePlatform:
    """In-memory PlatformCapability that records calls.

    Set ``up_error`` / ``down_error`` / ``status_error`` to make the
    corresponding operation raise.
    Set ``up_gate`` to hold ``bring_up`` until the event is set;
    ``up_entered`` is set once the call is waiting.
    """

    def __init__(self, interface_name: str = "if0", tool_available: bool = True):
        self.interface_name = interface_name
        self.tool_available = tool_available
        self.up_error: Exception | None = None
        self.down_error: Exception | None = None
        self.status_error: Exception | None = None
        self.up_calls: list[Path] = []
        self.down_calls: list[tuple[str, Path | None]] = []
        self.artifact_contents: list[str] = []
        self.interfaces: set[str] = set()
        self.up_gate: threading.Event | None = None
        self.up_entered = threading.Event()

    def is_tool_available(self) -> bool:
        return self.tool_available

    def tool_path(self) -> str | None:
        return "/usr/bin/wg-quick" if self.tool_available else None

    def bring_up(self, config_artifact_path: Path) -> str:
        self.up_calls.append(config_artifact_path)
        self.artifact_contents.append(config_artifact_path.read_text())
        if self.up_gate is not None:
            self.up_entered.set()
            self.up_gate.wait(timeout=5)
        if self.up_error is not None:
            raise self.up_error
        self.interfaces.add(self.interface_name)
        return self.interface_name

    def bring_down(
        self, interface_name: str, config_artifact_path: Path | None = None
    ) -> None:
        self.down_calls.append((interface_name, config_artifact_path))
        if self.down_error is not None:
            raise self.down_error
        self.interfaces.discard(interface_name)

    def query_status(self, interface_name: str | None = None) -> ConnectionStatus:
        if self.status_error is not None:
            raise self.status_error
        name = interface_name or next(iter(self.interfaces), None)
        if name is None or name not in self.interfaces:
            return ConnectionStatus.disconnected()
        return ConnectionStatus.active(name, name)

    def list_interfaces(self) -> list[str]:
        return sorted(self.interfaces)


@pytest.fixture
def tunnel_config():
    """Valid tunnel configuration."""
    return TunnelConfig(
        name="home",
        private_key=PRIVATE_KEY,
        peer_public_key=PUBLIC_KEY,
        endpoint="vpn.example.com:51820",
        local_address="10.0.0.2/24",
        allowed_ips="0.0.0.0/0",
        dns="1.1.1.1",
        keepalive_interval=25,
    )


@pytest.fixture
def other_config():
    """Second valid configuration."""
    return TunnelConfig(
        name="office",
        private_key=PRIVATE_KEY,
        peer_public_key=PUBLIC_KEY,
        endpoint="office.example.com:51820",
        local_address="10.1.0.2/24",
    )


@pytest.fixture
def config_text():
    """Complete wg-quick configuration text."""
    return CONFIG_TEXT


@pytest.fixture
def settings(tmp_path):
    """Settings writing artifacts below tmp_path."""
    return ManagerSettings(artifact_dir=tmp_path, command_timeout=5.0)


@pytest.fixture
def fake_platform():
    """Platform stub that succeeds and names the interface if0."""
    return FakePlatform()


@pytest.fixture
def mock_executor():
    """ProcessExecutor mock returning success by default."""
    executor = Mock(spec=ProcessExecutor)
    executor.run.return_value = ProcessResult(exit_code=0)
    return executor


@pytest.fixture
def tool_dir(tmp_path):
    """Directory holding fake wg-quick and wg executables."""
    directory = tmp_path / "bin"
    directory.mkdir()
    for name in ("wg-quick", "wg"):
        tool = directory / name
        tool.write_text("#!/bin/sh\nexit 0\n")
        tool.chmod(0o755)
    return directory
