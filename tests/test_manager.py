"""Tests for the ConnectionManager state machine."""

import asyncio
import threading
from unittest.mock import Mock, patch

import pytest
from conftest import CONFIG_TEXT, PRIVATE_KEY, FakePlatform

from wg_tunnel.common.exceptions import (
    AlreadyConnectedError,
    ErrorKind,
    ExecutionFailedError,
    InterfaceNotFoundError,
    MissingFieldError,
    PermissionDeniedError,
    TimedOutError,
    ToolNotInstalledError,
)
from wg_tunnel.common.process import ProcessExecutor
from wg_tunnel.platforms import LinuxPlatform
from wg_tunnel.tunnel.manager import ConnectionManager
from wg_tunnel.tunnel.models import ConnectionState, ConnectionStatus


@pytest.fixture
def manager(fake_platform, settings):
    return ConnectionManager(fake_platform, settings)


def _artifacts_left(tmp_path):
    return sorted(tmp_path.rglob("*.conf"))


class TestApply:
    """Test apply()"""

    def test_apply_connects(self, manager, fake_platform, tunnel_config):
        status = manager.apply(tunnel_config)

        assert status == ConnectionStatus.active("home", "if0")
        assert manager.state == ConnectionState.CONNECTED
        assert manager.active_config_name == "home"
        assert len(fake_platform.up_calls) == 1

    def test_status_after_apply(self, manager, tunnel_config):
        """bring_up returning if0 is reflected by get_status"""
        manager.apply(tunnel_config)

        status = manager.get_status()

        assert status.connected is True
        assert status.interface_name == "if0"
        assert status.current_config_name == "home"

    def test_apply_text_config(self, manager, fake_platform):
        status = manager.apply(CONFIG_TEXT)

        assert status.connected
        assert status.current_config_name == "tunnel"

    def test_artifact_holds_config_and_is_named_after_interface(
        self, manager, fake_platform, tunnel_config, settings
    ):
        manager.apply(tunnel_config)

        artifact_path = fake_platform.up_calls[0]
        assert artifact_path.name == f"{settings.interface_name}.conf"
        assert PRIVATE_KEY in fake_platform.artifact_contents[0]

    def test_artifact_kept_while_connected(self, manager, fake_platform, tunnel_config):
        """The helper needs the config again for teardown"""
        manager.apply(tunnel_config)

        assert fake_platform.up_calls[0].exists()

    def test_validation_error_never_reaches_platform(
        self, manager, fake_platform, tmp_path
    ):
        text = CONFIG_TEXT.replace("Endpoint = vpn.example.com:51820\n", "")

        with pytest.raises(MissingFieldError, match="Endpoint"):
            manager.apply(text)

        assert fake_platform.up_calls == []
        assert manager.state == ConnectionState.DISCONNECTED
        assert _artifacts_left(tmp_path) == []

    def test_no_double_connect(self, manager, fake_platform, tunnel_config, other_config):
        """A second apply is rejected and the first tunnel is untouched"""
        manager.apply(tunnel_config)

        with pytest.raises(AlreadyConnectedError) as exc_info:
            manager.apply(other_config)

        assert exc_info.value.kind == ErrorKind.ALREADY_CONNECTED
        assert len(fake_platform.up_calls) == 1
        assert manager.get_status() == ConnectionStatus.active("home", "if0")
        assert manager.state == ConnectionState.CONNECTED

    def test_tool_not_installed(self, settings, tunnel_config, tmp_path):
        """Missing tooling fails without running any process"""
        executor = Mock(spec=ProcessExecutor)
        platform = LinuxPlatform(settings, executor)
        manager = ConnectionManager(platform, settings)

        with (
            patch("wg_tunnel.platforms.base.shutil.which", return_value=None),
            patch.object(LinuxPlatform, "search_paths", ()),
        ):
            with pytest.raises(ToolNotInstalledError) as exc_info:
                manager.apply(tunnel_config)

        assert exc_info.value.kind == ErrorKind.TOOL_NOT_INSTALLED
        assert manager.state == ConnectionState.DISCONNECTED
        executor.run.assert_not_called()
        assert _artifacts_left(tmp_path) == []

    def test_tool_not_installed_stub(self, settings, tunnel_config):
        platform = FakePlatform(tool_available=False)
        manager = ConnectionManager(platform, settings)

        with pytest.raises(ToolNotInstalledError):
            manager.apply(tunnel_config)

        assert platform.up_calls == []
        assert manager.get_status() == ConnectionStatus.disconnected()

    @pytest.mark.parametrize(
        "error",
        [
            PermissionDeniedError("need root"),
            ExecutionFailedError(1, "RTNETLINK answers: File exists"),
            TimedOutError("wg-quick", 5.0),
            ToolNotInstalledError(),
        ],
    )
    def test_failed_apply_cleans_up(
        self, manager, fake_platform, tunnel_config, tmp_path, error
    ):
        """Any platform failure returns to disconnected and deletes the artifact"""
        fake_platform.up_error = error

        with pytest.raises(type(error)) as exc_info:
            manager.apply(tunnel_config)

        assert exc_info.value.kind == error.kind
        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.get_status() == ConnectionStatus.disconnected()
        assert not fake_platform.up_calls[0].exists()
        assert _artifacts_left(tmp_path) == []

    def test_os_error_is_mapped(self, manager, fake_platform, tunnel_config):
        """Raw OS errors do not cross the manager boundary"""
        fake_platform.up_error = OSError(5, "Input/output error")

        with pytest.raises(ExecutionFailedError) as exc_info:
            manager.apply(tunnel_config)

        assert exc_info.value.exit_code is None
        assert manager.state == ConnectionState.DISCONNECTED

    def test_known_keys_redacted_from_helper_message(
        self, manager, fake_platform, other_config
    ):
        fake_platform.up_error = ExecutionFailedError(1, f"bad key {PRIVATE_KEY}")

        with pytest.raises(ExecutionFailedError) as exc_info:
            manager.apply(other_config)

        assert PRIVATE_KEY not in str(exc_info.value)

    def test_apply_after_failure_succeeds(self, manager, fake_platform, tunnel_config):
        fake_platform.up_error = TimedOutError("wg-quick", 5.0)
        with pytest.raises(TimedOutError):
            manager.apply(tunnel_config)

        fake_platform.up_error = None
        assert manager.apply(tunnel_config).connected

    def test_keyboard_interrupt_resets_state(
        self, manager, fake_platform, tunnel_config, tmp_path
    ):
        fake_platform.up_error = KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            manager.apply(tunnel_config)

        assert manager.state == ConnectionState.DISCONNECTED
        assert _artifacts_left(tmp_path) == []


class TestDisconnect:
    """Test disconnect()"""

    def test_disconnect(self, manager, fake_platform, tunnel_config, tmp_path):
        manager.apply(tunnel_config)
        artifact_path = fake_platform.up_calls[0]

        status = manager.disconnect()

        assert status == ConnectionStatus.disconnected()
        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.get_status() == ConnectionStatus.disconnected()
        assert fake_platform.down_calls == [("if0", artifact_path)]
        assert not artifact_path.exists()
        assert _artifacts_left(tmp_path) == []

    def test_disconnect_idempotent(self, manager, fake_platform):
        """Disconnect from disconnected succeeds twice without platform calls"""
        assert manager.disconnect() == ConnectionStatus.disconnected()
        assert manager.disconnect() == ConnectionStatus.disconnected()

        assert fake_platform.down_calls == []
        assert manager.active_config_name is None

    def test_disconnect_interface_already_gone(
        self, manager, fake_platform, tunnel_config
    ):
        """InterfaceNotFound is treated as success"""
        manager.apply(tunnel_config)
        fake_platform.down_error = InterfaceNotFoundError("if0")

        status = manager.disconnect()

        assert status == ConnectionStatus.disconnected()
        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.get_status() == ConnectionStatus.disconnected()

    @pytest.mark.parametrize(
        "error",
        [
            PermissionDeniedError("need root"),
            ExecutionFailedError(1, "failed"),
            TimedOutError("wg-quick", 5.0),
        ],
    )
    def test_failed_disconnect_stays_connected(
        self, manager, fake_platform, tunnel_config, error
    ):
        """Other failures keep the tunnel tracked so the caller can retry"""
        manager.apply(tunnel_config)
        artifact_path = fake_platform.up_calls[0]
        fake_platform.down_error = error

        with pytest.raises(type(error)):
            manager.disconnect()

        assert manager.state == ConnectionState.CONNECTED
        assert manager.get_status() == ConnectionStatus.active("home", "if0")
        assert artifact_path.exists()

        fake_platform.down_error = None
        assert manager.disconnect() == ConnectionStatus.disconnected()
        assert not artifact_path.exists()

    def test_reconnect_after_disconnect(
        self, manager, fake_platform, tunnel_config, other_config
    ):
        manager.apply(tunnel_config)
        manager.disconnect()

        status = manager.apply(other_config)

        assert status == ConnectionStatus.active("office", "if0")


class TestGetStatus:
    """Test get_status()"""

    def test_initial_status(self, manager):
        assert manager.get_status() == ConnectionStatus.disconnected()
        assert manager.state == ConnectionState.DISCONNECTED

    def test_status_does_not_query_without_tunnel(self, manager, fake_platform):
        fake_platform.status_error = AssertionError("should not be called")

        assert manager.get_status() == ConnectionStatus.disconnected()

    def test_status_falls_back_on_query_failure(
        self, manager, fake_platform, tunnel_config
    ):
        manager.apply(tunnel_config)
        fake_platform.status_error = PermissionDeniedError("wg show needs root")

        assert manager.get_status() == ConnectionStatus.active("home", "if0")

    def test_status_reports_externally_removed_interface(
        self, manager, fake_platform, tunnel_config
    ):
        """A tunnel torn down behind our back shows as disconnected"""
        manager.apply(tunnel_config)
        fake_platform.interfaces.clear()

        assert manager.get_status() == ConnectionStatus.disconnected()
        # tracking is unchanged; get_status never mutates
        assert manager.state == ConnectionState.CONNECTED

    def test_is_platform_ready(self, settings):
        assert ConnectionManager(FakePlatform(), settings).is_platform_ready()
        assert not ConnectionManager(
            FakePlatform(tool_available=False), settings
        ).is_platform_ready()


class TestConcurrency:
    """Test locking between mutations and status reads"""

    @pytest.fixture
    def gated(self, manager, fake_platform, tunnel_config):
        """Start apply in a thread and hold it inside bring_up."""
        fake_platform.up_gate = threading.Event()
        results = {}
        thread = threading.Thread(
            target=lambda: results.setdefault("apply", manager.apply(tunnel_config))
        )
        thread.start()
        assert fake_platform.up_entered.wait(timeout=5)
        yield thread, results
        fake_platform.up_gate.set()
        thread.join(timeout=5)

    def test_status_during_apply(self, manager, fake_platform, gated):
        """get_status reads the pre-transition snapshot without waiting"""
        thread, results = gated

        assert manager.get_status() == ConnectionStatus.disconnected()
        assert manager.state == ConnectionState.CONNECTING
        assert manager.active_config_name is None

        fake_platform.up_gate.set()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert results["apply"] == ConnectionStatus.active("home", "if0")
        assert manager.state == ConnectionState.CONNECTED
        assert manager.get_status() == ConnectionStatus.active("home", "if0")

    def test_disconnect_waits_for_apply(self, manager, fake_platform, gated):
        """A concurrent disconnect runs after apply, never in between"""
        thread, results = gated
        disconnecter = threading.Thread(
            target=lambda: results.setdefault("disconnect", manager.disconnect())
        )
        disconnecter.start()
        disconnecter.join(timeout=0.2)

        assert disconnecter.is_alive()
        assert fake_platform.down_calls == []
        assert manager.state == ConnectionState.CONNECTING

        fake_platform.up_gate.set()
        thread.join(timeout=5)
        disconnecter.join(timeout=5)

        assert not disconnecter.is_alive()
        assert results["apply"].connected
        # disconnect saw the committed tunnel rather than a no-op
        assert fake_platform.down_calls == [("if0", fake_platform.up_calls[0])]
        assert results["disconnect"] == ConnectionStatus.disconnected()
        assert manager.state == ConnectionState.DISCONNECTED

    def test_concurrent_applies_connect_once(
        self, manager, fake_platform, tunnel_config, gated
    ):
        thread, results = gated
        errors = []

        def second_apply():
            try:
                manager.apply(tunnel_config)
            except AlreadyConnectedError as e:
                errors.append(e)

        other = threading.Thread(target=second_apply)
        other.start()
        other.join(timeout=0.2)
        assert other.is_alive()

        fake_platform.up_gate.set()
        thread.join(timeout=5)
        other.join(timeout=5)

        assert len(errors) == 1
        assert len(fake_platform.up_calls) == 1


class TestAsyncAndContext:
    """Test async wrappers and context manager"""

    def test_async_wrappers(self, manager, tunnel_config):
        async def scenario():
            up = await manager.apply_async(tunnel_config)
            current = await manager.get_status_async()
            down = await manager.disconnect_async()
            return up, current, down

        up, current, down = asyncio.run(scenario())

        assert up.connected and current.connected
        assert down == ConnectionStatus.disconnected()

    def test_context_manager_disconnects(self, fake_platform, settings, tunnel_config):
        with ConnectionManager(fake_platform, settings) as manager:
            manager.apply(tunnel_config)

        assert manager.state == ConnectionState.DISCONNECTED
        assert len(fake_platform.down_calls) == 1

    def test_context_manager_does_not_suppress(self, fake_platform, settings):
        with pytest.raises(RuntimeError):
            with ConnectionManager(fake_platform, settings):
                raise RuntimeError("boom")

    def test_context_exit_logs_disconnect_failure(
        self, fake_platform, settings, tunnel_config
    ):
        fake_platform.down_error = PermissionDeniedError("need root")

        with ConnectionManager(fake_platform, settings) as manager:
            manager.apply(tunnel_config)

        assert manager.state == ConnectionState.CONNECTED
