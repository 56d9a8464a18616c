"""Tests for the command-line entry point."""

import asyncio
from pathlib import Path

import pytest

from diskmon.app import master
from diskmon.core.events import WakeupFired
from diskmon.core.monitor_config import MonitorConfig
from diskmon.core.paths import CONFIG_PATH, DEFAULT_LOG_FILE
from diskmon.core.shutdown_coordinator import get_shutdown_coordinator, reset_shutdown_coordinator

from tests.unit.conftest import FakeBackend


@pytest.fixture
def fresh_coordinator():
    reset_shutdown_coordinator()
    yield
    reset_shutdown_coordinator()


class TestParseArgs:

    def test_defaults(self):
        args = master.parse_args([])

        assert args.config == CONFIG_PATH
        assert args.log_level is None
        assert args.console_output is None
        assert args.api_enabled is None

    def test_overrides(self):
        args = master.parse_args([
            "--config", "/etc/diskmon.txt",
            "--log-level", "debug",
            "--no-console",
            "--api-port", "9000",
            "--no-api",
        ])

        assert args.config == Path("/etc/diskmon.txt")
        assert args.log_level == "debug"
        assert args.console_output is False
        assert args.api_port == 9000
        assert args.api_enabled is False

    def test_console_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            master.parse_args(["--console", "--no-console"])


class TestBuildConfig:

    def test_file_values_without_overrides(self):
        config = master.build_config(master.parse_args([]), {"idle_check_interval": "900"})

        assert config.idle_check_interval == 900
        assert config.log_file == DEFAULT_LOG_FILE
        assert config.api_enabled is True

    def test_cli_wins_over_file(self, tmp_path):
        args = master.parse_args([
            "--log-level", "warning",
            "--log-file", str(tmp_path / "d.log"),
            "--api-host", "0.0.0.0",
            "--no-api",
        ])

        config = master.build_config(args, {"log_level": "debug", "api_host": "127.0.0.1"})

        assert config.log_level == "warning"
        assert config.log_file == tmp_path / "d.log"
        assert config.api_host == "0.0.0.0"
        assert config.api_enabled is False

    def test_invalid_port_override_rejected(self):
        with pytest.raises(ValueError):
            master.build_config(master.parse_args(["--api-port", "0"]), {})


@pytest.mark.asyncio
async def test_main_rejects_invalid_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.txt"
    config_path.write_text("active_check_interval = 0\n", encoding="utf-8")
    monkeypatch.setattr(master, "ensure_directories", lambda: None)

    with pytest.raises(SystemExit) as excinfo:
        await master.main(["--config", str(config_path)])

    assert "active_check_interval" in str(excinfo.value)


@pytest.mark.asyncio
async def test_no_api_monitor_checks_on_wakeups():
    config = master.build_config(master.parse_args(["--no-api"]), {})
    backend = FakeBackend()
    monitor = master.create_monitor(config, backend)

    await monitor.start()
    try:
        for _ in range(3):
            monitor.post(WakeupFired(generation=monitor.scheduler.generation))
            await monitor.drain()
    finally:
        await monitor.stop()

    assert monitor.state.ready_to_check is True
    assert backend.calls == 3


@pytest.mark.asyncio
async def test_api_monitor_waits_for_startup_signal():
    config = master.build_config(master.parse_args([]), {})
    backend = FakeBackend()
    monitor = master.create_monitor(config, backend)

    await monitor.start()
    try:
        monitor.post(WakeupFired(generation=monitor.scheduler.generation))
        await monitor.drain()
    finally:
        await monitor.stop()

    assert monitor.state.ready_to_check is False
    assert backend.calls == 0


@pytest.mark.asyncio
async def test_run_stops_on_shutdown(fresh_coordinator):
    config = MonitorConfig(api_enabled=False)

    task = asyncio.create_task(master.run(config))
    await asyncio.sleep(0.05)
    assert not task.done()

    await get_shutdown_coordinator().initiate_shutdown("test")
    await asyncio.wait_for(task, timeout=2.0)

    assert get_shutdown_coordinator().is_complete


def test_package_has_single_version_source():
    import diskmon
    import diskmon.core

    assert isinstance(diskmon.__version__, str)
    assert not hasattr(diskmon.core, "__version__")
    assert diskmon.main is master.main
