import argparse
import asyncio
import signal
from pathlib import Path
from typing import Dict, Optional

from diskmon.core import DiskMonitor, DiskUsageBackend, MonitorConfig, PsutilDiskBackend, get_shutdown_coordinator
from diskmon.core.events import StartupComplete
from diskmon.core.api import APIController, APIServer
from diskmon.core.config_manager import get_config_manager
from diskmon.core.logging_config import configure_from_config
from diskmon.core.logging_utils import get_module_logger
from diskmon.core.paths import CONFIG_PATH, DEFAULT_LOG_FILE, ensure_directories


logger = get_module_logger("Master")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="diskmon - adaptive disk space monitor"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help="Configuration file (default: config.txt next to the package)"
    )

    parser.add_argument(
        "--log-level",
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        default=None,
        help="Logging level (overrides log_level in the config)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Rotating log file (overrides log_file in the config)"
    )

    console_group = parser.add_mutually_exclusive_group()
    console_group.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=None,
        help="Also log to console"
    )
    console_group.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only"
    )

    parser.add_argument("--api-host", type=str, default=None, help="HTTP transport bind address")
    parser.add_argument("--api-port", type=int, default=None, help="HTTP transport port")
    parser.add_argument(
        "--no-api",
        dest="api_enabled",
        action="store_false",
        default=None,
        help="Run without the HTTP transport (timer-driven checks only)"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, raw: Dict[str, str]) -> MonitorConfig:
    """Build the monitor config from file values and command-line overrides."""
    config = MonitorConfig.from_config(raw, get_config_manager())

    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_file is not None:
        config.log_file = args.log_file
    elif config.log_file is None:
        config.log_file = DEFAULT_LOG_FILE
    if args.console_output is not None:
        config.console_output = args.console_output
    if args.api_host is not None:
        config.api_host = args.api_host
    if args.api_port is not None:
        config.api_port = args.api_port
    if args.api_enabled is not None:
        config.api_enabled = args.api_enabled

    config.validate()
    return config


def create_monitor(config: MonitorConfig, backend: Optional[DiskUsageBackend] = None) -> DiskMonitor:
    """Build the monitor; without a transport nobody can announce startup, so it starts ready."""
    if backend is None:
        backend = PsutilDiskBackend(config.mounts)
    monitor = DiskMonitor(config, backend)
    if not config.api_enabled:
        monitor.post(StartupComplete())
    return monitor


async def run(config: MonitorConfig) -> None:
    """Run the monitor until SIGINT/SIGTERM."""
    monitor = create_monitor(config)
    shutdown_coordinator = get_shutdown_coordinator()
    shutdown_task: Optional[asyncio.Task] = None

    api_server: Optional[APIServer] = None
    if config.api_enabled:
        api_server = APIServer(
            APIController(monitor),
            host=config.api_host,
            port=config.api_port,
            localhost_only=config.api_localhost_only,
        )

    async def stop_api() -> None:
        if api_server:
            await api_server.stop()
            await monitor.drain()

    async def stop_monitor() -> None:
        await monitor.stop()

    shutdown_coordinator.register_cleanup(stop_api)
    shutdown_coordinator.register_cleanup(stop_monitor)

    loop = asyncio.get_running_loop()

    def signal_handler():
        nonlocal shutdown_task
        if shutdown_task is None or shutdown_task.done():
            shutdown_task = asyncio.create_task(
                shutdown_coordinator.initiate_shutdown("signal")
            )

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    logger.info("Watching %s", ", ".join(f"{m.path} ({m.max_usage_percent}%)" for m in config.mounts) or "nothing")

    try:
        await monitor.start()
        if api_server:
            await api_server.start()
        await shutdown_coordinator.wait_for_shutdown()
    except Exception as e:
        logger.error("Unexpected error: %s", e, exc_info=True)
        await shutdown_coordinator.initiate_shutdown("exception")
    finally:
        if not shutdown_coordinator.is_complete:
            await shutdown_coordinator.initiate_shutdown("finally block")
            await shutdown_coordinator.wait_for_shutdown()


async def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    ensure_directories()
    raw = await get_config_manager().read_config_async(args.config)
    try:
        config = build_config(args, raw)
    except ValueError as e:
        raise SystemExit(f"diskmon: invalid configuration: {e}")
    configure_from_config(config, force=True)
    await run(config)


def cli() -> None:
    """Console-script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
