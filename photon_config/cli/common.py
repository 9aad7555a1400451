from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
from pathlib import Path
from typing import Any, Callable, Optional

from photon_config.core.logging_config import configure_logging
from photon_config.core.logging_utils import get_module_logger
from photon_config.storage.provider import StorageStrategy


LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def storage_strategy(value: str) -> StorageStrategy:
    try:
        return StorageStrategy.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def add_common_cli_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root-dir",
        type=Path,
        default=None,
        help="Configuration root directory (overrides PHOTON_CONFIG_ROOT and the config file)",
    )

    parser.add_argument(
        "--storage",
        type=storage_strategy,
        default=None,
        help="Storage backend: sql or legacy",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional startup settings file (key = value lines)",
    )

    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=None,
        help="Logging verbosity",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write logs",
    )


def setup_cli_logging(level: str, log_file: Optional[Path], console: bool = True) -> logging.Logger:
    configure_logging(level, force=True, console=console, log_file=log_file)
    runtime_logger = get_module_logger("CLI")
    if log_file:
        runtime_logger.info("Logs will be written to %s", log_file)
    return runtime_logger


def install_signal_handlers(shutdown: Callable[[], Any], loop: asyncio.AbstractEventLoop) -> None:
    """Register SIGINT/SIGTERM handlers that call ``shutdown`` once."""

    triggered = False

    def signal_handler():
        nonlocal triggered
        if not triggered:
            triggered = True
            shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, signal_handler)
