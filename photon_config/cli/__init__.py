"""Command-line helpers for photon_config."""

from .common import LOG_LEVELS, add_common_cli_arguments, install_signal_handlers, setup_cli_logging

__all__ = ["LOG_LEVELS", "add_common_cli_arguments", "install_signal_handlers", "setup_cli_logging"]
