"""Command-line entry point: ``python -m photon_config COMMAND``."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import shutil
import sys
from pathlib import Path
from typing import Optional, Sequence

from photon_config.cli.common import add_common_cli_arguments, install_signal_handlers, setup_cli_logging
from photon_config.core.config_manager import ConfigManager, create_config_manager
from photon_config.core.errors import PhotonConfigError
from photon_config.core.settings import StartupSettings, load_startup_settings, load_startup_settings_async


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photon-config",
        description="Inspect, migrate, export and serve the vision configuration root",
    )
    add_common_cli_arguments(parser)

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the loaded configuration as JSON")

    export = sub.add_parser("export", help="Write the whole root to a zip archive")
    export.add_argument("--output", type=Path, default=None, help="Where to copy the archive")

    imp = sub.add_parser("import", help="Replace the whole root with a zip archive")
    imp.add_argument("archive", type=Path, help="Settings zip to import")

    sub.add_parser("clear", help="Reset to an empty configuration and save")
    sub.add_parser("migrate", help="Upgrade a legacy cameras/ directory if one is present")

    serve = sub.add_parser("serve", help="Run the settings HTTP API until interrupted")
    serve.add_argument("--host", type=str, default=None, help="Address to bind")
    serve.add_argument("--port", type=int, default=None, help="Port to bind")

    return parser


def apply_cli_overrides(settings: StartupSettings, args: argparse.Namespace) -> StartupSettings:
    overrides = {}
    if args.root_dir is not None:
        overrides["root_dir"] = args.root_dir.expanduser()
    if args.storage is not None:
        overrides["storage_strategy"] = args.storage
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if getattr(args, "host", None):
        overrides["api_host"] = args.host
    if getattr(args, "port", None):
        overrides["api_port"] = args.port
    return dataclasses.replace(settings, **overrides)


def resolve_settings(args: argparse.Namespace) -> StartupSettings:
    return apply_cli_overrides(load_startup_settings(args.config), args)


async def resolve_settings_async(args: argparse.Namespace) -> StartupSettings:
    return apply_cli_overrides(await load_startup_settings_async(args.config), args)


def _show(manager: ConfigManager, args: argparse.Namespace) -> int:
    print(json.dumps(manager.get_config().to_dict(), indent=2, sort_keys=True))
    return 0


def _export(manager: ConfigManager, args: argparse.Namespace) -> int:
    archive = manager.export_settings_archive()
    if not archive.is_file():
        return 1
    target = archive
    if args.output is not None:
        target = Path(shutil.copyfile(archive, args.output))
    print(target)
    return 0


def _import(manager: ConfigManager, args: argparse.Namespace) -> int:
    return 0 if manager.import_settings_archive(args.archive) else 1


def _clear(manager: ConfigManager, args: argparse.Namespace) -> int:
    return 0 if manager.clear_config() else 1


def _migrate(manager: ConfigManager, args: argparse.Namespace) -> int:
    if not manager.migrator.migrate_if_present(manager.root, manager.provider):
        print("Nothing to migrate")
    return 0


async def _serve(manager: ConfigManager, settings: StartupSettings) -> int:
    from photon_config.api.server import SettingsAPIServer

    server = SettingsAPIServer(
        manager,
        host=settings.api_host,
        port=settings.api_port,
        localhost_only=settings.api_localhost_only,
    )
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event.set, asyncio.get_running_loop())

    await server.start()
    try:
        await stop_event.wait()
    finally:
        await server.stop()
    return 0


COMMANDS = {
    "show": _show,
    "export": _export,
    "import": _import,
    "clear": _clear,
    "migrate": _migrate,
}


def _create_manager(settings: StartupSettings, logger, *, autostart: bool) -> Optional[ConfigManager]:
    try:
        return create_config_manager(settings, autostart=autostart)
    except PhotonConfigError as exc:
        logger.error("%s", exc)
        return None


async def _serve_main(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    try:
        settings = await resolve_settings_async(args)
    except ValueError as exc:
        parser.error(str(exc))

    logger = setup_cli_logging(settings.log_level, args.log_file)
    manager = _create_manager(settings, logger, autostart=True)
    if manager is None:
        return 2

    with manager:
        if args.log_file is None:
            logger = setup_cli_logging(settings.log_level, manager.get_log_path())
        try:
            await asyncio.to_thread(manager.load)
            return await _serve(manager, settings)
        except PhotonConfigError as exc:
            logger.error("%s", exc)
            return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return asyncio.run(_serve_main(parser, args))

    try:
        settings = resolve_settings(args)
    except ValueError as exc:
        parser.error(str(exc))

    logger = setup_cli_logging(settings.log_level, args.log_file)
    manager = _create_manager(settings, logger, autostart=False)
    if manager is None:
        return 2

    with manager:
        if args.command != "migrate":
            manager.load()
        try:
            return COMMANDS[args.command](manager, args)
        except PhotonConfigError as exc:
            logger.error("%s", exc)
            return 1


if __name__ == "__main__":
    sys.exit(main())
