"""savesync command-line interface.

Provides:
  savesync list
  savesync add NAME LOCATION
  savesync remove NAME
  savesync path NAME
  savesync size NAME
  savesync archive NAME OUTPUT
  savesync restore NAME ARCHIVE [--dest DIR]

Registry changes are written back to <data_dir>/saves.json after each
successful command.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from savesync import __version__
from savesync.core.config import ConfigResolver
from savesync.core.diagnostics import install_jsonl_sink
from savesync.core.errors import IoFailure, SaveSyncError
from savesync.core.logging import apply_logging_policy, get_logger
from savesync.saves.service import SaveSyncService

log = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="savesync",
        description="Register save locations and archive/restore deterministic snapshots.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", dest="level", action="store_const", const="quiet")
    verbosity.add_argument("-v", "--verbose", dest="level", action="store_const", const="verbose")
    verbosity.add_argument("-d", "--debug", dest="level", action="store_const", const="debug")

    p.add_argument("--data-dir", default=None, help="Directory holding saves.json")
    p.add_argument("--config", default=None, help="User config file (YAML)")
    p.add_argument("--diagnostics", dest="diagnostics", action="store_true", default=None)

    sub = p.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List registered saves")
    p_list.add_argument("--json", action="store_true", help="Print the registry document")

    p_add = sub.add_parser("add", help="Register a save location")
    p_add.add_argument("name")
    p_add.add_argument("location")

    p_remove = sub.add_parser("remove", help="Unregister a save (files are kept)")
    p_remove.add_argument("name")

    p_path = sub.add_parser("path", help="Print a save's normalized location")
    p_path.add_argument("name")

    p_size = sub.add_parser("size", help="Print a save's size in bytes")
    p_size.add_argument("name")

    p_archive = sub.add_parser("archive", help="Write a save's archive to a file")
    p_archive.add_argument("name")
    p_archive.add_argument("output")

    p_restore = sub.add_parser("restore", help="Restore an archive for a save")
    p_restore.add_argument("name")
    p_restore.add_argument("archive")
    p_restore.add_argument(
        "--dest", default=None, help="Restore here instead of the save's own location"
    )

    return p


def _cli_overrides(ns: argparse.Namespace) -> dict[str, Any]:
    cli_args: dict[str, Any] = {}
    if ns.level:
        cli_args["logging"] = {"level": ns.level}
    if ns.data_dir:
        cli_args["data_dir"] = ns.data_dir
    if ns.diagnostics is not None:
        cli_args["diagnostics"] = {"enabled": ns.diagnostics}
    return cli_args


def _read_archive(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise IoFailure(path, e) from e


def _run(ns: argparse.Namespace, service: SaveSyncService) -> None:
    cmd = ns.command

    if cmd == "list":
        saves = service.list_saves()
        if ns.json:
            print(json.dumps({"saves": [e.to_dict() for e in saves]}, indent=2))
            return
        for entry in saves:
            print(f"{entry.name}\t{entry.path}")
        return

    if cmd == "add":
        entry = service.add_save(ns.name, ns.location)
        service.save_registry()
        log.info(f"Added save '{entry.name}' -> {entry.path}")
        return

    if cmd == "remove":
        service.remove_save(ns.name)
        service.save_registry()
        log.info(f"Removed save '{ns.name}'")
        return

    if cmd == "path":
        print(service.get_save_path(ns.name))
        return

    if cmd == "size":
        print(service.save_size(ns.name))
        return

    if cmd == "archive":
        result = service.export_save(ns.name, ns.output)
        log.info(
            f"Archived '{ns.name}': {result.files_packed} file(s), "
            f"{result.archive_bytes} bytes -> {result.dst_archive_path}"
        )
        return

    if cmd == "restore":
        data = _read_archive(ns.archive)
        if ns.dest:
            service.get_save_path(ns.name)
            result = service.restore(data, ns.dest)
        else:
            result = service.import_save(ns.name, data)
        log.info(f"Restored '{ns.name}': {result.files_unpacked} file(s) -> {result.dst_dir}")
        return

    raise SaveSyncError(f"Unknown command: {cmd}")


def main(argv: list[str] | None = None) -> int:
    """Run the CLI. Returns the process exit code."""
    ns = _build_parser().parse_args(argv)

    try:
        resolver = ConfigResolver(
            cli_args=_cli_overrides(ns),
            user_config_path=Path(ns.config) if ns.config else None,
        )
        apply_logging_policy(resolver.resolve_logging_policy())
        install_jsonl_sink(resolver=resolver)

        service = SaveSyncService(resolver)
        service.load_registry()
        _run(ns, service)
    except SaveSyncError as e:
        log.error(str(e))
        return 1
    return 0
