"""Command line surface over the in-process catalog operations."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from course_catalog.application.catalog_import import RunResult
from course_catalog.application.errors import CatalogConfigurationError, CatalogError
from course_catalog.domain.catalog import FileDescriptor, ScanResult
from course_catalog.infrastructure.cache import find_duplicates
from course_catalog.infrastructure.config import CatalogSettings
from course_catalog.infrastructure.db import create_sqlite_engine, initialize_schema
from course_catalog.infrastructure.factory import CatalogServices, create_catalog_services

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_RUN_ERRORS = 3


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="course_catalog",
        description="Catalog a directory tree of course videos into a SQLite database.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create catalog tables in the configured database.")
    subparsers.add_parser("incremental", help="Import files whose content changed.")
    subparsers.add_parser("rebuild", help="Soft-delete all courses and re-import every file.")
    subparsers.add_parser("info", help="Scan and report scanner, cache, media tool and table stats.")

    scan = subparsers.add_parser("scan", help="Scan the catalog root without importing.")
    scan.add_argument("--topic", default=None, help="Keep files under this topic folder.")
    scan.add_argument("--instructor", default=None, help="Keep files under this instructor folder.")
    scan.add_argument("--course", default=None, help="Keep files under this course folder.")
    scan.add_argument(
        "--since",
        type=int,
        default=None,
        help="Keep files modified after this Unix timestamp.",
    )
    scan.add_argument(
        "--min-size",
        type=int,
        default=None,
        help="Keep files larger than this many bytes.",
    )

    subparsers.add_parser("duplicates", help="Report files sharing identical content.")
    subparsers.add_parser("clean-hashes", help="Drop cache entries for files no longer on disk.")
    return parser


def run(
    argv: Sequence[str] | None = None,
    *,
    services_factory: Callable[[CatalogSettings], CatalogServices] = create_catalog_services,
    stdout: TextIO | None = None,
) -> int:
    """Parse arguments, dispatch one command and return the process exit code."""
    args = build_arg_parser().parse_args(argv)
    out = stdout or sys.stdout

    try:
        settings = CatalogSettings.from_environ()
    except CatalogConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.command == "init-db":
        return _init_db(settings, out)

    try:
        services = services_factory(settings)
        handler = _HANDLERS[args.command]
        return handler(services, args, out)
    except CatalogConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except SQLAlchemyError:
        LOGGER.exception("event=cli_database_failed command=%s", args.command)
        print(
            "database unavailable; run `init-db` or `alembic upgrade head` first",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    except CatalogError as exc:
        LOGGER.exception("event=cli_command_failed command=%s", args.command)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


def _init_db(settings: CatalogSettings, out: TextIO) -> int:
    engine = create_sqlite_engine(settings.database_path)
    try:
        initialize_schema(engine)
        tables = sorted(inspect(engine).get_table_names())
    except SQLAlchemyError:
        LOGGER.exception("event=cli_init_db_failed path=%s", settings.database_path)
        return EXIT_FAILURE
    finally:
        engine.dispose()

    _emit(out, {"database_path": settings.database_path, "tables": tables})
    return EXIT_OK


def _incremental(services: CatalogServices, args: argparse.Namespace, out: TextIO) -> int:
    return _emit_run(out, services.importer.import_incremental())


def _rebuild(services: CatalogServices, args: argparse.Namespace, out: TextIO) -> int:
    return _emit_run(out, services.importer.import_rebuild())


def _info(services: CatalogServices, args: argparse.Namespace, out: TextIO) -> int:
    services.scanner.scan()
    _emit(out, dataclasses.asdict(services.importer.system_info()))
    return EXIT_OK


def _scan(services: CatalogServices, args: argparse.Namespace, out: TextIO) -> int:
    result = services.scanner.scan()
    files = _filter_files(services, args)
    _emit(
        out,
        {
            "root": services.scanner.root,
            "fatal": result.fatal,
            "total_files": result.total_files,
            "total_errors": result.total_errors,
            "errors": result.errors,
            "stats": dataclasses.asdict(services.scanner.scan_stats()),
            "files": [_describe_file(descriptor) for descriptor in files],
        },
    )
    return _scan_exit_code(result)


def _duplicates(services: CatalogServices, args: argparse.Namespace, out: TextIO) -> int:
    result = services.scanner.scan()
    groups = find_duplicates(result.files)
    _emit(
        out,
        {
            "groups": [
                {
                    "hash": group.hash,
                    "count": group.count,
                    "files": [descriptor.relative_path for descriptor in group.files],
                }
                for group in groups
            ],
            "total_errors": result.total_errors,
        },
    )
    return _scan_exit_code(result)


def _clean_hashes(services: CatalogServices, args: argparse.Namespace, out: TextIO) -> int:
    removed = services.hash_cache.clean_stale_hashes(services.scanner.root)
    _emit(
        out,
        {
            "removed": removed,
            "cache": dataclasses.asdict(services.hash_cache.cache_stats()),
        },
    )
    return EXIT_OK


_HANDLERS: dict[str, Callable[[CatalogServices, argparse.Namespace, TextIO], int]] = {
    "incremental": _incremental,
    "rebuild": _rebuild,
    "info": _info,
    "scan": _scan,
    "duplicates": _duplicates,
    "clean-hashes": _clean_hashes,
}


def _filter_files(services: CatalogServices, args: argparse.Namespace) -> list[FileDescriptor]:
    scanner = services.scanner
    selected = list(scanner.last_result.files)
    filters: list[list[FileDescriptor]] = []
    if args.topic is not None:
        filters.append(scanner.files_by_topic(args.topic))
    if args.instructor is not None:
        filters.append(scanner.files_by_instructor(args.instructor))
    if args.course is not None:
        filters.append(scanner.files_by_course(args.course))
    if args.since is not None:
        filters.append(scanner.modified_since(args.since))
    if args.min_size is not None:
        filters.append(scanner.larger_than(args.min_size))

    for matches in filters:
        keep = {descriptor.relative_path for descriptor in matches}
        selected = [descriptor for descriptor in selected if descriptor.relative_path in keep]
    return selected


def _describe_file(descriptor: FileDescriptor) -> dict[str, Any]:
    return {
        "relative_path": descriptor.relative_path,
        "size": descriptor.size,
        "mtime": descriptor.mtime,
        "hash": descriptor.hash,
        "hash_mode": descriptor.digest.mode,
        "parsed_path": dataclasses.asdict(descriptor.parsed_path),
    }


def _scan_exit_code(result: ScanResult) -> int:
    return EXIT_OK if result.total_errors == 0 else EXIT_RUN_ERRORS


def _emit_run(out: TextIO, result: RunResult) -> int:
    payload = dataclasses.asdict(result)
    payload["success"] = result.success
    _emit(out, payload)
    return EXIT_OK if result.success else EXIT_RUN_ERRORS


def _emit(out: TextIO, payload: dict[str, Any]) -> None:
    out.write(json.dumps(payload, indent=2, ensure_ascii=False, default=_json_default))
    out.write("\n")


def _json_default(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
