"""Check a directory of headers across a matrix of compilation types."""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Iterable, Sequence

from .config import Config
from .database import HeaderDatabase
from .errors import HeaderAuthoringError, HeaderDbError
from .file_walker import iter_header_files
from .formatting import dump_database, format_compilation_type, format_conflict, format_location
from .models import Arch, CompilationType
from .parser import HeaderParser
from .storage import save_database

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_AUTHORING_ERROR = 1
EXIT_CONFLICTS = 2


def default_compilation_types(
    api_levels: Iterable[int] | None = None,
    archs: Iterable[Arch | str] | None = None,
) -> list[CompilationType]:
    levels = sorted(set(api_levels or Config.API_LEVELS))
    arch_values = [Arch(arch) for arch in (archs or Config.ARCHS)]

    result: set[CompilationType] = set()
    for arch in arch_values:
        for level in levels:
            if arch.is_64bit and level < Config.MIN_64BIT_API_LEVEL:
                continue
            result.add(CompilationType(arch=arch, api_level=level))
    return sorted(result)


def _parse_and_ingest(
    database: HeaderDatabase,
    header: str,
    compilation_type: CompilationType,
) -> None:
    # tree-sitter parsers aren't shared between threads.
    unit = HeaderParser().parse_file(header, compilation_type)
    database.ingest(compilation_type, unit)


def run_matrix(
    headers: Sequence[str | Path],
    compilation_types: Sequence[CompilationType],
    jobs: int | None = None,
    database: HeaderDatabase | None = None,
) -> HeaderDatabase:
    database = database if database is not None else HeaderDatabase()
    jobs = jobs or Config.JOBS

    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = [
            executor.submit(_parse_and_ingest, database, str(header), compilation_type)
            for compilation_type in compilation_types
            for header in headers
        ]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in futures:
            if future in done and future.exception() is not None:
                raise future.exception()

    logger.info(
        "Ingested %d header(s) for %d compilation type(s): %d symbol(s)",
        len(headers),
        len(compilation_types),
        len(database),
    )
    return database


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check header availability annotations across architectures and API levels"
    )
    parser.add_argument("headers", help="Header file or directory of headers")
    parser.add_argument(
        "--api-level",
        dest="api_levels",
        type=int,
        action="append",
        help="API level to compile for (repeatable)",
    )
    parser.add_argument(
        "--arch",
        dest="archs",
        choices=[arch.value for arch in Arch],
        action="append",
        help="Architecture to compile for (repeatable)",
    )
    parser.add_argument("--jobs", type=int, default=None, help="Parse worker threads")
    parser.add_argument("--dump", action="store_true", help="Print the database")
    parser.add_argument("--graph", default=None, help="Write a JSON snapshot to this path")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL, help="Logging level")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    root = Path(args.headers)
    headers = [str(root)] if root.is_file() else iter_header_files(root)
    compilation_types = default_compilation_types(args.api_levels, args.archs)
    if not compilation_types:
        print("error: no compilation types to check for the given --arch/--api-level", file=sys.stderr)
        return EXIT_AUTHORING_ERROR

    try:
        database = run_matrix(headers, compilation_types, jobs=args.jobs)
    except HeaderAuthoringError as exc:
        where = f"{format_location(exc.location)}: " if exc.location is not None else ""
        print(f"{where}error: {exc}", file=sys.stderr)
        dump = getattr(exc, "dump", None)
        if dump:
            print(dump, file=sys.stderr)
        return EXIT_AUTHORING_ERROR
    except HeaderDbError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_AUTHORING_ERROR

    if args.dump:
        print(dump_database(database))
    if args.graph:
        save_database(
            database,
            args.graph,
            [format_compilation_type(compilation_type) for compilation_type in compilation_types],
        )

    conflicts = database.find_conflicts()
    for conflict in conflicts.values():
        print(f"error: {format_conflict(conflict)}", file=sys.stderr)
    if conflicts:
        return EXIT_CONFLICTS
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
