from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from core.case import Case, CaseError
from core.config import AppConfig, load_app_config
from core.data_source import DataSource, ImageDataSource, LogicalFilesDataSource
from core.enums import PassStatus
from core.file_index import FileIndex, IndexQueryError
from core.logging import case_log, configure_logging, get_logger
from core.tool_discovery import discover_tools
from extractors.callbacks import LoggingCallbacks
from extractors.leapp import LeappExtractor, candidate_table, get_profile

LOGGER = get_logger("app.main")

EXIT_CODES = {
    PassStatus.OK: 0,
    PassStatus.ERROR: 1,
    PassStatus.CANCELLED: 2,
}


def _default_base_dir() -> Path:
    if getattr(sys, "frozen", False):
        # Running in a PyInstaller bundle
        return Path(sys._MEIPASS)
    return Path(__file__).resolve().parents[2]


def _setup(args: argparse.Namespace) -> AppConfig:
    config = load_app_config(Path(args.base_dir).resolve() if args.base_dir else _default_base_dir())
    level_name = "DEBUG" if args.verbose else config.logging.level
    configure_logging(
        config.logs_dir,
        level=getattr(logging, level_name.upper(), logging.INFO),
        max_bytes=config.logging.app_log_max_mb * 1024 * 1024,
        backup_count=config.logging.app_log_backup_count,
    )
    return config


def _open_data_source(args: argparse.Namespace, source_id: int) -> DataSource:
    if args.image:
        return ImageDataSource.open(source_id, Path(args.image), partition_index=args.partition)
    return LogicalFilesDataSource(source_id, [Path(p) for p in args.logical])


def _cmd_run(args: argparse.Namespace) -> int:
    config = _setup(args)
    leapp_config = config.leapp
    if args.tool:
        leapp_config.tool = args.tool
    if args.executable:
        leapp_config.executable = Path(args.executable)
    try:
        profile = get_profile(leapp_config.tool)
    except KeyError as e:
        LOGGER.error("%s", e.args[0])
        sys.stderr.write(f"{e.args[0]}\n")
        return 1

    try:
        case = Case(Path(args.case))
    except CaseError as e:
        sys.stderr.write(f"{e}\n")
        return 1

    callbacks = LoggingCallbacks()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: callbacks.cancel())
    try:
        with case, case_log(case.logs_directory / f"{profile.tool_name}.log"):
            try:
                data_source = _open_data_source(args, case.next_data_source_id())
            except (OSError, RuntimeError, ValueError) as e:
                LOGGER.error("Cannot open data source: %s", e)
                sys.stderr.write(f"Cannot open data source: {e}\n")
                return 1

            try:
                index = FileIndex(case.conn)
                try:
                    index.index_data_source(data_source)
                except (IndexQueryError, OSError) as e:
                    LOGGER.error("Indexing failed: %s", e)
                    sys.stderr.write(f"Indexing failed: {e}\n")
                    return 1
                extractor = LeappExtractor(
                    profile=profile,
                    config=leapp_config,
                    file_index=index,
                    tool_paths=config.tool_paths,
                )
                result = extractor.run_extraction(data_source, case, callbacks)
            finally:
                data_source.close()
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    sys.stdout.write(f"{result.status}: {result.message}\n")
    for report in result.reports:
        sys.stdout.write(f"{report.display_name}\t{report.path}\n")
    return EXIT_CODES[result.status]


def _cmd_tools(args: argparse.Namespace) -> int:
    config = _setup(args)
    for name, info in discover_tools(candidate_table(), config.tool_paths).items():
        if info.available:
            sys.stdout.write(f"{name}\t{info.path}\t{info.version or ''}\n")
        else:
            sys.stdout.write(f"{name}\tnot found\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="leappsifter", description="Run iLEAPP/ALEAPP over forensic data sources.")
    p.add_argument("--base-dir", default=None, help="Directory holding config/config.yml")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Run one LEAPP pass over a data source")
    run.add_argument("--case", required=True, help="Case folder (created if missing)")
    source = run.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", help="E01 first segment or mounted image directory")
    source.add_argument("--logical", nargs="+", help="Local files and folders forming a logical collection")
    run.add_argument("--partition", type=int, default=-1, help="Partition index for E01 images (-1 = auto)")
    run.add_argument("--tool", choices=["ileapp", "aleapp"], default=None)
    run.add_argument("--executable", default=None, help="Path to the LEAPP executable")
    run.set_defaults(func=_cmd_run)

    tools = sub.add_parser("tools", help="Show discovered LEAPP executables")
    tools.set_defaults(func=_cmd_tools)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
