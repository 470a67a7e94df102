from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config
from ..errors import TutoringError
from ..logging.init import setup_logging
from ..services.dispatcher import COMMAND, Dispatcher
from ..store.excel_store import ExcelRowStore
from ..tables.database import Database

"""CLI entrypoint.

    python -m tutoring_admin.cli [--config PATH] [--debug] <command>

Commands:
- ask PATH_JSON          run one RPC request and print the JSON envelope
- init                   create every missing sheet with its header row
- rebuild-headers TABLE  rewrite the header row of one table
- sync | attendance | schedule   shortcuts for the batch commands
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_OPERATION_FAILED = 2

SHORTCUTS = {
    "sync": "syncDataFromForms",
    "attendance": "recalculateAttendance",
    "schedule": "generateSchedule",
}


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; .env values win over the inherited environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="tutoring-admin", description="Tutoring program administration backend")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)
    ask = sub.add_parser("ask", help="Run one RPC request given as a JSON array")
    ask.add_argument("path", help='e.g. \'["tutors", "retrieveAll"]\'')
    sub.add_parser("init", help="Create missing sheets with header rows")
    rebuild = sub.add_parser("rebuild-headers", help="Rewrite the header row of a table")
    rebuild.add_argument("table")
    for name, command in SHORTCUTS.items():
        sub.add_parser(name, help=f"Run {command}")
    return p.parse_args(argv)


def _print_envelope(envelope: dict) -> None:
    print(json.dumps(envelope, ensure_ascii=False, default=str))


def _run(args: argparse.Namespace, cfg: AppConfig, db: Database) -> int:
    logger = setup_logging(args.debug)

    if args.command == "init":
        created = db.initialize()
        db.flush()
        logger.info(f"workbook={cfg.workbook} created_tables={created}")
        return EXIT_SUCCESS

    if args.command == "rebuild-headers":
        db.table(args.table).rebuild_headers()
        db.flush()
        return EXIT_SUCCESS

    if args.command == "ask":
        try:
            path = json.loads(args.path)
        except json.JSONDecodeError as e:
            logger.error(f"request path is not valid JSON: {e}")
            return EXIT_FATAL
        if not isinstance(path, list):
            logger.error("request path must be a JSON array")
            return EXIT_FATAL
    else:
        path = [COMMAND, SHORTCUTS[args.command]]

    dispatcher = Dispatcher(db, cfg)
    envelope = dispatcher.handle(path)
    dispatcher.error_log.flush()
    _print_envelope(envelope)
    return EXIT_OPERATION_FAILED if envelope["error"] else EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        db = Database(ExcelRowStore(cfg.workbook))
        return _run(args, cfg, db)
    except TutoringError as e:
        logger.error(f"{e.code}: {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
