"""
main.py
-------
Maintenance entry point for the compliance documents core.

Responsibilities:
    - Ensure the database schema (`init-db`).
    - Report connection pool health (`pool-status`).
    - Re-synchronize a competency's document folder (`sync-folder`).
    - Move a folder's documents into category subfolders (`migrate-folder`).
"""

import argparse
import json
import sys

from db.connection import acquire_pool, close_pool, pool_status
from db.executor import get_executor
from db.init_db import create_tables
from services.document_sync import DocumentSyncEngine
from utils.logger import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compliance-docs",
        description="Maintenance commands for the compliance documents core.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing tables, columns and constraints")
    sub.add_parser("pool-status", help="Connect and print the pool state")

    sync = sub.add_parser("sync-folder", help="Re-derive a competency's document folder")
    sync.add_argument("competency_id", type=int)

    migrate = sub.add_parser("migrate-folder", help="Move a folder's documents into category subfolders")
    migrate.add_argument("folder_id", type=int)
    return parser


def run(args: argparse.Namespace) -> int:
    if args.command == "init-db":
        create_tables()
        print("✅ Database schema initialized.")
        return 0

    if args.command == "pool-status":
        acquire_pool()
        print(json.dumps(pool_status(), indent=2))
        return 0

    engine = DocumentSyncEngine(get_executor())

    if args.command == "sync-folder":
        folder_id = engine.sync_folder_by_competency_id(args.competency_id)
        if folder_id is None:
            print(f"⚠️ Competency {args.competency_id} not found.")
            return 1
        print(f"📁 Competency {args.competency_id} -> folder #{folder_id}")
        return 0

    if args.command == "migrate-folder":
        engine.ensure_infrastructure()
        report = engine.migrate_documents_to_subfolders(args.folder_id)
        print(f"🔄 {report.migrated} migrated, {report.errors} errors, {report.total} total")
        return 0 if report.errors == 0 else 1

    return 2


def main(argv=None) -> int:
    """Parse arguments, run the command and always close the pool."""
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except Exception as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        return 1
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
