"""Command line entry point: import a history file and print analytics as JSON"""
import argparse
import logging
import sys
from typing import List, Optional

from strata_analytics.config import settings
from strata_analytics.db import db
from strata_analytics.drift import DriftAnalyzer
from strata_analytics.heatmap import CalendarAggregator
from strata_analytics.importer import HistoryImporter
from strata_analytics.logging_config import configure_logging
from strata_analytics.lookback import LookbackFinder
from strata_analytics.responses import dispatch
from strata_analytics.services.event_store import EventStore
from strata_analytics.streaks import SilenceDetector
from strata_analytics.utils.json_encoder import json_dumps

logger = logging.getLogger(__name__)

def _import_file(store: EventStore, user_id: str, path: str):
    with open(path, 'rb') as f:
        body = f.read()
    store.ensure_user(user_id)
    return HistoryImporter(store).import_history_json(user_id, body)

def _operation(args: argparse.Namespace, store: EventStore):
    """Bound call for the chosen subcommand"""
    command = args.command
    if command == 'import':
        return _import_file, (store, args.user, args.file)
    if command == 'status':
        return HistoryImporter(store).import_status, (args.user,)
    if command == 'delete':
        return HistoryImporter(store).delete_all_history, (args.user,)
    if command == 'summary':
        return CalendarAggregator(store).summary, (args.user, args.year)
    if command == 'silences':
        return SilenceDetector(store).silences, (args.user, args.year)
    if command == 'drift':
        return DriftAnalyzer(store).drift_report, (args.user,)
    if command == 'capsule':
        return LookbackFinder(store).time_capsule, (args.user,)
    if command == 'dormant':
        return LookbackFinder(store).dormant_artists, (args.user,)
    raise ValueError(f"Unknown command: {command}")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='strata', description="Listening history analytics")
    parser.add_argument('--database-url', help="SQLAlchemy URL, overrides DATABASE_URL")
    parser.add_argument('--log-level', default=settings.LOG_LEVEL)
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help="Create the tables")

    import_parser = subparsers.add_parser('import', help="Import an Extended Streaming History JSON file")
    import_parser.add_argument('file')
    import_parser.add_argument('--user', required=True)

    for name in ('status', 'delete', 'drift', 'capsule', 'dormant'):
        subparsers.add_parser(name).add_argument('--user', required=True)

    for name in ('summary', 'silences'):
        year_parser = subparsers.add_parser(name)
        year_parser.add_argument('--user', required=True)
        year_parser.add_argument('--year')

    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    db.init(args.database_url)
    try:
        if args.command == 'init-db':
            logger.info("Tables are in place")
            return 0

        with db.session() as session:
            operation, operation_args = _operation(args, EventStore(session))
            body, status = dispatch(operation, *operation_args)
        print(json_dumps(body, indent=2))
        return 0 if status < 400 else 1
    finally:
        db.dispose()

if __name__ == "__main__":
    sys.exit(main())
