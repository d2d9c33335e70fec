#!/usr/bin/env python3
"""
Stamp Catalog Extraction Service - Main Entry Point.

This is the command-line interface of the stamp catalog service. It
registers stamp images, queues extraction jobs, runs the background
worker and gives access to the review queue.

Usage:
    Command Line:
        python main.py init-db
        python main.py ingest /uploads/eagle.jpg --name "Bald Eagle" --theme ANIMALS
        python main.py enqueue 42
        python main.py worker
        python main.py jobs --status FAILED
        python main.py review
        python main.py edit 42 '{"scottNumber": "C10", "dominantColors": "BLUE,GOLD"}'

    Python:
        from main import run_worker
        processed = run_worker(max_jobs=10, exit_when_idle=True)

Version: 1.0.0
"""

import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager, get_config
from stamp_catalog.utils.exceptions import StampCatalogError
from stamp_catalog.utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logger_from_config


def parse_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Stamp Catalog Extraction Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Create the database:
        python main.py init-db

    Register images that are already under the media root:
        python main.py ingest /uploads/a.jpg /uploads/b.jpg --name "Eagles" --theme ANIMALS

    Drain the queue once and exit:
        python main.py worker --once
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables")

    add_stamp = subparsers.add_parser(
        "add-stamp",
        help="Create a stamp for an image and queue it for the worker"
    )
    add_stamp.add_argument("image_path", help="Stored image path, e.g. /uploads/eagle.jpg")
    add_stamp.add_argument("--name", default=None, help="Display name")

    ingest = subparsers.add_parser(
        "ingest",
        help="Register images with a quick vision pass (falls back to the queue)"
    )
    ingest.add_argument("image_paths", nargs="+", help="Stored image paths")
    ingest.add_argument("--name", default=None, help="Name (numbered when several images)")
    ingest.add_argument("--scott-number", dest="identifier", default=None, help="Catalog number")
    ingest.add_argument("--face-value", default=None, help="Face value, e.g. 25c or forever")
    ingest.add_argument(
        "--theme",
        dest="themes",
        action="append",
        default=[],
        help="Theme tag (repeatable)"
    )
    ingest.add_argument("--custom-themes", default=None, help="Comma-separated extra tags")

    enqueue = subparsers.add_parser("enqueue", help="Queue an extraction job for a stamp")
    enqueue.add_argument("stamp_id", type=int)

    worker = subparsers.add_parser("worker", help="Run the extraction worker")
    worker.add_argument("--once", action="store_true", help="Exit when the queue is empty")
    worker.add_argument("--max-jobs", type=int, default=None, help="Stop after N jobs")
    worker.add_argument("--poll-ms", type=int, default=None, help="Idle poll interval")
    worker.add_argument("--no-ocr", action="store_true", help="Skip the OCR pass")

    jobs = subparsers.add_parser("jobs", help="List OCR jobs")
    jobs.add_argument(
        "--status",
        choices=["PENDING", "PROCESSING", "COMPLETED", "FAILED"],
        default=None
    )
    jobs.add_argument("--limit", type=int, default=20)

    review = subparsers.add_parser("review", help="List stamps that need review")
    review.add_argument("--limit", type=int, default=None)

    edit = subparsers.add_parser("edit", help="Apply a manual review edit")
    edit.add_argument("stamp_id", type=int)
    edit.add_argument("payload", help="JSON object, e.g. '{\"faceValue\": \"forever\"}'")

    reclaim = subparsers.add_parser("reclaim", help="Requeue stale PROCESSING jobs")
    reclaim.add_argument(
        "--older-than",
        type=float,
        default=None,
        help="Lease in seconds (default: queue.stale_after_seconds)"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()
    if args.debug:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG)

    logger.debug(f"Version: {config.get('project.version', '1.0.0')}")
    logger.debug(f"Database: {config.get('paths.database')}")
    return config


def open_database():
    """Open the configured database, creating tables if needed."""
    from stamp_catalog.storage import Database

    db = Database()
    db.initialize()
    return db


def build_extractor(ocr_enabled: Optional[bool] = None):
    from stamp_catalog.extraction import StampExtractor

    return StampExtractor(ocr_enabled=ocr_enabled)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def run_worker(
    max_jobs: Optional[int] = None,
    exit_when_idle: bool = False,
    poll_interval_ms: Optional[int] = None,
    ocr_enabled: Optional[bool] = None,
    stop_event: Optional[threading.Event] = None
) -> int:
    """
    Run the extraction worker against the configured database.

    This is the programmatic entry point for the worker loop.

    Args:
        max_jobs: Stop after this many jobs.
        exit_when_idle: Return once the queue is empty.
        poll_interval_ms: Override queue.poll_interval_ms.
        ocr_enabled: Override ocr.enabled.
        stop_event: Event that stops the loop when set.

    Returns:
        Number of processed jobs.
    """
    from stamp_catalog.jobs import ExtractionWorker
    from stamp_catalog.storage import JobRepository, StampRepository

    db = open_database()
    worker = ExtractionWorker(
        StampRepository(db),
        JobRepository(db),
        build_extractor(ocr_enabled),
        poll_interval_ms=poll_interval_ms,
        max_jobs=max_jobs,
    )
    return worker.run(stop_event=stop_event, exit_when_idle=exit_when_idle)


def cmd_init_db(args: argparse.Namespace) -> int:
    db = open_database()
    print(f"Database ready: {db.db_path}")
    return 0


def cmd_add_stamp(args: argparse.Namespace) -> int:
    from stamp_catalog.jobs import request_extraction
    from stamp_catalog.storage import JobRepository, StampRepository

    db = open_database()
    stamps = StampRepository(db)
    jobs = JobRepository(db)

    name = args.name.strip() if args.name and args.name.strip() else None
    stamp = stamps.create(args.image_path, name=name)
    job_id = request_extraction(stamp.id, stamps, jobs)

    print_json({'stamp': stamp.to_dict(), 'job_id': job_id})
    return 0


def cmd_ingest(args: argparse.Namespace) -> int:
    from stamp_catalog.jobs import IntakeService
    from stamp_catalog.storage import JobRepository, StampRepository

    db = open_database()
    service = IntakeService(StampRepository(db), JobRepository(db), build_extractor())
    outcomes = service.register_batch(
        args.image_paths,
        name=args.name,
        identifier=args.identifier,
        face_value=args.face_value,
        themes=args.themes,
        custom_themes=args.custom_themes,
    )

    extracted_count = sum(1 for outcome in outcomes if outcome.extracted)
    print_json({
        'outcomes': [outcome.to_dict() for outcome in outcomes],
        'extracted_count': extracted_count,
        'queued_count': len(outcomes) - extracted_count,
    })
    return 0


def cmd_enqueue(args: argparse.Namespace) -> int:
    from stamp_catalog.jobs import request_extraction
    from stamp_catalog.storage import JobRepository, StampRepository

    db = open_database()
    job_id = request_extraction(args.stamp_id, StampRepository(db), JobRepository(db))
    print_json({'stamp_id': args.stamp_id, 'job_id': job_id})
    return 0


def cmd_worker(args: argparse.Namespace) -> int:
    stop_event = threading.Event()
    logger = get_logger(__name__)

    def request_stop(signum, frame):
        logger.info(f"Received signal {signum}, stopping after the current job")
        stop_event.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    run_worker(
        max_jobs=args.max_jobs,
        exit_when_idle=args.once,
        poll_interval_ms=args.poll_ms,
        ocr_enabled=False if args.no_ocr else None,
        stop_event=stop_event,
    )
    return 0


def cmd_jobs(args: argparse.Namespace) -> int:
    from stamp_catalog.storage import JobRepository

    jobs = JobRepository(open_database())
    print_json({
        'counts': jobs.count_by_status(),
        'jobs': [job.to_dict() for job in jobs.list_jobs(status=args.status, limit=args.limit)],
    })
    return 0


def cmd_review(args: argparse.Namespace) -> int:
    from stamp_catalog.storage import StampRepository

    stamps = StampRepository(open_database())
    print_json([stamp.to_dict() for stamp in stamps.list_needing_review(limit=args.limit)])
    return 0


def cmd_edit(args: argparse.Namespace) -> int:
    from stamp_catalog.postprocessor import validate_stamp_edit
    from stamp_catalog.storage import StampRepository

    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON body: {e}") from e

    edit = validate_stamp_edit(payload)
    stamp = StampRepository(open_database()).apply_review(args.stamp_id, edit)
    print_json(stamp.to_dict())
    return 0


def cmd_reclaim(args: argparse.Namespace) -> int:
    from stamp_catalog.storage import JobRepository

    older_than = args.older_than
    if older_than is None:
        older_than = get_config("queue.stale_after_seconds", 900)

    reclaimed = JobRepository(open_database()).reclaim_stale(older_than)
    print_json({'reclaimed': reclaimed})
    return 0


COMMANDS = {
    "init-db": cmd_init_db,
    "add-stamp": cmd_add_stamp,
    "ingest": cmd_ingest,
    "enqueue": cmd_enqueue,
    "worker": cmd_worker,
    "jobs": cmd_jobs,
    "review": cmd_review,
    "edit": cmd_edit,
    "reclaim": cmd_reclaim,
}


def main(argv: Optional[list] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        return COMMANDS[args.command](args)

    except StampCatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if "--debug" in (argv if argv is not None else sys.argv):
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
