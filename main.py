#!/usr/bin/env python3
"""
Review Matcher - Main CLI entrypoint

Hands queued Chrome extensions to qualified reviewers, either one reviewer at
a time (the same path the web app's "Request assignment" button uses) or as
a bulk pass over the queue.

Usage:
    python main.py request 3f1c...-user-uuid          # Assign next extension to a reviewer
    python main.py assign                             # Bulk pass, up to 10 extensions
    python main.py assign --max 25
    python main.py serve --port 8080                  # Start the API server
"""

import argparse
import sys

from matcher.assignment_matcher import AssignmentMatcher
from matcher.errors import AssignmentError
from matcher.queue_assigner import QueueAssigner
from notifications.dispatcher import NotificationDispatcher
from storage.supabase_client import SupabaseClient
from utils.config_loader import load_config
from utils.logger import setup_logger

logger = setup_logger(name=__name__)


def build_services(config):
    """Create the store and notifier from validated config."""
    store = SupabaseClient(
        config.credentials.supabase_url,
        config.credentials.supabase_key
    )
    notifier = NotificationDispatcher(
        config.credentials.supabase_url,
        config.credentials.supabase_key,
        function_name=config.notifications.function_name,
        timeout=config.notifications.timeout,
    )
    return store, notifier


def request_assignment(user_id: str, matcher: AssignmentMatcher) -> bool:
    """
    Run the matcher once for a reviewer and print the outcome.

    Returns:
        True if an assignment was created
    """
    try:
        result = matcher.request_assignment(user_id)
    except AssignmentError as e:
        logger.error(f"✗ {e.kind.value}: {e.message}")
        if e.details:
            logger.error(f"  Details: {e.details}")
        return False

    logger.info("=" * 80)
    logger.info(result.message)
    logger.info(f"  Assignment #{result.assignment_number} (id {result.id})")
    logger.info(f"  Due: {result.due_date.isoformat()}")
    logger.info("=" * 80)
    return True


def assign_queue(max_assignments: int, assigner: QueueAssigner) -> bool:
    """
    Run one bulk pass over the queue and print a summary.

    Returns:
        True unless the queue could not be read
    """
    try:
        summary = assigner.assign_queue(max_assignments)
    except AssignmentError as e:
        logger.error(f"✗ {e.message}")
        if e.details:
            logger.error(f"  Details: {e.details}")
        return False

    logger.info("=" * 80)
    logger.info("QUEUE ASSIGNMENT SUMMARY")
    logger.info("=" * 80)
    logger.info(f"  Extensions processed: {summary.extensions_processed}")
    logger.info(f"  Assignments created:  {summary.assignments_created}")
    logger.info(f"  Premium:              {summary.premium_assignments}")
    logger.info(f"  Free:                 {summary.free_assignments}")
    logger.info("=" * 80)
    return True


def main():
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Review Matcher - assign Chrome extensions to reviewers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Give a reviewer their next extension
  python main.py request 3f1c2a9e-0000-4000-8000-000000000001

  # Assign up to 25 queued extensions to free reviewers
  python main.py assign --max 25
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    request_parser = subparsers.add_parser(
        "request",
        help="Assign the next eligible extension to a reviewer"
    )
    request_parser.add_argument(
        "user_id",
        help="ID of the requesting reviewer"
    )

    assign_parser = subparsers.add_parser(
        "assign",
        help="Assign queued extensions to free reviewers (bulk pass)"
    )
    assign_parser.add_argument(
        "--max",
        dest="max_assignments",
        type=int,
        default=10,
        help="Maximum number of extensions to process (default: 10)"
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the Review Matcher API server"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the API server on (default: 8000)"
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload (use for production)"
    )

    args = parser.parse_args()

    # Show help if no command provided
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        from backend.server import run
        run(host=args.host, port=args.port, reload=not args.no_reload)
        sys.exit(0)

    # Remaining commands need the store
    config = load_config()
    setup_logger(config.log_level, name=__name__)
    try:
        store, notifier = build_services(config)
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client: {e}")
        sys.exit(1)

    if args.command == "request":
        matcher = AssignmentMatcher(store, notifier=notifier, policy=config.policy)
        success = request_assignment(args.user_id, matcher)
        sys.exit(0 if success else 1)

    elif args.command == "assign":
        if args.max_assignments < 1:
            logger.error("--max must be at least 1")
            sys.exit(1)
        assigner = QueueAssigner(store, notifier=notifier, policy=config.policy)
        success = assign_queue(args.max_assignments, assigner)
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
