#!/usr/bin/env python3
"""
Election Portal Management CLI

Usage:
    python -m election_backend.cli <command> [options]

Commands:
    db      Database operations (init)
    user    User operations (create-superadmin)
    config  System configuration (show, set-window)

Environment:
    DATABASE_URL    SQLAlchemy async connection string
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from election_backend.cli.config_commands import ConfigCommand
from election_backend.cli.db_commands import DbCommand
from election_backend.cli.user_commands import UserCommand
from election_backend.services.deadline_gate import Window


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="election",
        description="Election Nomination Portal Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s user create-superadmin --email admin@iitk.ac.in --password s3cret
  %(prog)s config show
  %(prog)s config set-window nomination --start 2026-01-01T00:00 --end 2026-01-15T23:59
  %(prog)s config set-window phase1 --clear
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")

    # db init
    db_subparsers.add_parser("init", help="Create missing tables and the default configuration")

    # User commands
    user_parser = subparsers.add_parser("user", help="User operations")
    user_subparsers = user_parser.add_subparsers(dest="user_action")

    # user create-superadmin
    superadmin_parser = user_subparsers.add_parser("create-superadmin", help="Create or promote the superadmin")
    superadmin_parser.add_argument("--email", help="Email (default: SUPERADMIN_EMAIL)")
    superadmin_parser.add_argument("--password", help="Password (default: SUPERADMIN_PASSWORD)")
    superadmin_parser.add_argument("--name", default="Super Admin", help="Display name")
    superadmin_parser.add_argument("--roll-no", default="SUPERADMIN", help="Roll number placeholder")

    # Config commands
    config_parser = subparsers.add_parser("config", help="System configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_action")

    # config show
    config_subparsers.add_parser("show", help="Print configuration and window status")

    # config set-window
    window_parser = config_subparsers.add_parser("set-window", help="Set or clear an election window")
    window_parser.add_argument("window", choices=[w.value for w in Window], help="Window name")
    window_parser.add_argument("--start", help="ISO-8601 start (UTC if no offset)")
    window_parser.add_argument("--end", help="ISO-8601 end (UTC if no offset)")
    window_parser.add_argument("--clear", action="store_true", help="Clear both bounds, closing the window")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    # Setup logging
    setup_logging(parsed.log_level)

    # Route to appropriate command handler
    command_map = {
        "db": DbCommand,
        "user": UserCommand,
        "config": ConfigCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
