"""
Config CLI Commands

System configuration: show, set-window
"""
import asyncio
import json
from datetime import datetime

from election_backend.database import AsyncSessionLocal, close_db
from election_backend.errors import BadRequestError
from election_backend.services import deadline_gate
from election_backend.services.config_store import ConfigStore
from election_backend.services.deadline_gate import WINDOW_BOUNDS, Window


def parse_timestamp(value: str) -> datetime:
    """ISO-8601, a trailing Z is accepted for UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class ConfigCommand:
    """Config CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        """Execute config command."""
        if args.config_action == "show":
            return self._show(args)
        elif args.config_action == "set-window":
            return self._set_window(args)
        else:
            print("Error: Unknown config action")
            return 1

    def _show(self, args) -> int:
        async def run():
            try:
                async with AsyncSessionLocal() as session:
                    config = await ConfigStore(session).get()
                    return config.to_dict(), deadline_gate.window_status(config)
            finally:
                await close_db()

        config, windows = asyncio.run(run())
        print("=== System Configuration ===")
        print(json.dumps(config, indent=2))
        print("\n=== Windows ===")
        for name, status in windows.items():
            state = "OPEN" if status["open"] else "closed"
            print(f"  {name:<18} {state:<7} {status['start']} -> {status['end']}")
        return 0

    def _set_window(self, args) -> int:
        window = Window(args.window)
        start_field, end_field = WINDOW_BOUNDS[window]

        if args.clear:
            windows = {start_field: None, end_field: None}
        elif args.start and args.end:
            try:
                windows = {start_field: parse_timestamp(args.start), end_field: parse_timestamp(args.end)}
            except ValueError as e:
                print(f"Error: {e}")
                return 1
        else:
            print("Error: give both --start and --end, or --clear")
            return 1

        if self.dry_run:
            print(f"[DRY RUN] Would set {window.value}: {windows}")
            return 0

        async def run():
            try:
                async with AsyncSessionLocal() as session:
                    await ConfigStore(session).update_windows(windows)
            finally:
                await close_db()

        try:
            asyncio.run(run())
        except BadRequestError as e:
            print(f"Error: {e.message}")
            return 1

        print(f"Window {window.value} updated")
        return 0
