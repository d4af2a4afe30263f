"""
Database CLI Commands

Database operations: init
"""
import asyncio

from election_backend.database import AsyncSessionLocal, close_db, init_db
from election_backend.services.config_store import ConfigStore


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return self._init(args)
        else:
            print("Error: Unknown database action")
            return 1

    def _init(self, args) -> int:
        """Create tables and the default (closed) configuration row."""
        print("=== Database Init ===")

        if self.dry_run:
            print("[DRY RUN] Would create missing tables and the system configuration")
            return 0

        async def run():
            try:
                await init_db()
                async with AsyncSessionLocal() as session:
                    await ConfigStore(session).get()
            finally:
                await close_db()

        asyncio.run(run())
        print("Tables created and configuration initialized")
        return 0
