"""
User CLI Commands

User operations: create-superadmin
"""
import asyncio
import logging

from sqlalchemy import select

from election_backend.config.settings import settings
from election_backend.database import AsyncSessionLocal, close_db, init_db
from election_backend.orm.user import User, UserRole
from election_backend.rbac import hash_password_async

logger = logging.getLogger(__name__)


class UserCommand:
    """User CLI command handler."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        """Execute user command."""
        if args.user_action == "create-superadmin":
            return self._create_superadmin(args)
        else:
            print("Error: Unknown user action")
            return 1

    def _create_superadmin(self, args) -> int:
        """
        Create the superadmin account, or promote an existing account with
        the same email and reset its password.
        """
        email = (args.email or settings.SUPERADMIN_EMAIL).strip().lower()
        password = args.password or settings.SUPERADMIN_PASSWORD

        if not email or not password:
            print("Error: --email and --password (or SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD) are required")
            return 1

        if self.dry_run:
            print(f"[DRY RUN] Would create or promote superadmin {email}")
            return 0

        async def run() -> str:
            try:
                await init_db()
                async with AsyncSessionLocal() as session:
                    result = await session.execute(select(User).where(User.email == email))
                    user = result.scalar_one_or_none()
                    password_hash = await hash_password_async(password)

                    if user:
                        user.role = UserRole.superadmin
                        user.password_hash = password_hash
                        user.is_verified = True
                        outcome = "promoted"
                    else:
                        session.add(User(
                            email=email,
                            password_hash=password_hash,
                            role=UserRole.superadmin,
                            is_verified=True,
                            name=args.name,
                            roll_no=args.roll_no,
                            department="Administration",
                            phone="0000000000",
                        ))
                        outcome = "created"
                    await session.commit()
                    return outcome
            finally:
                await close_db()

        outcome = asyncio.run(run())
        logger.info(f"Superadmin {email} {outcome}")
        print(f"Superadmin {email} {outcome}")
        return 0
