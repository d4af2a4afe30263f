"""
Config Store

Owns the singleton SystemConfig row: election windows, supporter caps and
per-phase reviewer credentials. The row is created lazily with every window
closed, and is re-read on each request so edits apply immediately.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.errors import BadRequestError
from election_backend.orm.manifesto import ManifestoPhase
from election_backend.orm.supporter_request import SupporterRole
from election_backend.orm.system_config import SystemConfig, WINDOW_FIELDS
from election_backend.rbac import hash_password_async

logger = logging.getLogger(__name__)

SINGLETON_ID = "system"

DEFAULT_REVIEWER_CREDENTIALS = {
    ManifestoPhase.phase1: ("phase1_reviewer", "change_me_phase1"),
    ManifestoPhase.phase2: ("phase2_reviewer", "change_me_phase2"),
    ManifestoPhase.final: ("final_reviewer", "change_me_final"),
}

REVIEWER_FIELDS = {
    ManifestoPhase.phase1: "phase1_reviewer",
    ManifestoPhase.phase2: "phase2_reviewer",
    ManifestoPhase.final: "final_reviewer",
}

CAP_FIELDS = {
    SupporterRole.proposer: "max_proposers",
    SupporterRole.seconder: "max_seconders",
    SupporterRole.campaigner: "max_campaigners",
}


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def cap_for_role(config: SystemConfig, role: SupporterRole) -> int:
    return getattr(config, CAP_FIELDS[role])


def reviewer_credentials(config: SystemConfig, phase: ManifestoPhase) -> Dict[str, Any]:
    return getattr(config, REVIEWER_FIELDS[phase]) or {}


class ConfigStore:
    """Request-scoped access to the system configuration row."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self) -> SystemConfig:
        result = await self.db.execute(select(SystemConfig).where(SystemConfig.id == SINGLETON_ID))
        config = result.scalar_one_or_none()
        if config is not None:
            return config
        return await self._create_default()

    async def _create_default(self) -> SystemConfig:
        values = {}
        for phase, (username, password) in DEFAULT_REVIEWER_CREDENTIALS.items():
            values[REVIEWER_FIELDS[phase]] = {
                "username": username,
                "password_hash": await hash_password_async(password),
            }

        config = SystemConfig(id=SINGLETON_ID, **values)
        self.db.add(config)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request created it first
            await self.db.rollback()
            result = await self.db.execute(select(SystemConfig).where(SystemConfig.id == SINGLETON_ID))
            return result.scalar_one()

        logger.info("Created default system configuration (all windows closed)")
        return config

    async def update_windows(self, windows: Dict[str, Optional[datetime]]) -> SystemConfig:
        """
        Set or clear window bounds. Keys must be SystemConfig window fields;
        a None value clears the bound and closes that window.
        """
        unknown = [field for field in windows if field not in WINDOW_FIELDS]
        if unknown:
            raise BadRequestError(f"Unknown deadline field: {unknown[0]}")

        config = await self.get()
        for field, value in windows.items():
            setattr(config, field, to_naive_utc(value))

        for prefix in {field.rsplit("_", 1)[0] for field in windows}:
            start = getattr(config, f"{prefix}_start")
            end = getattr(config, f"{prefix}_end")
            if start and end and start > end:
                await self.db.rollback()
                raise BadRequestError(f"{prefix} window starts after it ends")

        await self.db.commit()
        return config

    async def update_limits(self, limits: Dict[SupporterRole, int]) -> SystemConfig:
        for role, value in limits.items():
            if value < 0:
                raise BadRequestError(f"Limit for {role.value} cannot be negative")

        config = await self.get()
        for role, value in limits.items():
            setattr(config, CAP_FIELDS[role], value)
        await self.db.commit()
        return config

    async def update_reviewers(self, credentials: Dict[ManifestoPhase, Dict[str, str]]) -> SystemConfig:
        """Replace reviewer logins. Plain passwords are hashed before storage."""
        config = await self.get()
        for phase, creds in credentials.items():
            current = dict(reviewer_credentials(config, phase))
            if creds.get("username"):
                current["username"] = creds["username"]
            if creds.get("password"):
                current["password_hash"] = await hash_password_async(creds["password"])
            setattr(config, REVIEWER_FIELDS[phase], current)
        await self.db.commit()
        return config
