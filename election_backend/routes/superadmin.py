"""
election_backend/routes/superadmin.py
Superadmin console: configuration, listings, statistics, export and audit trail
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.database import get_db
from election_backend.orm.activity_log import ActionType
from election_backend.orm.nomination import NominationStatus
from election_backend.orm.user import User
from election_backend.rbac import require_superadmin
from election_backend.schemas.config import (
    ConfigPatch, CreateAdminRequest, DeadlinesUpdate, LimitsUpdate, ReviewerCredentialsUpdate
)
from election_backend.services import admin_service, export_service, nomination_service
from election_backend.services.activity_logger import list_activity, log_activity
from election_backend.services.config_store import ConfigStore
from election_backend.services.export_service import ExportType
from election_backend.services.nomination_service import nomination_with_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/superadmin", tags=["Superadmin"])


async def _config_changed(db: AsyncSession, actor: User, section: str, fields) -> None:
    logger.info(f"Config {section} updated by {actor.id}: {sorted(fields)}")
    await log_activity(db, ActionType.CONFIG_UPDATED, actor_id=actor.id,
                       details={"section": section, "fields": sorted(fields)})


# ================= CONFIG =================

@router.get("/config")
async def get_config(
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    config = await ConfigStore(db).get()
    return {"success": True, "config": config.to_dict()}


@router.patch("/config")
async def patch_config(
    body: ConfigPatch,
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    """Apply any combination of deadline, limit and reviewer changes."""
    store = ConfigStore(db)
    config = await store.get()

    if body.deadlines is not None:
        windows = body.deadlines.model_dump(exclude_unset=True)
        config = await store.update_windows(windows)
        await _config_changed(db, current_user, "deadlines", windows)

    if body.limits is not None:
        limits = body.limits.by_role()
        config = await store.update_limits(limits)
        await _config_changed(db, current_user, "limits", [role.value for role in limits])

    if body.reviewers is not None:
        credentials = body.reviewers.by_phase()
        config = await store.update_reviewers(credentials)
        await _config_changed(db, current_user, "reviewers", [phase.value for phase in credentials])

    return {"success": True, "message": "Configuration updated", "config": config.to_dict()}


@router.put("/config/deadlines")
async def update_deadlines(
    body: DeadlinesUpdate,
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    windows = body.model_dump(exclude_unset=True)
    config = await ConfigStore(db).update_windows(windows)
    await _config_changed(db, current_user, "deadlines", windows)
    return {"success": True, "message": "Deadlines updated successfully", "config": config.to_dict()}


@router.put("/config/limits")
async def update_limits(
    body: LimitsUpdate,
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    limits = body.by_role()
    config = await ConfigStore(db).update_limits(limits)
    await _config_changed(db, current_user, "limits", [role.value for role in limits])
    return {"success": True, "message": "Limits updated successfully", "config": config.to_dict()}


@router.put("/config/reviewers")
async def update_reviewer_credentials(
    body: ReviewerCredentialsUpdate,
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    credentials = body.by_phase()
    config = await ConfigStore(db).update_reviewers(credentials)
    await _config_changed(db, current_user, "reviewers", [phase.value for phase in credentials])
    return {"success": True, "message": "Reviewer credentials updated successfully", "config": config.to_dict()}


# ================= LISTINGS =================

@router.get("/nominations")
async def get_all_nominations(
    status: Optional[NominationStatus] = Query(None),
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    rows = await nomination_service.list_nominations(db, status=status)
    nominations = [nomination_with_owner(nomination, owner) for nomination, owner in rows]
    return {"success": True, "count": len(nominations), "nominations": nominations}


@router.get("/candidates")
async def get_all_candidates(
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    candidates = await admin_service.list_candidates(db)
    return {"success": True, "count": len(candidates), "candidates": candidates}


@router.get("/users")
async def get_all_users(
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    users = await admin_service.list_users(db)
    return {"success": True, "count": len(users), "users": [u.to_dict() for u in users]}


@router.post("/create-admin")
async def create_admin(
    body: CreateAdminRequest,
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.create_admin(db, body.user_id, current_user)
    return {"success": True, "message": "User promoted to admin", "user": user.to_dict()}


# ================= DATA =================

@router.get("/statistics")
async def get_statistics(
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "statistics": await admin_service.get_statistics(db)}


@router.get("/export/{export_type}")
async def export_data(
    export_type: ExportType,
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    """CSV download of candidates, supporters, manifestos or comments."""
    content, count = await export_service.export_csv(db, export_type)
    filename = f"{export_type.value}_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
    logger.info(f"Exported {count} {export_type.value} rows for {current_user.id}")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/activity")
async def get_activity(
    limit: int = Query(100, ge=1, le=1000),
    action: Optional[ActionType] = Query(None),
    actor_id: Optional[str] = Query(None),
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    logs = await list_activity(db, limit=limit, action=action, actor_id=actor_id)
    return {"success": True, "count": len(logs), "activity": [log.to_dict() for log in logs]}
