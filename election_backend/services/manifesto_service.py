"""
Manifesto Service

One manifesto PDF per (nomination, phase):
- upload replaces in place: new blob stored, row refreshed, then old blob deleted
- delete only by the owner, while the phase window is open and unlocked
- admins lock single manifestos or a whole phase
- inline view streams the stored file through the API

Security:
- Only .pdf files whose content starts with %PDF-
- Size bounded by MAX_MANIFESTO_SIZE_MB
- No path characters in file names
"""
import logging
from datetime import datetime
from typing import Optional, List, Tuple, AsyncIterator

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.config.settings import settings
from election_backend.errors import (
    BadRequestError, ErrorCode, ForbiddenError, GatewayError, NotFoundError, UnavailableError,
    validate_ownership
)
from election_backend.orm.activity_log import ActionType
from election_backend.orm.manifesto import Manifesto, ManifestoPhase, ManifestoStatus
from election_backend.orm.nomination import Nomination
from election_backend.orm.user import User
from election_backend.services import deadline_gate
from election_backend.services.activity_logger import log_activity
from election_backend.services.blob_store import BlobStore, delete_blob, put_blob
from election_backend.services.config_store import ConfigStore
from election_backend.services.deadline_gate import PHASE_WINDOWS
from election_backend.services.nomination_service import get_nomination_for_user

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"
PHASE_ORDER = [ManifestoPhase.phase1, ManifestoPhase.phase2, ManifestoPhase.final]
DANGEROUS_FILENAME_CHARS = ['<', '>', ':', '"', '|', '?', '*', '..', '/', '\\', '\x00']


# =============================================================================
# File Validation
# =============================================================================

def validate_manifesto_file(file_name: str, data: bytes, max_size: Optional[int] = None) -> None:
    """
    Reject anything that is not a non-empty PDF within the size limit.

    Raises:
        BadRequestError with code INVALID_FILE
    """
    max_size = max_size or settings.max_manifesto_bytes()

    if not file_name:
        raise BadRequestError("Please upload a PDF file", code=ErrorCode.INVALID_FILE)

    parts = file_name.rsplit(".", 1)
    if len(parts) != 2 or parts[1].lower() != "pdf":
        raise BadRequestError("Only PDF files are allowed", code=ErrorCode.INVALID_FILE)

    for char in DANGEROUS_FILENAME_CHARS:
        if char in file_name:
            raise BadRequestError(f"Invalid character in filename: {char!r}", code=ErrorCode.INVALID_FILE)

    if not data:
        raise BadRequestError("File cannot be empty", code=ErrorCode.INVALID_FILE)

    if len(data) > max_size:
        raise BadRequestError(
            f"File exceeds {max_size // (1024 * 1024)}MB limit",
            code=ErrorCode.INVALID_FILE,
            details={"max_bytes": max_size, "size": len(data)}
        )

    if not data.startswith(PDF_MAGIC):
        raise BadRequestError("Invalid PDF signature. File must start with %PDF-", code=ErrorCode.INVALID_FILE)


# =============================================================================
# Reads
# =============================================================================

def sort_by_phase(manifestos: List[Manifesto]) -> List[Manifesto]:
    return sorted(manifestos, key=lambda m: PHASE_ORDER.index(m.phase))


async def get_manifesto(db: AsyncSession, manifesto_id: str) -> Manifesto:
    result = await db.execute(select(Manifesto).where(Manifesto.id == manifesto_id))
    manifesto = result.scalar_one_or_none()
    if not manifesto:
        raise NotFoundError("Manifesto", manifesto_id)
    return manifesto


async def find_manifesto(db: AsyncSession, nomination_id: str, phase: ManifestoPhase) -> Optional[Manifesto]:
    result = await db.execute(
        select(Manifesto).where(Manifesto.nomination_id == nomination_id, Manifesto.phase == phase)
    )
    return result.scalar_one_or_none()


async def get_manifesto_for_phase(db: AsyncSession, nomination_id: str, phase: ManifestoPhase) -> Manifesto:
    manifesto = await find_manifesto(db, nomination_id, phase)
    if not manifesto:
        raise NotFoundError("Manifesto")
    return manifesto


async def list_for_nomination(db: AsyncSession, nomination_id: str) -> List[Manifesto]:
    result = await db.execute(select(Manifesto).where(Manifesto.nomination_id == nomination_id))
    return sort_by_phase(list(result.scalars().all()))


async def list_for_candidate(db: AsyncSession, candidate_id: str) -> Tuple[Nomination, List[Manifesto]]:
    nomination = await get_nomination_for_user(db, candidate_id)
    if not nomination:
        raise NotFoundError("Nomination for candidate", candidate_id)
    return nomination, await list_for_nomination(db, nomination.id)


async def _owner_id(db: AsyncSession, nomination_id: str) -> Optional[str]:
    result = await db.execute(select(Nomination.user_id).where(Nomination.id == nomination_id))
    return result.scalar_one_or_none()


# =============================================================================
# Mutations
# =============================================================================

async def upload_manifesto(
    db: AsyncSession,
    store: BlobStore,
    candidate: User,
    phase: ManifestoPhase,
    data: bytes,
    file_name: str
) -> Tuple[Manifesto, bool]:
    """
    Create or replace the candidate's manifesto for a phase.

    Returns:
        (manifesto, created) where created is False for a replacement

    Raises:
        ForbiddenError: phase window closed, or existing manifesto locked
        NotFoundError: candidate has no nomination
        UnavailableError: blob store failure
    """
    config = await ConfigStore(db).get()
    deadline_gate.require_window_open(
        config, PHASE_WINDOWS[phase], f"Manifesto {phase.value} submission period is not currently open"
    )

    nomination = await get_nomination_for_user(db, candidate.id)
    if not nomination:
        raise NotFoundError("Nomination")

    existing = await find_manifesto(db, nomination.id, phase)
    if existing and existing.is_locked:
        raise ForbiddenError(
            f"Manifesto for {phase.value} is locked and cannot be updated",
            code=ErrorCode.RESOURCE_LOCKED
        )

    stored = await put_blob(store, data, file_name, f"manifestos/{phase.value}")
    previous_storage_id = existing.storage_id if existing else None

    try:
        if existing:
            existing.file_name = file_name
            existing.file_url = stored.url
            existing.storage_id = stored.storage_id
            existing.status = ManifestoStatus.submitted
            existing.uploaded_at = datetime.utcnow()
            manifesto = existing
        else:
            manifesto = Manifesto(
                nomination_id=nomination.id,
                phase=phase,
                file_name=file_name,
                file_url=stored.url,
                storage_id=stored.storage_id,
                status=ManifestoStatus.submitted,
                uploaded_at=datetime.utcnow(),
            )
            db.add(manifesto)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error(f"Manifesto write failed for {candidate.id}/{phase.value}; removing new blob")
        await delete_blob(store, stored.storage_id)
        raise

    # Old blob goes only once no committed row references it
    if previous_storage_id:
        try:
            await delete_blob(store, previous_storage_id)
        except UnavailableError:
            logger.warning(f"Old manifesto blob {previous_storage_id} could not be deleted; left orphaned")

    created = existing is None
    action = ActionType.MANIFESTO_UPLOADED if created else ActionType.MANIFESTO_REPLACED
    logger.info(f"Manifesto {manifesto.id} {action.value} by {candidate.id}")
    await log_activity(db, action, actor_id=candidate.id,
                       details={"manifesto_id": manifesto.id, "phase": phase.value})
    return manifesto, created


async def delete_manifesto(db: AsyncSession, store: BlobStore, manifesto_id: str, actor: User) -> None:
    """
    Raises:
        NotFoundError, ForbiddenError (not owner / locked / window closed)
    """
    manifesto = await get_manifesto(db, manifesto_id)
    validate_ownership(actor.id, await _owner_id(db, manifesto.nomination_id), "manifesto")

    if manifesto.is_locked:
        raise ForbiddenError("Manifesto is locked and cannot be deleted", code=ErrorCode.RESOURCE_LOCKED)

    config = await ConfigStore(db).get()
    deadline_gate.require_window_open(
        config, PHASE_WINDOWS[manifesto.phase], "Deadline has passed. Cannot delete manifesto."
    )

    phase = manifesto.phase
    await delete_blob(store, manifesto.storage_id)
    await db.delete(manifesto)
    await db.commit()

    logger.info(f"Manifesto {manifesto_id} deleted by {actor.id}")
    await log_activity(db, ActionType.MANIFESTO_DELETED, actor_id=actor.id,
                       details={"manifesto_id": manifesto_id, "phase": phase.value})


async def lock_manifesto(db: AsyncSession, manifesto_id: str, actor: User) -> Manifesto:
    """Administrative lock; idempotent."""
    manifesto = await get_manifesto(db, manifesto_id)
    manifesto.status = ManifestoStatus.locked
    await db.commit()

    await log_activity(db, ActionType.MANIFESTO_LOCKED, actor_id=actor.id,
                       details={"manifesto_id": manifesto_id, "phase": manifesto.phase.value})
    return manifesto


async def lock_phase(db: AsyncSession, phase: ManifestoPhase, actor: User) -> int:
    """Lock every manifesto of a phase. Returns how many were newly locked."""
    result = await db.execute(
        update(Manifesto)
        .where(Manifesto.phase == phase, Manifesto.status != ManifestoStatus.locked)
        .values(status=ManifestoStatus.locked, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    locked = result.rowcount or 0

    logger.info(f"Locked {locked} {phase.value} manifestos by {actor.id}")
    await log_activity(db, ActionType.MANIFESTO_LOCKED, actor_id=actor.id,
                       details={"phase": phase.value, "count": locked})
    return locked


# =============================================================================
# Inline View
# =============================================================================

async def open_inline_stream(
    db: AsyncSession,
    manifesto_id: str,
    client: httpx.AsyncClient
) -> Tuple[Manifesto, httpx.Response]:
    """
    Open the upstream file for streaming.

    All failures surface here as GatewayError, before any response bytes are
    sent. The client's max_redirects bounds redirect following.
    """
    manifesto = await get_manifesto(db, manifesto_id)

    request = client.build_request("GET", manifesto.file_url)
    try:
        response = await client.send(request, stream=True, follow_redirects=True)
    except httpx.TooManyRedirects:
        logger.warning(f"Too many redirects fetching manifesto {manifesto_id}")
        raise GatewayError("Too many redirects")
    except httpx.HTTPError as e:
        logger.warning(f"Fetching manifesto {manifesto_id} failed: {e}")
        raise GatewayError("Failed to fetch PDF")

    if response.status_code != 200:
        await response.aclose()
        logger.warning(f"Storage returned {response.status_code} for manifesto {manifesto_id}")
        raise GatewayError(
            f"Storage returned status {response.status_code}",
            details={"upstream_status": response.status_code}
        )

    return manifesto, response


async def iter_upstream(response: httpx.Response, manifesto_id: str) -> AsyncIterator[bytes]:
    """Relay upstream bytes. Headers are already sent, so failures only end the stream."""
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        logger.warning(f"Upstream stream for manifesto {manifesto_id} ended early: {e}")
    finally:
        await response.aclose()
