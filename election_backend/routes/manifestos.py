"""
election_backend/routes/manifestos.py
Manifesto upload, listing, deletion and inline PDF view

Route order matters: the fixed prefixes (/view, /nomination, /candidate)
are registered before the /{nomination_id}/{phase} catch-all.
"""
import logging
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from election_backend.config.settings import settings
from election_backend.core.http_client import get_http_client
from election_backend.database import get_db
from election_backend.orm.manifesto import ManifestoPhase
from election_backend.orm.user import User
from election_backend.rbac import require_candidate
from election_backend.services import manifesto_service
from election_backend.services.blob_store import BlobStore, get_blob_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manifestos", tags=["Manifestos"])


@router.post("/upload")
async def upload_manifesto(
    phase: ManifestoPhase = Form(...),
    manifesto: UploadFile = File(...),
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    """Create or replace the candidate's PDF for a phase."""
    max_size = settings.max_manifesto_bytes()
    # One byte over the limit is enough to reject
    data = await manifesto.read(max_size + 1)
    await manifesto.close()

    manifesto_service.validate_manifesto_file(manifesto.filename, data, max_size)

    record, created = await manifesto_service.upload_manifesto(
        db, store, current_user, phase, data, manifesto.filename
    )
    return {
        "success": True,
        "message": "Manifesto uploaded successfully" if created else "Manifesto replaced successfully",
        "manifesto": record.to_dict(),
    }


def inline_disposition(file_name: str) -> str:
    """
    Content-Disposition for inline viewing. Header values must be latin-1,
    so non-ASCII names go in filename* and the plain filename gets an ASCII fallback.
    """
    fallback = file_name.encode("ascii", "replace").decode("ascii").replace("?", "_")
    fallback = fallback.replace('"', "_").replace("\\", "_")
    return f"inline; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.get("/view/{manifesto_id}")
async def view_manifesto(
    manifesto_id: str,
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Stream the stored PDF inline."""
    record, upstream = await manifesto_service.open_inline_stream(db, manifesto_id, client)

    try:
        headers = {
            "Content-Disposition": inline_disposition(record.file_name),
            "Cache-Control": "public, max-age=3600",
        }
        content_length = upstream.headers.get("content-length")
        if content_length:
            headers["Content-Length"] = content_length

        return StreamingResponse(
            manifesto_service.iter_upstream(upstream, manifesto_id),
            media_type="application/pdf",
            headers=headers,
        )
    except Exception:
        # The relay never started, so nothing else will close the upstream
        await upstream.aclose()
        raise


@router.get("/nomination/{nomination_id}")
async def get_nomination_manifestos(nomination_id: str, db: AsyncSession = Depends(get_db)):
    manifestos = await manifesto_service.list_for_nomination(db, nomination_id)
    return {"success": True, "count": len(manifestos), "manifestos": [m.to_dict() for m in manifestos]}


@router.get("/candidate/{candidate_id}")
async def get_candidate_manifestos(candidate_id: str, db: AsyncSession = Depends(get_db)):
    nomination, manifestos = await manifesto_service.list_for_candidate(db, candidate_id)
    return {
        "success": True,
        "nomination_id": nomination.id,
        "count": len(manifestos),
        "manifestos": [m.to_dict() for m in manifestos],
    }


@router.get("/{nomination_id}/{phase}")
async def get_manifesto(nomination_id: str, phase: ManifestoPhase, db: AsyncSession = Depends(get_db)):
    record = await manifesto_service.get_manifesto_for_phase(db, nomination_id, phase)
    return {"success": True, "manifesto": record.to_dict()}


@router.delete("/{manifesto_id}")
async def delete_manifesto(
    manifesto_id: str,
    current_user: User = Depends(require_candidate),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    await manifesto_service.delete_manifesto(db, store, manifesto_id, current_user)
    return {"success": True, "message": "Manifesto deleted successfully"}
