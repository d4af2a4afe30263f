"""
CSV export of election data for the superadmin console.
"""
import csv
import enum
import io
import logging
from typing import Dict, Any, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from election_backend.orm.manifesto import Manifesto
from election_backend.orm.nomination import Nomination
from election_backend.orm.reviewer_comment import ReviewerComment
from election_backend.orm.supporter_request import SupporterRequest
from election_backend.orm.user import User, UserRole

logger = logging.getLogger(__name__)


class ExportType(str, enum.Enum):
    candidates = "candidates"
    supporters = "supporters"
    manifestos = "manifestos"
    comments = "comments"


CANDIDATE_FIELDS = [
    "name", "email", "roll_no", "department", "phone", "positions", "score", "status",
    "proposers", "seconders", "campaigners", "registered_at",
]
SUPPORTER_FIELDS = [
    "student_name", "student_email", "student_roll_no", "student_department",
    "candidate_name", "candidate_roll_no", "role", "status", "requested_at",
]
MANIFESTO_FIELDS = [
    "candidate_name", "candidate_roll_no", "phase", "file_name", "file_url", "status", "uploaded_at",
]
COMMENT_FIELDS = [
    "candidate_name", "candidate_roll_no", "phase", "reviewer_name", "comment", "commented_at",
]


def _iso(value) -> str:
    return value.isoformat() if value else ""


async def _candidate_rows(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(User, Nomination)
        .outerjoin(Nomination, Nomination.user_id == User.id)
        .where(User.role == UserRole.candidate)
        .order_by(User.created_at.desc())
    )
    rows = []
    for user, nomination in result.all():
        rows.append({
            "name": user.name,
            "email": user.email,
            "roll_no": user.roll_no,
            "department": user.department,
            "phone": user.phone or "",
            "positions": ", ".join(nomination.positions or []) if nomination else "",
            "score": nomination.score if nomination and nomination.score is not None else "",
            "status": nomination.status.value if nomination else "No nomination",
            "proposers": nomination.proposer_count if nomination else 0,
            "seconders": nomination.seconder_count if nomination else 0,
            "campaigners": nomination.campaigner_count if nomination else 0,
            "registered_at": _iso(user.created_at),
        })
    return rows


async def _supporter_rows(db: AsyncSession) -> List[Dict[str, Any]]:
    student = aliased(User)
    candidate = aliased(User)
    result = await db.execute(
        select(SupporterRequest, student, candidate)
        .join(student, student.id == SupporterRequest.student_id)
        .join(candidate, candidate.id == SupporterRequest.candidate_id)
        .order_by(SupporterRequest.created_at.desc())
    )
    return [
        {
            "student_name": s.name,
            "student_email": s.email,
            "student_roll_no": s.roll_no,
            "student_department": s.department,
            "candidate_name": c.name,
            "candidate_roll_no": c.roll_no,
            "role": r.role.value,
            "status": r.status.value,
            "requested_at": _iso(r.created_at),
        }
        for r, s, c in result.all()
    ]


async def _manifesto_rows(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Manifesto, User)
        .join(Nomination, Nomination.id == Manifesto.nomination_id)
        .join(User, User.id == Nomination.user_id)
        .order_by(Manifesto.uploaded_at.desc())
    )
    return [
        {
            "candidate_name": u.name,
            "candidate_roll_no": u.roll_no,
            "phase": m.phase.value,
            "file_name": m.file_name,
            "file_url": m.file_url,
            "status": m.status.value,
            "uploaded_at": _iso(m.uploaded_at),
        }
        for m, u in result.all()
    ]


async def _comment_rows(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(ReviewerComment, User)
        .join(Manifesto, Manifesto.id == ReviewerComment.manifesto_id)
        .join(Nomination, Nomination.id == Manifesto.nomination_id)
        .join(User, User.id == Nomination.user_id)
        .order_by(ReviewerComment.created_at.desc())
    )
    return [
        {
            "candidate_name": u.name,
            "candidate_roll_no": u.roll_no,
            "phase": c.phase.value,
            "reviewer_name": c.reviewer_name,
            "comment": c.content,
            "commented_at": _iso(c.created_at),
        }
        for c, u in result.all()
    ]


EXPORTERS = {
    ExportType.candidates: (_candidate_rows, CANDIDATE_FIELDS),
    ExportType.supporters: (_supporter_rows, SUPPORTER_FIELDS),
    ExportType.manifestos: (_manifesto_rows, MANIFESTO_FIELDS),
    ExportType.comments: (_comment_rows, COMMENT_FIELDS),
}


def rows_to_csv(rows: List[Dict[str, Any]], fieldnames: List[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


async def export_csv(db: AsyncSession, export_type: ExportType) -> Tuple[str, int]:
    """Returns (csv_text, row_count)."""
    loader, fieldnames = EXPORTERS[export_type]
    rows = await loader(db)
    logger.info(f"Exported {len(rows)} {export_type.value} rows")
    return rows_to_csv(rows, fieldnames), len(rows)
