"""
Deadline Gate

Pure functions deciding whether a named election window is open. A window
is open only when both bounds are set and start <= now <= end, inclusive
at both ends.
"""
import enum
from datetime import datetime
from typing import Optional, Tuple, Dict, Any

from election_backend.errors import ErrorCode, ForbiddenError
from election_backend.orm.manifesto import ManifestoPhase
from election_backend.orm.supporter_request import SupporterRole
from election_backend.orm.system_config import SystemConfig


class Window(str, enum.Enum):
    nomination = "nomination"
    proposer_seconder = "proposer_seconder"
    campaigner = "campaigner"
    phase1 = "phase1"
    phase2 = "phase2"
    final = "final"


WINDOW_BOUNDS = {
    Window.nomination: ("nomination_start", "nomination_end"),
    Window.proposer_seconder: ("proposer_seconder_start", "proposer_seconder_end"),
    Window.campaigner: ("campaigner_start", "campaigner_end"),
    Window.phase1: ("manifesto_phase1_start", "manifesto_phase1_end"),
    Window.phase2: ("manifesto_phase2_start", "manifesto_phase2_end"),
    Window.final: ("manifesto_final_start", "manifesto_final_end"),
}

ROLE_WINDOWS = {
    SupporterRole.proposer: Window.proposer_seconder,
    SupporterRole.seconder: Window.proposer_seconder,
    SupporterRole.campaigner: Window.campaigner,
}

PHASE_WINDOWS = {
    ManifestoPhase.phase1: Window.phase1,
    ManifestoPhase.phase2: Window.phase2,
    ManifestoPhase.final: Window.final,
}


def is_window_open(start: Optional[datetime], end: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if start is None or end is None:
        return False
    now = now or datetime.utcnow()
    return start <= now <= end


def window_bounds(config: SystemConfig, window: Window) -> Tuple[Optional[datetime], Optional[datetime]]:
    start_field, end_field = WINDOW_BOUNDS[window]
    start, end = getattr(config, start_field), getattr(config, end_field)

    # Proposers and seconders share the nomination window until given their own
    if window == Window.proposer_seconder and start is None and end is None:
        return window_bounds(config, Window.nomination)
    return start, end


def is_open(config: SystemConfig, window: Window, now: Optional[datetime] = None) -> bool:
    start, end = window_bounds(config, window)
    return is_window_open(start, end, now)


def nomination_open(config: SystemConfig, now: Optional[datetime] = None) -> bool:
    return is_open(config, Window.nomination, now)


def supporter_window_open(config: SystemConfig, role: SupporterRole, now: Optional[datetime] = None) -> bool:
    return is_open(config, ROLE_WINDOWS[role], now)


def manifesto_window_open(config: SystemConfig, phase: ManifestoPhase, now: Optional[datetime] = None) -> bool:
    return is_open(config, PHASE_WINDOWS[phase], now)


def require_window_open(config: SystemConfig, window: Window, message: str, now: Optional[datetime] = None) -> None:
    """Raise ForbiddenError(WINDOW_CLOSED) unless the window is open."""
    if not is_open(config, window, now):
        raise ForbiddenError(message, code=ErrorCode.WINDOW_CLOSED)


def window_status(config: SystemConfig, now: Optional[datetime] = None) -> Dict[str, Dict[str, Any]]:
    """Snapshot of every window for display."""
    now = now or datetime.utcnow()
    snapshot = {}
    for window in Window:
        start, end = window_bounds(config, window)
        snapshot[window.value] = {
            "start": start.isoformat() if start else None,
            "end": end.isoformat() if end else None,
            "open": is_window_open(start, end, now),
        }
    return snapshot
