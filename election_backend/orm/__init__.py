"""
election_backend/orm
Importing this package registers every model on Base.metadata.
"""
from election_backend.orm.base import Base, BaseModel
from election_backend.orm.user import User, UserRole
from election_backend.orm.otp import OTP, OTPPurpose
from election_backend.orm.nomination import Nomination, NominationStatus
from election_backend.orm.supporter_request import SupporterRequest, SupporterRole, SupporterStatus
from election_backend.orm.manifesto import Manifesto, ManifestoPhase, ManifestoStatus
from election_backend.orm.reviewer_comment import ReviewerComment
from election_backend.orm.system_config import SystemConfig
from election_backend.orm.activity_log import ActivityLog, ActionType

__all__ = [
    "Base", "BaseModel",
    "User", "UserRole",
    "OTP", "OTPPurpose",
    "Nomination", "NominationStatus",
    "SupporterRequest", "SupporterRole", "SupporterStatus",
    "Manifesto", "ManifestoPhase", "ManifestoStatus",
    "ReviewerComment",
    "SystemConfig",
    "ActivityLog", "ActionType",
]
