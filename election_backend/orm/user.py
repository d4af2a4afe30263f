"""
election_backend/orm/user.py
Registered portal user. Email is institutional, roll number is unique.
"""
from enum import Enum

from sqlalchemy import Column, String, Boolean, Enum as SQLEnum

from election_backend.orm.base import BaseModel


class UserRole(str, Enum):
    """Portal roles, lowest privilege first"""
    student = "student"
    candidate = "candidate"
    admin = "admin"
    superadmin = "superadmin"


class User(BaseModel):
    __tablename__ = "users"

    # Authentication
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.student, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Profile
    name = Column(String(200), nullable=False)
    roll_no = Column(String(50), nullable=False, unique=True, index=True)
    department = Column(String(200), nullable=False)
    phone = Column(String(10), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    def to_dict(self):
        """Public profile; never includes the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "roll_no": self.roll_no,
            "department": self.department,
            "phone": self.phone,
            "role": self.role.value if self.role else None,
            "is_verified": self.is_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
