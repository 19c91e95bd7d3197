from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "student"
    MENTOR = "mentor"
    ADMIN = "admin"


class User(Base):
    """Platform user (aspirant, mentor or admin)"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)
    is_superuser = Column(Boolean, default=False)

    # Referral program
    referral_code = Column(String(16), unique=True, nullable=True)
    referred_by = Column(GUID, nullable=True)  # referrer user id

    # Exam preparation stage: prelims / mains / interview
    exam_stage = Column(String(20), default="prelims")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def display_name(self) -> str:
        """Name shown in community threads and referral validation"""
        if self.full_name:
            return self.full_name
        return self.email.split("@")[0] if self.email else "Anonymous"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN or bool(self.is_superuser)

    def __repr__(self):
        return f"<User {self.email}>"
