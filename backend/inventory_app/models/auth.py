"""
Authentication and Session Tracking Models
Maps to profiles, user_sessions, user_actions and excluded_users tables
"""
import uuid

from sqlalchemy import Column, String, Boolean, Integer, JSON, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship

from inventory_app.core.database import Base, utc_now


class Profile(Base):
    """Application user with credentials and role"""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), unique=True, nullable=False, index=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(200), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="viewer")  # admin, viewer
    name = Column("Name", String(100))
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP(timezone=True), default=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class UserSession(Base):
    """Tracked login session; ended_at is null while the session is open"""
    __tablename__ = "user_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    started_at = Column(TIMESTAMP(timezone=True), default=utc_now)
    ended_at = Column(TIMESTAMP(timezone=True))
    ip_address = Column(String(45))  # Support IPv6
    user_agent = Column(String)
    device_type = Column(String(20))  # mobile, desktop

    actions = relationship("UserAction", back_populates="session")


class UserAction(Base):
    """Audited user action within a tracked session"""
    __tablename__ = "user_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(36), ForeignKey("user_sessions.id"), nullable=False, index=True)
    action_type = Column(String(50), nullable=False)
    action_details = Column(JSON, default=dict)
    created_at = Column(TIMESTAMP(timezone=True), default=utc_now)

    session = relationship("UserSession", back_populates="actions")


class ExcludedUser(Base):
    """Users never recorded by session tracking"""
    __tablename__ = "excluded_users"

    user_id = Column(String(36), primary_key=True)
