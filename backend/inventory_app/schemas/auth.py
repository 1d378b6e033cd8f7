"""
Authentication Schemas
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRoleName(str, Enum):
    ADMIN = "admin"
    VIEWER = "viewer"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session_id: Optional[str] = None
    user: Optional["ProfileResponse"] = None


class UserCreate(BaseModel):
    """Privileged user creation request"""
    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=6)
    role: UserRoleName = UserRoleName.VIEWER
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email address")
        return v


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    role: str
    name: Optional[str] = None
    is_admin: bool
    is_active: bool = True
    created_at: Optional[datetime] = None


class VisibilityChange(BaseModel):
    visible: bool


Token.model_rebuild()
