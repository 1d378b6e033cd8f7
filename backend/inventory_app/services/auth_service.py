"""
Authentication Service
User authentication and privileged user creation
"""

from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.exceptions import BusinessLogicError, translate_db_error
from inventory_app.core.security import get_password_hash, verify_password
from inventory_app.models.auth import Profile
from inventory_app.schemas.auth import UserCreate

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication and user management operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[Profile]:
        """Get user by email"""
        return self.db.query(Profile).filter(Profile.email == email.strip().lower()).first()

    def get_user_by_id(self, user_id: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.user_id == user_id).first()

    def authenticate_user(self, email: str, password: str) -> Optional[Profile]:
        """Authenticate user by email and password"""
        user = self.get_user_by_email(email)
        if not user:
            logger.info(f"Sign-in failed for unknown email {email}")
            return None

        if not verify_password(password, user.password_hash):
            logger.info(f"Sign-in failed for {email}: incorrect password")
            return None

        return user

    def create_user(self, user_data: UserCreate) -> Profile:
        """Create new user with the requested role"""
        if self.get_user_by_email(user_data.email):
            raise BusinessLogicError(f"A user with email {user_data.email} already exists")

        db_user = Profile(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role.value,
            name=user_data.name,
            is_active=True,
        )

        try:
            self.db.add(db_user)
            self.db.commit()
            self.db.refresh(db_user)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating user {user_data.email}: {e}")
            raise translate_db_error(e, "create user")

        logger.info(f"Created {db_user.role} user {db_user.email}")
        return db_user
