"""
API Dependencies
Common dependencies for API endpoints
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from inventory_app.core.database import get_db
from inventory_app.core.security import get_current_user, require_admin
from inventory_app.models.auth import Profile
from inventory_app.services.session_tracking import SessionContext, SessionTracker


async def get_session_context(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SessionContext:
    """
    Tracking context for the current request.

    The session id is the user's open tracked session, so a session reopened
    after a visibility change is picked up without reissuing the token.
    """
    return SessionContext(
        user_id=current_user.user_id,
        session_id=SessionTracker(db).open_session_id(current_user.user_id),
    )


__all__ = [
    "get_db",
    "get_current_user",
    "require_admin",
    "get_session_context",
]
