"""
Authentication API endpoints
Login, logout, session visibility, user management
"""
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from inventory_app.api import deps
from inventory_app.core.config import settings
from inventory_app.core.security import create_access_token, get_token_payload, security_logger
from inventory_app.models.auth import Profile
from inventory_app.schemas.auth import ProfileResponse, Token, UserCreate, VisibilityChange
from inventory_app.services.auth_service import AuthService
from inventory_app.services.session_tracking import SessionContext, SessionTracker, track_action

router = APIRouter()


def _client_host(request: Request):
    return request.client.host if request.client else None


@router.post("/login", response_model=Token)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(deps.get_db)
) -> Any:
    """
    OAuth2 compatible token login; the username field carries the email
    """
    user = AuthService(db).authenticate_user(form_data.username, form_data.password)
    if not user:
        security_logger.warning(f"Failed sign-in for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    session_id = SessionTracker(db).start_session(
        user_id=user.user_id,
        ip_address=_client_host(request),
        user_agent=request.headers.get("user-agent", ""),
    )
    track_action(db, SessionContext(user.user_id, session_id), "sign_in", {"email": user.email})

    access_token = create_access_token(
        data={"sub": user.user_id, "session_id": session_id},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    security_logger.info(f"User {user.email} signed in")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "session_id": session_id,
        "user": ProfileResponse.model_validate(user),
    }


@router.post("/logout")
async def logout(
    context: SessionContext = Depends(deps.get_session_context),
    db: Session = Depends(deps.get_db)
) -> Any:
    """
    Logout current user and end the tracked session
    """
    track_action(db, context, "sign_out")
    SessionTracker(db).end_session(context.session_id)
    security_logger.info(f"User {context.user_id} signed out")
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=ProfileResponse)
async def read_current_user(
    current_user: Profile = Depends(deps.get_current_user)
) -> Any:
    """
    Get current user info
    """
    return current_user


@router.post("/users", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: UserCreate,
    current_user: Profile = Depends(deps.require_admin),
    context: SessionContext = Depends(deps.get_session_context),
    db: Session = Depends(deps.get_db)
) -> Any:
    """
    Create new user (admin only)
    """
    user = AuthService(db).create_user(user_in)
    track_action(db, context, "create_user", {"email": user.email, "role": user.role})
    security_logger.info(f"User {user.email} created by {current_user.email}")
    return user


@router.post("/session/visibility")
async def change_visibility(
    change: VisibilityChange,
    request: Request,
    current_user: Profile = Depends(deps.get_current_user),
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(deps.get_db)
) -> Any:
    """
    Hidden ends the tracked session; visible starts or reuses one
    """
    tracker = SessionTracker(db)
    if change.visible:
        session_id = tracker.start_session(
            user_id=current_user.user_id,
            ip_address=_client_host(request),
            user_agent=request.headers.get("user-agent", ""),
        )
        return {"visible": True, "session_id": session_id}

    session_id = tracker.open_session_id(current_user.user_id) or payload.get("session_id")
    ended = tracker.end_session(session_id)
    return {"visible": False, "session_id": session_id, "ended": ended}
