"""
Session Tracking Service
Usage telemetry: tracked sessions and audited user actions.

Tracking is best-effort. Database failures are logged and swallowed so a
telemetry problem never blocks the request that triggered it.
"""
import re
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_app.core.config import settings
from inventory_app.core.database import utc_now
from inventory_app.models.auth import ExcludedUser, UserAction, UserSession

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = re.compile(r"Mobile|iP(hone|od|ad)|Android|BlackBerry|IEMobile")

TRACKABLE_ACTIONS = frozenset([
    "sign_in",
    "sign_out",
    "create_user",
    "view_inventory",
    "start_count",
    "complete_count",
    "generate_adjustment",
    "view_master_data",
    "add_item",
    "update_item",
    "delete_item",
    "add_product",
    "update_product",
    "delete_product",
    "add_warehouse",
    "update_warehouse",
    "delete_warehouse",
    "view_transactions",
    "create_transaction",
    "update_transaction",
    "delete_transaction",
    "advance_transaction",
    "view_reports",
    "run_customer_report",
    "run_item_report",
    "run_product_report",
    "run_warehouse_report",
    "run_negative_report",
])


@dataclass
class SessionContext:
    """Who is acting and in which tracked session"""
    user_id: str
    session_id: Optional[str] = None


def detect_device_type(user_agent: Optional[str]) -> str:
    if user_agent and MOBILE_USER_AGENT.search(user_agent):
        return "mobile"
    return "desktop"


class SessionTracker:
    """
    Starts, reuses and ends tracked sessions

    One guard lock per user keeps two concurrent sign-ins from inserting two
    open sessions; a caller that finds the guard held gets None back.
    """

    _guards: Dict[str, threading.Lock] = {}
    _guards_lock = threading.Lock()

    def __init__(self, db: Session, debounce_seconds: Optional[float] = None):
        self.db = db
        self.debounce_seconds = (
            settings.SESSION_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )

    @classmethod
    def _try_acquire_guard(cls, user_id: str) -> Optional[threading.Lock]:
        with cls._guards_lock:
            guard = cls._guards.setdefault(user_id, threading.Lock())
            return guard if guard.acquire(blocking=False) else None

    @classmethod
    def _release_guard(cls, user_id: str, guard: threading.Lock) -> None:
        """Release and drop the user's guard so the map holds only in-flight starts"""
        with cls._guards_lock:
            guard.release()
            if cls._guards.get(user_id) is guard:
                del cls._guards[user_id]

    def is_excluded(self, user_id: str) -> bool:
        try:
            return self.db.get(ExcludedUser, user_id) is not None
        except SQLAlchemyError as e:
            logger.error(f"Error checking excluded users for {user_id}: {e}")
            return False

    def open_session_id(self, user_id: str) -> Optional[str]:
        """Id of the user's open session, if any"""
        try:
            open_session = (
                self.db.query(UserSession)
                .filter(UserSession.user_id == user_id, UserSession.ended_at.is_(None))
                .order_by(UserSession.started_at.desc())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error looking up open session for {user_id}: {e}")
            return None
        return open_session.id if open_session else None

    def start_session(
        self,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Optional[str]:
        """
        Start or reuse a tracked session

        Returns the session id, or None when the user is excluded, another
        start for the same user is in flight, or the write failed.
        """
        if self.is_excluded(user_id):
            logger.debug(f"User {user_id} is excluded from session tracking")
            return None

        guard = self._try_acquire_guard(user_id)
        if guard is None:
            logger.debug(f"Session creation already in progress for {user_id}")
            return None

        try:
            existing = self.open_session_id(user_id)
            if existing:
                return existing

            cutoff = utc_now() - timedelta(seconds=self.debounce_seconds)
            recent = (
                self.db.query(UserSession)
                .filter(UserSession.user_id == user_id, UserSession.ended_at >= cutoff)
                .order_by(UserSession.ended_at.desc())
                .first()
            )
            if recent:
                recent.ended_at = None
                self.db.commit()
                logger.info(f"Reopened session {recent.id} for user {user_id}")
                return recent.id

            new_session = UserSession(
                user_id=user_id,
                started_at=utc_now(),
                ip_address=ip_address,
                user_agent=user_agent,
                device_type=detect_device_type(user_agent),
            )
            self.db.add(new_session)
            self.db.commit()
            logger.info(f"Started session {new_session.id} for user {user_id}")
            return new_session.id

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error starting session for {user_id}: {e}")
            return None
        finally:
            self._release_guard(user_id, guard)

    def end_session(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        try:
            tracked = self.db.get(UserSession, session_id)
            if tracked is None or tracked.ended_at is not None:
                return False
            tracked.ended_at = utc_now()
            self.db.commit()
            logger.info(f"Ended session {session_id}")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error ending session {session_id}: {e}")
            return False

    def track_action(
        self,
        context: Optional[SessionContext],
        action_type: str,
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Record an action against the context's session; False when skipped"""
        if context is None or not context.session_id:
            return False
        if action_type not in TRACKABLE_ACTIONS:
            logger.debug(f"Ignoring untracked action type {action_type}")
            return False
        if self.is_excluded(context.user_id):
            return False

        try:
            self.db.add(UserAction(
                session_id=context.session_id,
                action_type=action_type,
                action_details=details or {},
                created_at=utc_now(),
            ))
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error tracking action {action_type}: {e}")
            return False


def track_action(
    db: Session,
    context: Optional[SessionContext],
    action_type: str,
    details: Optional[Dict[str, Any]] = None
) -> bool:
    """Convenience wrapper used by the API routes"""
    return SessionTracker(db).track_action(context, action_type, details)
