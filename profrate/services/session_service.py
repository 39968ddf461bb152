"""
Server-side session handling on top of Starlette's signed-cookie sessions.

The cookie (managed by SessionMiddleware) carries only an opaque `sid`; the
session body lives in the `sessions` table:

    {"user_id": "<uuid>" | absent, "csrf": {"token": ..., "expires_at": ...}}

Login always issues a new `sid` so a pre-login cookie can never be promoted
to an authenticated one.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session
from starlette.requests import Request

from profrate.db import models
from profrate.db.repositories import sessions as sessions_repo
from profrate.db.repositories import users as users_repo
from profrate.utils.runtime import env_int
from profrate.utils.tokens import csrf_record_valid, new_csrf_token, tokens_match

logger = logging.getLogger(__name__)

SESSION_COOKIE_KEY = "sid"
DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 60 * 60


def session_ttl_seconds() -> int:
    return env_int("SESSION_TTL_SECONDS", DEFAULT_SESSION_TTL_SECONDS)


class SessionService:
    """Per-request view of the caller's server-side session."""

    def __init__(self, db: Session, request: Request):
        self.db = db
        self.request = request
        self._row: Optional[models.UserSession] = None
        self._loaded = False

    @property
    def cookie(self) -> dict:
        return self.request.session

    def load(self) -> Optional[models.UserSession]:
        if self._loaded:
            return self._row
        sid = self.cookie.get(SESSION_COOKIE_KEY)
        self._row = sessions_repo.get_session(self.db, sid)
        if sid and self._row is None:
            # Expired or destroyed server-side; forget the stale id
            self.cookie.pop(SESSION_COOKIE_KEY, None)
        self._loaded = True
        return self._row

    def ensure(self) -> models.UserSession:
        row = self.load()
        if row is None:
            row = sessions_repo.create_session(self.db, {}, session_ttl_seconds())
            self._bind(row)
        return row

    def _bind(self, row: models.UserSession) -> None:
        self._row = row
        self._loaded = True
        self.cookie[SESSION_COOKIE_KEY] = row.sid

    @property
    def body(self) -> dict:
        row = self.load()
        return dict(row.sess or {}) if row is not None else {}

    @property
    def sid(self) -> Optional[str]:
        row = self.load()
        return row.sid if row is not None else None

    def current_user(self) -> Optional[models.User]:
        user_id = self.body.get("user_id")
        if not user_id:
            return None
        try:
            user = users_repo.get_user(self.db, uuid.UUID(str(user_id)))
        except ValueError:
            return None
        if user is None:
            # Account deleted while the session was alive
            self.logout()
        return user

    def login(self, user: models.User) -> models.UserSession:
        """Bind `user` to a freshly issued session id, keeping a still-valid CSRF token."""
        previous = self.load()
        carried_csrf = None
        if previous is not None:
            csrf = (previous.sess or {}).get("csrf")
            if csrf_record_valid(csrf):
                carried_csrf = csrf
            sessions_repo.destroy_session(self.db, previous.sid)

        body = {"user_id": str(user.id)}
        if carried_csrf:
            body["csrf"] = carried_csrf
        row = sessions_repo.create_session(self.db, body, session_ttl_seconds())
        self._bind(row)
        logger.debug("session_login user_id=%s", user.id)
        return row

    def logout(self) -> None:
        row = self.load()
        if row is not None:
            sessions_repo.destroy_session(self.db, row.sid)
        self._row = None
        self._loaded = True
        self.cookie.clear()

    def csrf_token(self) -> str:
        """Return the session's CSRF token, issuing a new one when absent or expired."""
        row = self.ensure()
        body = dict(row.sess or {})
        record = body.get("csrf")
        if not csrf_record_valid(record):
            record = new_csrf_token()
            body["csrf"] = record
            sessions_repo.save_session(self.db, row, body, session_ttl_seconds())
        return record["token"]

    def verify_csrf(self, candidate: Optional[str]) -> bool:
        record = self.body.get("csrf")
        if not csrf_record_valid(record):
            return False
        return tokens_match(candidate, record.get("token"))
