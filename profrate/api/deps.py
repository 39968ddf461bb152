"""
API dependency helpers.

Resolves the caller's session and user, enforces role requirements and
validates CSRF tokens on state-changing requests.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from profrate.db import models
from profrate.db.database import get_db
from profrate.services.session_service import SessionService
from profrate.utils.feature_flags import csrf_protection_enabled

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def get_session_service(request: Request, db: Session = Depends(get_db)) -> SessionService:
    return SessionService(db, request)


def get_optional_user(
    sessions: SessionService = Depends(get_session_service),
) -> Optional[models.User]:
    return sessions.current_user()


# Contract:
# Returns the authenticated ORM user; raises 401 when the session has none.
def get_current_user(
    user: Optional[models.User] = Depends(get_optional_user),
) -> models.User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def require_roles(*roles: str, detail: Optional[str] = None):
    """Build a dependency that admits only users holding one of `roles`."""
    allowed = frozenset(roles)
    message = detail or f"Requires role: {', '.join(sorted(allowed))}"

    def _dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
        return user

    return _dependency


require_admin = require_roles(models.ROLE_ADMIN, detail="Admin access required")
require_student = require_roles(models.ROLE_STUDENT, detail="Only students can submit reviews")


def require_csrf(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> None:
    """Reject unsafe requests whose X-CSRF-Token does not match the session token."""
    if request.method.upper() in SAFE_METHODS or not csrf_protection_enabled():
        return
    candidate = request.headers.get(CSRF_HEADER)
    if not candidate:
        logger.info("csrf_missing method=%s path=%s", request.method, request.url.path)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="CSRF token required")
    if not sessions.verify_csrf(candidate):
        logger.warning("csrf_invalid method=%s path=%s", request.method, request.url.path)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token")
