"""
FastAPI dependencies (DB session, bearer authentication, roles)
"""
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from topledger.auth import ROLE_ADMIN, Identity, authenticate, require_role
from topledger.domain.errors import AuthError
from topledger.infrastructure.db.models import User
from topledger.infrastructure.db.session import get_db as _get_db


# Re-export get_db for routers and test overrides
get_db = _get_db

bearer = HTTPBearer(auto_error=False)


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the bearer token into a User row

    Raises:
        AuthError(401): missing / invalid / expired token, or the user is gone

    Usage:
        @router.get("/earnings")
        def list_earnings(user: User = Depends(get_current_user)):
            ...
    """
    if not creds or creds.scheme.lower() != "bearer":
        raise AuthError("Missing auth token")

    identity = authenticate(creds.credentials)
    user = db.query(User).filter(User.id == identity.user_id).first()
    if not user:
        raise AuthError("User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Current user if admin (role read from the stored row), otherwise ForbiddenError(403)."""
    require_role(Identity(user_id=user.id, email=user.email, role=user.role), ROLE_ADMIN)
    return user


def client_ip(request: Request) -> str | None:
    """Caller address for the audit log (first X-Forwarded-For hop if proxied)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
