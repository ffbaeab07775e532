"""
Access control primitives: password hashing, bearer tokens, role checks.

The core never sees raw credentials - routes resolve an Identity here and
pass user_id / is_admin down to the use cases.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from topledger.config import get_settings
from topledger.domain.errors import AuthError, ForbiddenError, ValidationError
from topledger.infrastructure.auditlog.repository import AuditLogRepository
from topledger.infrastructure.db.models import User

logger = logging.getLogger(__name__)

# pbkdf2_sha256 - primary (no native deps)
# bcrypt - accepted for hashes imported from the old service
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated=["bcrypt"])

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_login(db: Session, login: str) -> User | None:
    """Login accepts either the email or the nickname; an email match wins."""
    login = login.strip()
    user = get_user_by_email(db, login)
    if user is None:
        user = db.query(User).filter(User.nickname == login).first()
    return user


def create_access_token(user: User, now: datetime | None = None) -> str:
    """
    Signed bearer token carrying {sub, email, role}; expires after JWT_EXPIRE_DAYS.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(days=settings.JWT_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def authenticate(token: str) -> Identity:
    """
    Resolve a bearer token into an Identity.

    Raises:
        AuthError: token missing, malformed, badly signed or expired
    """
    if not token:
        raise AuthError("Missing auth token")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return Identity(
            user_id=int(payload["sub"]),
            email=payload.get("email", ""),
            role=payload.get("role", ROLE_USER),
        )
    except (JWTError, KeyError, ValueError):
        raise AuthError("Invalid or expired auth token")


def require_role(identity: Identity, role: str) -> Identity:
    if identity.role != role:
        raise ForbiddenError("Access denied")
    return identity


def register_user(
    db: Session,
    email: str,
    password: str,
    name: str,
    nickname: str | None = None,
    role: str = ROLE_USER,
    ip_address: str | None = None,
) -> User:
    """
    Create a user with a hashed password.

    Raises:
        ValidationError: missing field, nickname with "@", or email / nickname already taken
    """
    email = (email or "").strip().lower()
    name = (name or "").strip()
    nickname = (nickname or "").strip() or None
    if not email or not name or not password:
        raise ValidationError("Email, name and password are required")
    if nickname and "@" in nickname:
        raise ValidationError("Nickname cannot contain @")

    if get_user_by_email(db, email) is not None:
        raise ValidationError("Email already registered")
    if nickname and db.query(User).filter(User.nickname == nickname).first() is not None:
        raise ValidationError("Nickname already taken")

    user = User(
        email=email,
        nickname=nickname,
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")

    AuditLogRepository(db).append(
        "USER_REGISTERED",
        user_id=user.id,
        target_id=user.id,
        details={"email": email, "role": role},
        ip_address=ip_address,
    )
    db.commit()
    db.refresh(user)
    return user


def login_user(db: Session, login: str, password: str, ip_address: str | None = None) -> User:
    """
    Check credentials and stamp last_signed_in_at.

    Raises:
        AuthError: unknown login or wrong password
    """
    user = get_user_by_login(db, login or "")
    if user is None or not verify_password(password or "", user.password_hash):
        raise AuthError("Invalid email/nickname or password")

    user.last_signed_in_at = datetime.now(timezone.utc)
    AuditLogRepository(db).append(
        "USER_LOGGED_IN",
        user_id=user.id,
        target_id=user.id,
        details={"email": user.email},
        ip_address=ip_address,
    )
    db.commit()
    db.refresh(user)
    return user


def ensure_admin(db: Session, email: str, password: str, name: str) -> tuple[User, bool]:
    """
    Make sure an administrator with this email exists.

    An existing account is promoted to admin, its password left alone.

    Returns:
        (user, created)
    """
    user = get_user_by_email(db, email)
    if user is not None:
        if user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN
            db.commit()
            logger.info("Promoted %s to admin", user.email)
        return user, False

    user = register_user(db, email=email, password=password, name=name, role=ROLE_ADMIN)
    logger.info("Created admin %s (id=%s)", user.email, user.id)
    return user, True
