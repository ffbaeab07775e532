"""
Authentication routes (register, login, me)
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from topledger.api.deps import client_ip, get_current_user, get_db
from topledger.auth import create_access_token, login_user, register_user
from topledger.infrastructure.db.models import User


router = APIRouter(prefix="/auth", tags=["auth"])


# === Request/Response models ===

class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    nickname: str | None = None


class LoginRequest(BaseModel):
    email: str  # email or nickname
    password: str


class UserResponse(BaseModel):
    user_id: int
    email: str
    name: str
    nickname: str | None
    role: str


class TokenResponse(UserResponse):
    token: str


def _user_response(user: User) -> dict:
    return {
        "user_id": user.id,
        "email": user.email,
        "name": user.name,
        "nickname": user.nickname,
        "role": user.role,
    }


# === Endpoints ===

@router.post("/register", response_model=TokenResponse, status_code=201)
def register(request: Request, req: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return a bearer token"""
    user = register_user(
        db,
        email=req.email,
        password=req.password,
        name=req.name,
        nickname=req.nickname,
        ip_address=client_ip(request),
    )
    return TokenResponse(token=create_access_token(user), **_user_response(user))


@router.post("/login", response_model=TokenResponse)
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    """Sign in with email or nickname"""
    user = login_user(db, req.email, req.password, ip_address=client_ip(request))
    return TokenResponse(token=create_access_token(user), **_user_response(user))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse(**_user_response(user))
