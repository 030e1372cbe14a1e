"""
Auth Router — Register, login, current user.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import ConfigDict, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user
from app.database import get_db
from app.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from app.models import User
from app.schemas import Actor, CamelModel
from app.services.auth_service import (
    create_access_token,
    hash_password,
    password_problems,
    verify_password,
)
from app.utils import api_response, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


# ── Schemas ────────────────────────────────────────────────────────────

class RegisterRequest(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    company_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    company_name: Optional[str] = None
    role: str
    subscription_tier: str
    is_active: bool


def _auth_payload(user: User) -> dict:
    return {
        "user": UserOut.model_validate(user).to_api(),
        "token": create_access_token(str(user.id), user.email, user.role),
    }


# ── Endpoints ───────────────────────────────────────────────────────────

@router.post("/register", status_code=201)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an account and return a JWT."""
    problems = password_problems(payload.password)
    if problems:
        raise ValidationError(errors=[{"field": "password", "message": m} for m in problems])

    email = payload.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ConflictError("User already exists with this email")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        company_name=payload.company_name,
        role="user",
        subscription_tier="free",
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info(f"Registered user {user.id}")
    return api_response(_auth_payload(user), "User registered successfully")


@router.post("/login")
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with email and password. Returns JWT."""
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is disabled")

    user.last_login_at = utcnow()
    await db.flush()
    return api_response(_auth_payload(user), "Login successful")


@router.get("/me")
async def me(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Return the current user. Requires JWT auth."""
    user = await db.get(User, actor.user_id)
    if not user:
        raise NotFoundError("User not found")
    return api_response({"user": UserOut.model_validate(user).to_api()})
