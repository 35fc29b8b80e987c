"""
Routes d'authentification / Authentication routes.
Login, refresh token, profil utilisateur.
"""

import json
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import get_current_user
from ltipn.config import settings
from ltipn.database import get_db
from ltipn.models.audit import AuditLog
from ltipn.models.user import User
from ltipn.rate_limit import client_ip, limiter
from ltipn.schemas.auth import LoginRequest, RefreshRequest, TokenResponse
from ltipn.schemas.user import UserMe
from ltipn.utils.auth import create_access_token, create_refresh_token, decode_token, verify_password

router = APIRouter()


def _auth_log(action: str, entity_id: int, username: str, changes: dict) -> AuditLog:
    return AuditLog(
        entity_type="auth",
        entity_id=entity_id,
        action=action,
        changes=json.dumps(changes),
        user=username,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


def _tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id, user.role.value),
        refresh_token=create_refresh_token(user.id, user.role.value),
    )


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Connexion par identifiants / Login with credentials."""
    result = await db.execute(select(User).where(User.username == data.username))
    user = result.scalar_one_or_none()
    ip = client_ip(request)

    if user is None or not verify_password(data.password, user.hashed_password):
        # Journal de tentative échouée / Log failed login attempt
        db.add(_auth_log("LOGIN_FAILED", 0, data.username, {"username": data.username, "ip": ip}))
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.is_active:
        db.add(_auth_log("LOGIN_DISABLED", user.id, user.username, {"ip": ip}))
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account disabled")

    # Journal de connexion réussie / Log successful login
    db.add(_auth_log("LOGIN", user.id, user.username, {"ip": ip}))
    return _tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Rafraîchir les tokens / Refresh tokens."""
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user_id = int(payload["sub"])
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return _tokens(user)


@router.get("/me", response_model=UserMe)
async def me(user: User = Depends(get_current_user)):
    """Profil de l'utilisateur connecté / Current user profile."""
    return user
