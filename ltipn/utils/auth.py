"""
Utilitaires d'authentification / Authentication utilities.
Hashing de mots de passe et gestion des tokens JWT.
Password hashing and JWT token management.
"""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from ltipn.config import settings


def hash_password(password: str) -> str:
    """Hasher un mot de passe (bcrypt, sel inclus) / Hash a password (bcrypt, salted)."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Vérifier un mot de passe / Verify a password."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Hash illisible (compte importé) / Unreadable hash (imported account)
        return False


def _create_token(user_id: int, role: str, token_type: str, expires: timedelta) -> str:
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: int, role: str) -> str:
    """Créer un access token JWT / Create a JWT access token."""
    return _create_token(user_id, role, "access", timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: int, role: str) -> str:
    """Créer un refresh token JWT / Create a JWT refresh token."""
    return _create_token(user_id, role, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> dict | None:
    """Décoder un token JWT / Decode a JWT token. Returns None if invalid."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
