"""
Dépendances d'authentification et d'autorisation / Authentication and authorization dependencies.
Injectées dans les routes via Depends().
"""

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.database import get_db
from ltipn.models.user import User, UserRole
from ltipn.services.identity import Principal
from ltipn.services.notifications import NotificationOutbox, deliver
from ltipn.utils.auth import decode_token

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extraire et valider l'utilisateur depuis le JWT / Extract and validate user from JWT."""
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user_id = int(payload["sub"])
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return user


async def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    """Contexte d'identité explicite / Explicit identity context."""
    return Principal(user_id=user.id, username=user.username, role=user.role, society_id=user.society_id)


def require_roles(*roles: UserRole):
    """Factory de dépendance qui vérifie le rôle / Dependency factory that checks the role."""

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role in roles:
            return principal
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role required: {', '.join(r.value for r in roles)}",
        )

    return _check


def get_outbox(background_tasks: BackgroundTasks) -> NotificationOutbox:
    """Boîte d'envoi de la requête / Per-request outbox.

    Envoyée par BackgroundTasks après la réponse. Les routes qui notifient
    valident la transaction avant de répondre (voir `commit_before_delivery`).
    Delivered by BackgroundTasks after the response. Notifying routes commit
    the transaction before responding (see `commit_before_delivery`).
    """
    outbox = NotificationOutbox()
    background_tasks.add_task(deliver, outbox)
    return outbox


async def commit_before_delivery(db: AsyncSession, result):
    """Valider avant l'envoi des notifications / Commit before notifications go out.

    La fermeture de get_db peut s'exécuter après les BackgroundTasks ; un échec
    du commit ici annule la réponse et donc l'envoi.
    get_db teardown may run after BackgroundTasks; a failed commit here aborts
    the response and therefore the delivery.
    """
    await db.commit()
    return result
