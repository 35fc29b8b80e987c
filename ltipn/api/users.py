"""
CRUD Utilisateurs / User CRUD routes.
Réservé aux administrateurs / Administrators only.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import require_roles
from ltipn.database import get_db
from ltipn.models.user import User, UserRole
from ltipn.schemas.user import UserCreate, UserRead, UserUpdate
from ltipn.services.identity import Principal
from ltipn.services.master_data import MasterDataService

router = APIRouter()


@router.get("/", response_model=list[UserRead])
async def list_users(
    role: UserRole | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Lister les utilisateurs / List users."""
    query = select(User).order_by(User.username)
    if role is not None:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Obtenir un utilisateur / Get a user."""
    target = await db.get(User, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    return target


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Créer un utilisateur / Create a user."""
    return await MasterDataService(db).create_user(data, principal)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Modifier un utilisateur / Update a user."""
    return await MasterDataService(db).update_user(user_id, data, principal)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Supprimer un utilisateur / Delete a user."""
    await MasterDataService(db).delete_user(user_id, principal)
