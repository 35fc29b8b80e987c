"""Routes Sociétés clientes / Client society API routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import get_current_principal, require_roles
from ltipn.database import get_db
from ltipn.models.society import Society
from ltipn.models.user import UserRole
from ltipn.schemas.society import SocietyBrief, SocietyCreate, SocietyRead, SocietyUpdate
from ltipn.services.identity import Principal
from ltipn.services.master_data import MasterDataService

router = APIRouter()


@router.get("/", response_model=list[SocietyRead])
async def list_societies(
    is_active: bool | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    query = select(Society).order_by(Society.society_name)
    if is_active is not None:
        query = query.where(Society.is_active.is_(is_active))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/summary", response_model=list[SocietyBrief])
async def societies_summary(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Sociétés actives pour les listes de choix / Active societies for choice lists."""
    result = await db.execute(select(Society).where(Society.is_active.is_(True)).order_by(Society.society_name))
    return result.scalars().all()


@router.get("/{society_id}", response_model=SocietyRead)
async def get_society(
    society_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    society = await db.get(Society, society_id)
    if society is None:
        raise HTTPException(status_code=404, detail="Society not found")
    return society


@router.post("/", response_model=SocietyRead, status_code=status.HTTP_201_CREATED)
async def create_society(
    data: SocietyCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    return await MasterDataService(db).create_society(data, principal)


@router.put("/{society_id}", response_model=SocietyRead)
async def update_society(
    society_id: int,
    data: SocietyUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    return await MasterDataService(db).update_society(society_id, data, principal)


@router.delete("/{society_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_society(
    society_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Supprimer (refusé si référencée) / Delete (refused while referenced)."""
    await MasterDataService(db).delete_society(society_id, principal)
