"""Routes Transporteurs / Carrier (SocietyTransp) API routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import get_current_principal, require_roles
from ltipn.database import get_db
from ltipn.models.society import SocietyTransp
from ltipn.models.user import UserRole
from ltipn.schemas.society import SocietyTranspCreate, SocietyTranspRead, SocietyTranspUpdate
from ltipn.services.identity import Principal
from ltipn.services.master_data import MasterDataService

router = APIRouter()


@router.get("/", response_model=list[SocietyTranspRead])
async def list_carriers(
    is_active: bool | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    query = select(SocietyTransp).order_by(SocietyTransp.society_transp_name)
    if is_active is not None:
        query = query.where(SocietyTransp.is_active.is_(is_active))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/summary", response_model=list[SocietyTranspRead])
async def carriers_summary(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Transporteurs actifs / Active carriers."""
    result = await db.execute(
        select(SocietyTransp).where(SocietyTransp.is_active.is_(True)).order_by(SocietyTransp.society_transp_name)
    )
    return result.scalars().all()


@router.get("/{carrier_id}", response_model=SocietyTranspRead)
async def get_carrier(
    carrier_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    carrier = await db.get(SocietyTransp, carrier_id)
    if carrier is None:
        raise HTTPException(status_code=404, detail="Carrier not found")
    return carrier


@router.post("/", response_model=SocietyTranspRead, status_code=status.HTTP_201_CREATED)
async def create_carrier(
    data: SocietyTranspCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    return await MasterDataService(db).create_carrier(data, principal)


@router.put("/{carrier_id}", response_model=SocietyTranspRead)
async def update_carrier(
    carrier_id: int,
    data: SocietyTranspUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    return await MasterDataService(db).update_carrier(carrier_id, data, principal)


@router.delete("/{carrier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_carrier(
    carrier_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    await MasterDataService(db).delete_carrier(carrier_id, principal)
