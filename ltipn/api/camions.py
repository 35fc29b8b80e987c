"""Routes Camions / Truck API routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import get_current_principal, require_roles
from ltipn.database import get_db
from ltipn.models.camion import Camion
from ltipn.models.user import UserRole
from ltipn.schemas.camion import CamionCreate, CamionRead, CamionSummary, CamionUpdate
from ltipn.services.identity import Principal
from ltipn.services.master_data import MasterDataService

router = APIRouter()


@router.get("/", response_model=list[CamionRead])
async def list_camions(
    society_transp_id: int | None = None,
    is_active: bool | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    query = select(Camion).order_by(Camion.camion_matricule)
    if society_transp_id is not None:
        query = query.where(Camion.society_transp_id == society_transp_id)
    if is_active is not None:
        query = query.where(Camion.is_active.is_(is_active))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/summary", response_model=list[CamionSummary])
async def camions_summary(
    society_transp_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Camions actifs, par transporteur / Active trucks, by carrier."""
    query = select(Camion).where(Camion.is_active.is_(True)).order_by(Camion.camion_matricule)
    if society_transp_id is not None:
        query = query.where(Camion.society_transp_id == society_transp_id)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{camion_id}", response_model=CamionRead)
async def get_camion(
    camion_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    camion = await db.get(Camion, camion_id)
    if camion is None:
        raise HTTPException(status_code=404, detail="Truck not found")
    return camion


@router.post("/", response_model=CamionRead, status_code=status.HTTP_201_CREATED)
async def create_camion(
    data: CamionCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    return await MasterDataService(db).create_camion(data, principal)


@router.put("/{camion_id}", response_model=CamionRead)
async def update_camion(
    camion_id: int,
    data: CamionUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    return await MasterDataService(db).update_camion(camion_id, data, principal)


@router.delete("/{camion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_camion(
    camion_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    await MasterDataService(db).delete_camion(camion_id, principal)
