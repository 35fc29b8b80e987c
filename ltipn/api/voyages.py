"""Routes Voyages / Voyage API routes.
Réservées à Admin et Trans_Respo ; édition et suppression : Admin.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import require_roles
from ltipn.database import get_db
from ltipn.models.user import UserRole
from ltipn.schemas.voyage import (
    DepartInput,
    PricesInput,
    ReceptionInput,
    ReturnArrivalInput,
    ReturnDepartureInput,
    VoyageRead,
    VoyageUpdate,
)
from ltipn.services.identity import VALIDATORS, Principal
from ltipn.services.voyage_service import VoyageService

router = APIRouter()


@router.get("/{voyage_id}", response_model=VoyageRead)
async def get_voyage(
    voyage_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    return await VoyageService(db).get(voyage_id, principal)


@router.put("/{voyage_id}", response_model=VoyageRead)
async def update_voyage(
    voyage_id: int,
    data: VoyageUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Modifier TC / numéro (Planned) / Edit TC / number (Planned)."""
    return await VoyageService(db).edit(voyage_id, data, principal)


@router.delete("/{voyage_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_voyage(
    voyage_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Supprimer un voyage Planned / Delete a Planned voyage."""
    await VoyageService(db).delete(voyage_id, principal)


@router.post("/{voyage_id}/depart", response_model=VoyageRead)
async def depart_voyage(
    voyage_id: int,
    data: DepartInput,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Premier départ (Planned -> InProgress) / First departure (Planned -> InProgress)."""
    return await VoyageService(db).depart(voyage_id, data, principal)


@router.post("/{voyage_id}/reception", response_model=VoyageRead)
async def record_reception(
    voyage_id: int,
    data: ReceptionInput,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Réception au hub / Hub reception."""
    return await VoyageService(db).record_reception(voyage_id, data, principal)


@router.post("/{voyage_id}/return-departure", response_model=VoyageRead)
async def record_return_departure(
    voyage_id: int,
    data: ReturnDepartureInput,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Départ retour / Return departure."""
    return await VoyageService(db).record_return_departure(voyage_id, data, principal)


@router.post("/{voyage_id}/return-arrival", response_model=VoyageRead)
async def record_return_arrival(
    voyage_id: int,
    data: ReturnArrivalInput,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Arrivée retour (InProgress -> Completed) / Return arrival (InProgress -> Completed)."""
    return await VoyageService(db).record_return_arrival(voyage_id, data, principal)


@router.put("/{voyage_id}/prices", response_model=VoyageRead)
async def assign_prices(
    voyage_id: int,
    data: PricesInput,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Saisie des prix / Price entry."""
    return await VoyageService(db).assign_prices(voyage_id, data, principal)
