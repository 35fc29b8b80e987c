"""Routes Réservations / Booking API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import commit_before_delivery, get_current_principal, get_outbox, require_roles
from ltipn.database import get_db
from ltipn.models.booking import Booking, BookingStatus
from ltipn.schemas.booking import (
    BookingBulkEdit,
    BookingCreate,
    BookingDetail,
    BookingRead,
    BookingUpdate,
    TemporisationRead,
    TemporisationResponseInput,
    TemporiseInput,
)
from ltipn.schemas.voyage import BookingVoyages, VoyageCreate, VoyageRead
from ltipn.services.booking_service import BookingService
from ltipn.services.identity import BOOKING_CREATORS, VALIDATORS, Principal
from ltipn.services.notifications import NotificationOutbox
from ltipn.services.voyage_service import VoyageService

router = APIRouter()


def _detail(booking: Booking) -> BookingDetail:
    """Réservation + temporisation active / Booking + active temporisation."""
    detail = BookingDetail.model_validate(booking)
    active = BookingService.active_temporisation(booking)
    if active is not None:
        detail.active_temporisation = TemporisationRead.model_validate(active)
    return detail


@router.get("/", response_model=list[BookingRead])
async def list_bookings(
    status: BookingStatus | None = None,
    society_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Liste des réservations (agent : les siennes) / List bookings (agent: its own)."""
    return await BookingService(db).list_bookings(principal, status=status, society_id=society_id)


@router.post("/", response_model=BookingDetail, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
    principal: Principal = Depends(require_roles(*BOOKING_CREATORS)),
):
    """Créer une réservation / Create a booking."""
    booking = await BookingService(db, outbox).create(data, principal)
    return await commit_before_delivery(db, _detail(booking))


@router.post("/temporisations/{temporisation_id}/respond", response_model=BookingDetail)
async def respond_to_temporisation(
    temporisation_id: int,
    data: TemporisationResponseInput,
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
    principal: Principal = Depends(get_current_principal),
):
    """Réponse du créateur à une temporisation / Creator response to a temporisation."""
    booking = await BookingService(db, outbox).respond(temporisation_id, data, principal)
    return await commit_before_delivery(db, _detail(booking))


@router.get("/{booking_id}", response_model=BookingDetail)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _detail(await BookingService(db).get(booking_id, principal))


@router.put("/{booking_id}", response_model=BookingDetail)
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Modifier une réservation Pending / Edit a Pending booking."""
    return _detail(await BookingService(db).edit(booking_id, data, principal))


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await BookingService(db).delete(booking_id, principal)


@router.post("/{booking_id}/validate", response_model=BookingDetail)
async def validate_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Valider (Pending -> Validated) / Validate (Pending -> Validated)."""
    booking = await BookingService(db, outbox).validate(booking_id, principal)
    return await commit_before_delivery(db, _detail(booking))


@router.post("/{booking_id}/temporise", response_model=BookingDetail)
async def temporise_booking(
    booking_id: int,
    data: TemporiseInput,
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Temporiser (Pending -> Temporised) / Temporise (Pending -> Temporised)."""
    booking = await BookingService(db, outbox).temporise(booking_id, data, principal)
    return await commit_before_delivery(db, _detail(booking))


@router.post("/{booking_id}/release", response_model=BookingDetail)
async def release_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Lever la temporisation (Temporised -> Pending) / Release (Temporised -> Pending)."""
    return _detail(await BookingService(db).release_temporisation(booking_id, principal))


@router.put("/{booking_id}/bulk-edit", response_model=BookingDetail)
async def bulk_edit_booking(
    booking_id: int,
    data: BookingBulkEdit,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Super édition (Admin) / Super edit (Admin)."""
    return _detail(await BookingService(db).bulk_edit(booking_id, data, principal))


@router.get("/{booking_id}/temporisations", response_model=list[TemporisationRead])
async def list_temporisations(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Historique des temporisations / Temporisation history."""
    return await BookingService(db).list_temporisations(booking_id, principal)


# --- Voyages de la réservation / Booking voyages ---

@router.get("/{booking_id}/voyages", response_model=BookingVoyages)
async def list_booking_voyages(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Écran d'affectation des voyages / Voyage assignment view."""
    plan = await VoyageService(db).list_voyages(booking_id, principal)
    return BookingVoyages(
        booking_id=plan.booking.id,
        booking_reference=plan.booking.booking_reference,
        nbr_ltc=plan.booking.nbr_ltc,
        remaining_voyages=plan.remaining_voyages,
        can_add_voyage=plan.can_add_voyage,
        voyages=[VoyageRead.model_validate(v) for v in plan.voyages],
    )


@router.post("/{booking_id}/voyages", response_model=VoyageRead, status_code=status.HTTP_201_CREATED)
async def create_voyage(
    booking_id: int,
    data: VoyageCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Ajouter un voyage (plafond Nbr_LTC) / Add a voyage (Nbr_LTC ceiling)."""
    return await VoyageService(db).create_voyage(booking_id, data, principal)
