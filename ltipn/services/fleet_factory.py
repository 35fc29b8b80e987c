"""
Fabrique de flotte / Fleet factory.

Resolution d'un emplacement camion d'un voyage : camion existant du parc, ou
camion externe saisi a la volee (transporteur cree au besoin).
Resolves a voyage truck slot: an existing fleet truck, or an external truck
entered on the fly (carrier created when missing).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.models.camion import EXTERNAL_CAMION_TYPE, Camion
from ltipn.models.society import SocietyTransp
from ltipn.models.voyage import Voyage, VoyageStatus
from ltipn.schemas.voyage import ExternalTruckInput, TruckSlotInput
from ltipn.services.errors import Conflict, NotFound, ValidationError

logger = logging.getLogger(__name__)

# Valeur par defaut des champs inconnus d'un transporteur externe / Default for unknown external carrier fields
_UNKNOWN = "N/A"

# Champs obligatoires d'un camion externe / Required external truck fields
_EXTERNAL_FIELDS = {
    "society_transp_name": "Carrier name",
    "camion_matricule": "Matricule",
    "driver_name": "Driver name",
    "driver_phone": "Driver phone",
}


async def get_or_create_carrier(db: AsyncSession, name: str) -> SocietyTransp:
    """Retrouver un transporteur par nom, ou le creer / Find a carrier by name, or create it."""
    name = name.strip()
    result = await db.execute(select(SocietyTransp).where(SocietyTransp.society_transp_name == name))
    carrier = result.scalar_one_or_none()
    if carrier is not None:
        return carrier

    carrier = SocietyTransp(
        society_transp_name=name,
        address=_UNKNOWN,
        city=_UNKNOWN,
        phone=_UNKNOWN,
        email=_UNKNOWN,
        is_active=True,
    )
    db.add(carrier)
    await db.flush()
    logger.info("External carrier %s created (id=%s)", name, carrier.id)
    return carrier


async def create_truck(
    db: AsyncSession,
    matricule: str,
    carrier: SocietyTransp,
    driver_name: str | None = None,
    driver_phone: str | None = None,
    camion_type: str = EXTERNAL_CAMION_TYPE,
) -> Camion:
    """Creer un camion rattache a un transporteur / Create a truck attached to a carrier."""
    matricule = matricule.strip()
    existing = await db.execute(select(Camion.id).where(Camion.camion_matricule == matricule))
    if existing.scalar_one_or_none() is not None:
        raise Conflict(
            f"Truck {matricule} is already registered, select it from the fleet instead",
            field="camion_matricule",
        )
    camion = Camion(
        camion_matricule=matricule,
        driver_name=driver_name,
        driver_phone=driver_phone,
        camion_type=camion_type,
        society_transp_id=carrier.id,
        is_active=True,
    )
    db.add(camion)
    await db.flush()
    logger.info("Truck %s created for carrier %s", matricule, carrier.society_transp_name)
    return camion


async def truck_on_the_road(db: AsyncSession, camion_id: int, exclude_voyage_id: int | None = None) -> Voyage | None:
    """Voyage en cours qui mobilise deja ce camion / In-progress voyage already holding this truck.

    Aller : camion du premier depart tant que la reception n'est pas faite.
    Retour : camion du second depart tant que le voyage n'est pas termine.
    Outbound: first-leg truck until reception. Return: second-leg truck until completion.
    """
    query = select(Voyage).where(
        Voyage.status == VoyageStatus.IN_PROGRESS,
        (
            (Voyage.camion_first_id == camion_id) & Voyage.reception_date.is_(None)
        ) | (Voyage.camion_second_id == camion_id),
    )
    if exclude_voyage_id is not None:
        query = query.where(Voyage.id != exclude_voyage_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


def check_truck_slot(slot: TruckSlotInput, field: str) -> dict[str, str]:
    """Erreurs de saisie d'un emplacement camion / Input errors of a truck slot (empty when valid)."""
    if slot.external is not None:
        if slot.camion_id is not None:
            return {field: "Choose either a fleet truck or an external truck, not both"}
        return {
            f"{field}.{name}": f"{label} is required for an external truck"
            for name, label in _EXTERNAL_FIELDS.items()
            if not (getattr(slot.external, name) or "").strip()
        }
    if slot.camion_id is None:
        return {field: "A truck is required for this leg"}
    return {}


async def resolve_truck_slot(
    db: AsyncSession,
    slot: TruckSlotInput,
    field: str,
    voyage_id: int | None = None,
) -> Camion:
    """Resoudre un emplacement camion / Resolve a truck slot to a Camion row."""
    errors = check_truck_slot(slot, field)
    if errors:
        raise ValidationError.from_errors(errors)
    if slot.external is not None:
        return await _create_external(db, slot.external)

    # Verrou ligne : deux departs simultanes ne prennent pas le meme camion / Row lock against concurrent departures
    camion = await db.get(Camion, slot.camion_id, with_for_update=True)
    if camion is None:
        raise NotFound("Truck not found", field=field)
    if not camion.is_active:
        raise ValidationError(f"Truck {camion.camion_matricule} is inactive", field=field)

    busy = await truck_on_the_road(db, camion.id, exclude_voyage_id=voyage_id)
    if busy is not None:
        raise ValidationError(
            f"Truck {camion.camion_matricule} is still on the road for voyage #{busy.voyage_number} "
            f"(booking {busy.booking_id})",
            field=field,
        )
    return camion


async def _create_external(db: AsyncSession, external: ExternalTruckInput) -> Camion:
    carrier = await get_or_create_carrier(db, external.society_transp_name)
    return await create_truck(
        db,
        matricule=external.camion_matricule,
        carrier=carrier,
        driver_name=external.driver_name,
        driver_phone=external.driver_phone,
    )
