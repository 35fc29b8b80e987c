"""
Moteur de cycle de vie des voyages / Voyage lifecycle engine.

Planned --depart--> InProgress --arrivee retour--> Completed.
La reception et le depart retour sont des etapes de saisie dans InProgress,
chacune conditionnee par l'etape precedente.
Reception and return departure are recording steps within InProgress,
each gated by the previous step's data.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.config import Settings, settings as default_settings
from ltipn.models.booking import Booking, BookingStatus
from ltipn.models.society import Society
from ltipn.models.user import UserRole
from ltipn.models.voyage import DepartureType, Voyage, VoyageStatus
from ltipn.schemas.voyage import (
    DepartInput,
    PricesInput,
    ReceptionInput,
    ReturnArrivalInput,
    ReturnDepartureInput,
    VoyageCreate,
    VoyageUpdate,
)
from ltipn.services.audit import log_audit
from ltipn.services.errors import Conflict, InvalidState, NotFound, QuotaExceeded, ValidationError
from ltipn.services.fleet_factory import check_truck_slot, resolve_truck_slot
from ltipn.services.identity import VALIDATORS, Principal

logger = logging.getLogger(__name__)

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3,10}$")


@dataclass
class VoyagePlan:
    """Voyages d'une reservation et places restantes / A booking's voyages and remaining slots."""
    booking: Booking
    voyages: list[Voyage]

    @property
    def remaining_voyages(self) -> int:
        return max(self.booking.nbr_ltc - len(self.voyages), 0)

    @property
    def can_add_voyage(self) -> bool:
        return self.booking.status == BookingStatus.VALIDATED and self.remaining_voyages > 0


def is_earlier(day: date, at: time | None, ref_day: date, ref_at: time | None) -> bool:
    """Ordre chronologique / Chronological order.

    Compare les dates ; a date egale, compare les heures si les deux sont saisies.
    Compares dates; on the same date, compares times when both are recorded.
    """
    if day != ref_day:
        return day < ref_day
    return at is not None and ref_at is not None and at < ref_at


class VoyageService:
    """Operations sur les voyages / Voyage operations."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        self.db = db
        self.config = config or default_settings

    # --- Chargement / Loading ---

    async def _load(self, voyage_id: int, lock: bool = False) -> Voyage:
        query = select(Voyage).where(Voyage.id == voyage_id).execution_options(populate_existing=True)
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        voyage = result.scalar_one_or_none()
        if voyage is None:
            raise NotFound("Voyage not found")
        return voyage

    async def _load_booking(self, booking_id: int) -> Booking:
        result = await self.db.execute(
            select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    async def _load_step(self, voyage_id: int, principal: Principal) -> tuple[Voyage, Booking]:
        """Voyage verrouille et sa reservation validee / Locked voyage and its validated booking."""
        principal.require_role(*VALIDATORS)
        voyage = await self._load(voyage_id, lock=True)
        booking = await self._load_booking(voyage.booking_id)
        if booking.status != BookingStatus.VALIDATED:
            raise InvalidState(f"Booking {booking.booking_reference} is not validated")
        return voyage, booking

    @staticmethod
    def _require_status(voyage: Voyage, status: VoyageStatus, action: str) -> None:
        if voyage.status != status:
            raise InvalidState(
                f"Only {status.value} voyages can {action} (voyage #{voyage.voyage_number} is {voyage.status.value})"
            )

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise Conflict("The voyage was changed concurrently, reload and retry") from exc

    def _check_city(self, errors: dict[str, str], field: str, city: str | None) -> str | None:
        city = (city or "").strip()
        if not city:
            errors[field] = "The city is required"
        elif city not in self.config.DEPARTURE_CITIES:
            errors[field] = f"The city must be one of: {', '.join(self.config.DEPARTURE_CITIES)}"
        return city or None

    async def _active_society(self, society_id: int, field: str) -> Society:
        society = await self.db.get(Society, society_id)
        if society is None:
            raise NotFound("Society not found", field=field)
        if not society.is_active:
            raise ValidationError(f"Society {society.society_name} is inactive", field=field)
        return society

    # --- Lecture / Read ---

    async def get(self, voyage_id: int, principal: Principal) -> Voyage:
        principal.require_role(*VALIDATORS)
        return await self._load(voyage_id)

    async def list_voyages(self, booking_id: int, principal: Principal) -> VoyagePlan:
        """Ecran d'affectation des voyages / Voyage assignment view."""
        principal.require_role(*VALIDATORS)
        booking = await self._load_booking(booking_id)
        result = await self.db.execute(
            select(Voyage).where(Voyage.booking_id == booking.id).order_by(Voyage.voyage_number)
        )
        return VoyagePlan(booking=booking, voyages=list(result.scalars().all()))

    # --- Creation ---

    async def create_voyage(self, booking_id: int, data: VoyageCreate, principal: Principal) -> Voyage:
        """Ajouter un voyage dans la limite de Nbr_LTC / Add a voyage within the Nbr_LTC ceiling."""
        principal.require_role(*VALIDATORS)
        booking = await self._load_booking(booking_id)
        if booking.status != BookingStatus.VALIDATED:
            raise InvalidState(
                f"Voyages can only be added to Validated bookings (current status: {booking.status.value})"
            )
        numero_tc = data.numero_tc.strip()
        if not numero_tc:
            raise ValidationError("TC number is required", field="numero_tc")

        # Reserver une place : UPDATE conditionnel, 0 ligne = plafond atteint
        # Reserve a slot: conditional UPDATE, 0 rows = ceiling reached
        result = await self.db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == BookingStatus.VALIDATED,
                Booking.voyage_count < Booking.nbr_ltc,
            )
            .values(voyage_count=Booking.voyage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise QuotaExceeded(
                f"Booking {booking.booking_reference} already has its {booking.nbr_ltc} voyage(s)",
                field="numero_tc",
            )

        next_number = await self.db.scalar(
            select(func.coalesce(func.max(Voyage.voyage_number), 0) + 1).where(Voyage.booking_id == booking.id)
        )
        voyage = Voyage(
            booking_id=booking.id,
            voyage_number=next_number,
            numero_tc=numero_tc,
            society_principale_id=booking.society_id,
            currency=self.config.DEFAULT_CURRENCY,
            status=VoyageStatus.PLANNED,
        )
        self.db.add(voyage)
        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "CREATE", principal, {
            "booking_id": booking.id, "voyage_number": next_number, "numero_tc": numero_tc,
        })
        logger.info("Voyage #%s created for booking %s", next_number, booking.booking_reference)
        return await self._load(voyage.id)

    # --- Etapes / Steps ---

    async def depart(self, voyage_id: int, data: DepartInput, principal: Principal) -> Voyage:
        """Premier depart vers le hub / Outbound departure to the hub. Planned -> InProgress."""
        voyage, booking = await self._load_step(voyage_id, principal)
        self._require_status(voyage, VoyageStatus.PLANNED, "depart")

        errors: dict[str, str] = {}
        society_secondaire_id = data.society_secondaire_id
        type_emballage = (data.type_emballage or "").strip() or None
        if data.departure_type is None:
            errors["departure_type"] = "The departure type is required"
        elif data.departure_type == DepartureType.EMPTY:
            # Depart a vide : pas de societe secondaire ni d'emballage / Empty: no secondary society nor packaging
            society_secondaire_id = None
            type_emballage = None
        elif society_secondaire_id is None:
            errors["society_secondaire_id"] = "A secondary society is required for an Emballage departure"
        city = self._check_city(errors, "departure_city", data.departure_city)
        if data.departure_date is None:
            errors["departure_date"] = "The departure date is required"
        errors.update(check_truck_slot(data.truck, "camion_first"))
        if errors:
            raise ValidationError.from_errors(errors)

        if society_secondaire_id is not None:
            await self._active_society(society_secondaire_id, "society_secondaire_id")
        camion = await resolve_truck_slot(self.db, data.truck, "camion_first", voyage_id=voyage.id)

        voyage.departure_type = data.departure_type
        voyage.society_secondaire_id = society_secondaire_id
        voyage.type_emballage = type_emballage
        voyage.departure_city = city
        voyage.departure_date = data.departure_date
        voyage.departure_time = data.departure_time
        voyage.camion_first_id = camion.id
        voyage.status = VoyageStatus.IN_PROGRESS
        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "DEPART", principal, {
            "departure_type": data.departure_type.value,
            "departure_city": city,
            "departure_date": data.departure_date,
            "camion_first": camion.camion_matricule,
        })
        logger.info(
            "Voyage #%s of booking %s departed from %s with truck %s",
            voyage.voyage_number, booking.booking_reference, city, camion.camion_matricule,
        )
        return await self._load(voyage.id)

    async def record_reception(self, voyage_id: int, data: ReceptionInput, principal: Principal) -> Voyage:
        """Reception au hub / Hub reception.

        Peut etre corrigee tant que le depart retour n'est pas saisi.
        Can be amended until the return departure is recorded.
        """
        voyage, booking = await self._load_step(voyage_id, principal)
        self._require_status(voyage, VoyageStatus.IN_PROGRESS, "record a reception")
        if voyage.departure_date is None:
            raise InvalidState("The departure must be recorded before the reception")
        if voyage.return_departure_date is not None:
            raise InvalidState("The return departure is already recorded, the reception can no longer change")

        if data.reception_date is None:
            raise ValidationError("The reception date is required", field="reception_date")
        if is_earlier(data.reception_date, data.reception_time, voyage.departure_date, voyage.departure_time):
            raise ValidationError("The reception can not be earlier than the departure", field="reception_date")

        voyage.reception_date = data.reception_date
        voyage.reception_time = data.reception_time
        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "RECEPTION", principal, {"reception_date": data.reception_date})
        logger.info(
            "Voyage #%s of booking %s received at %s",
            voyage.voyage_number, booking.booking_reference, self.config.HUB_CITY,
        )
        return await self._load(voyage.id)

    async def record_return_departure(
        self, voyage_id: int, data: ReturnDepartureInput, principal: Principal
    ) -> Voyage:
        """Depart retour du hub / Return departure from the hub (amendable while InProgress)."""
        voyage, booking = await self._load_step(voyage_id, principal)
        self._require_status(voyage, VoyageStatus.IN_PROGRESS, "record a return departure")
        if voyage.reception_date is None:
            raise InvalidState("The reception must be recorded before the return departure")

        errors: dict[str, str] = {}
        if data.return_departure_date is None:
            errors["return_departure_date"] = "The return departure date is required"
        elif is_earlier(
            data.return_departure_date, data.return_departure_time, voyage.reception_date, voyage.reception_time
        ):
            errors["return_departure_date"] = "The return departure can not be earlier than the reception"
        city = self._check_city(errors, "return_arrival_city", data.return_arrival_city)
        errors.update(check_truck_slot(data.truck, "camion_second"))
        if errors:
            raise ValidationError.from_errors(errors)

        camion = await resolve_truck_slot(self.db, data.truck, "camion_second", voyage_id=voyage.id)
        voyage.return_departure_date = data.return_departure_date
        voyage.return_departure_time = data.return_departure_time
        voyage.return_arrival_city = city
        voyage.camion_second_id = camion.id
        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "RETURN_DEPART", principal, {
            "return_departure_date": data.return_departure_date,
            "return_arrival_city": city,
            "camion_second": camion.camion_matricule,
        })
        logger.info(
            "Voyage #%s of booking %s left %s for %s with truck %s",
            voyage.voyage_number, booking.booking_reference, self.config.HUB_CITY, city, camion.camion_matricule,
        )
        return await self._load(voyage.id)

    async def record_return_arrival(self, voyage_id: int, data: ReturnArrivalInput, principal: Principal) -> Voyage:
        """Arrivee retour / Return arrival. InProgress -> Completed."""
        voyage, booking = await self._load_step(voyage_id, principal)
        self._require_status(voyage, VoyageStatus.IN_PROGRESS, "record a return arrival")
        if voyage.return_departure_date is None:
            raise InvalidState("The return departure must be recorded before the return arrival")

        if data.return_arrival_date is None:
            raise ValidationError("The return arrival date is required", field="return_arrival_date")
        if is_earlier(
            data.return_arrival_date, data.return_arrival_time,
            voyage.return_departure_date, voyage.return_departure_time,
        ):
            raise ValidationError(
                "The return arrival can not be earlier than the return departure", field="return_arrival_date"
            )

        voyage.return_arrival_date = data.return_arrival_date
        voyage.return_arrival_time = data.return_arrival_time
        voyage.status = VoyageStatus.COMPLETED
        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "RETURN_ARRIVAL", principal, {
            "return_arrival_date": data.return_arrival_date,
        })
        logger.info("Voyage #%s of booking %s completed", voyage.voyage_number, booking.booking_reference)
        return await self._load(voyage.id)

    # --- Prix / Prices ---

    async def assign_prices(self, voyage_id: int, data: PricesInput, principal: Principal) -> Voyage:
        """Saisie des prix, quel que soit le statut / Price entry, at any voyage status."""
        voyage, _booking = await self._load_step(voyage_id, principal)

        errors: dict[str, str] = {}
        if data.price_principale is not None and data.price_principale < Decimal("0"):
            errors["price_principale"] = "The price can not be negative"
        if data.price_secondaire is not None:
            if voyage.society_secondaire_id is None:
                errors["price_secondaire"] = "This voyage has no secondary society"
            elif data.price_secondaire < Decimal("0"):
                errors["price_secondaire"] = "The price can not be negative"
        currency = (data.currency or "").strip().upper() or self.config.DEFAULT_CURRENCY
        if not CURRENCY_PATTERN.match(currency):
            errors["currency"] = "The currency must be a 3 to 10 letter code"
        if errors:
            raise ValidationError.from_errors(errors)

        voyage.price_principale = data.price_principale
        voyage.price_secondaire = data.price_secondaire
        voyage.currency = currency
        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "PRICES", principal, {
            "price_principale": data.price_principale,
            "price_secondaire": data.price_secondaire,
            "currency": currency,
        })
        logger.info(
            "Prices assigned to voyage %s: principal=%s secondary=%s %s",
            voyage.id, data.price_principale, data.price_secondaire, currency,
        )
        return await self._load(voyage.id)

    # --- Administration ---

    async def edit(self, voyage_id: int, data: VoyageUpdate, principal: Principal) -> Voyage:
        """Modifier TC / numero d'un voyage Planned / Edit TC / number of a Planned voyage."""
        principal.require_role(UserRole.ADMIN)
        voyage = await self._load(voyage_id, lock=True)
        self._require_status(voyage, VoyageStatus.PLANNED, "be edited")

        fields = data.model_dump(exclude_unset=True)
        changes = {}
        if "numero_tc" in fields:
            numero_tc = (fields["numero_tc"] or "").strip()
            if not numero_tc:
                raise ValidationError("TC number is required", field="numero_tc")
            if numero_tc != voyage.numero_tc:
                changes["numero_tc"] = {"old": voyage.numero_tc, "new": numero_tc}
                voyage.numero_tc = numero_tc
        if "voyage_number" in fields:
            number = fields["voyage_number"]
            if number is None or number < 1:
                raise ValidationError("The voyage number must be a positive integer", field="voyage_number")
            if number != voyage.voyage_number:
                taken = await self.db.scalar(
                    select(Voyage.id).where(
                        Voyage.booking_id == voyage.booking_id,
                        Voyage.voyage_number == number,
                        Voyage.id != voyage.id,
                    )
                )
                if taken is not None:
                    raise Conflict(f"Voyage number {number} is already used in this booking", field="voyage_number")
                changes["voyage_number"] = {"old": voyage.voyage_number, "new": number}
                voyage.voyage_number = number

        await self._flush()
        log_audit(self.db, "voyage", voyage.id, "UPDATE", principal, changes)
        return await self._load(voyage.id)

    async def delete(self, voyage_id: int, principal: Principal) -> None:
        """Supprimer un voyage Planned et liberer sa place / Delete a Planned voyage and free its slot."""
        principal.require_role(UserRole.ADMIN)
        voyage = await self._load(voyage_id, lock=True)
        self._require_status(voyage, VoyageStatus.PLANNED, "be deleted")

        booking_id = voyage.booking_id
        log_audit(self.db, "voyage", voyage.id, "DELETE", principal, {
            "booking_id": booking_id, "voyage_number": voyage.voyage_number,
        })
        await self.db.delete(voyage)
        await self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.voyage_count > 0)
            .values(voyage_count=Booking.voyage_count - 1)
            .execution_options(synchronize_session=False)
        )
        await self._flush()
        logger.info("Voyage %s of booking %s deleted", voyage_id, booking_id)
