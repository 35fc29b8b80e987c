"""
Moteur de cycle de vie des reservations / Booking lifecycle engine.

Pending <-> Temporised (via une temporisation), Pending -> Validated une seule fois.
Pending <-> Temporised (through a temporisation), Pending -> Validated exactly once.
"""

import logging
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ltipn.config import Settings, settings as default_settings
from ltipn.models.booking import Booking, BookingStatus, BookingTemporisation, CreatorResponse
from ltipn.models.society import Society
from ltipn.models.user import UserRole
from ltipn.models.voyage import Voyage, VoyageStatus
from ltipn.schemas.booking import (
    BookingBulkEdit,
    BookingCreate,
    BookingUpdate,
    TemporisationResponseInput,
    TemporiseInput,
)
from ltipn.services.audit import log_audit
from ltipn.services.errors import (
    AlreadyResponded,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from ltipn.services.identity import BOOKING_CREATORS, VALIDATORS, Principal
from ltipn.services.notifications import NotificationEvent, NotificationOutbox, Notifier
from ltipn.services.reference import next_booking_reference

logger = logging.getLogger(__name__)


class BookingService:
    """Operations sur les reservations / Booking operations."""

    def __init__(self, db: AsyncSession, notifier: Notifier | None = None, config: Settings | None = None):
        self.db = db
        self.notifier = notifier or NotificationOutbox()
        self.config = config or default_settings

    # --- Lecture / Read ---

    async def _load(self, booking_id: int, lock: bool = False) -> Booking:
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.temporisations).selectinload(BookingTemporisation.temporised_by))
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    @staticmethod
    def _check_visible(booking: Booking, principal: Principal) -> None:
        # Un agent ne voit que ses propres reservations / An agent only sees its own bookings
        if principal.role == UserRole.BOOKING_AGENT and booking.created_by_user_id != principal.user_id:
            raise Forbidden("You can only access bookings you created")

    @staticmethod
    def _check_owner(booking: Booking, principal: Principal) -> None:
        if principal.is_admin:
            return
        if principal.role == UserRole.BOOKING_AGENT and booking.created_by_user_id == principal.user_id:
            return
        raise Forbidden("Only an administrator or the booking creator can modify this booking")

    async def get(self, booking_id: int, principal: Principal) -> Booking:
        booking = await self._load(booking_id)
        self._check_visible(booking, principal)
        return booking

    async def list_bookings(
        self,
        principal: Principal,
        status: BookingStatus | None = None,
        society_id: int | None = None,
    ) -> list[Booking]:
        """Liste filtree selon le role / Role-scoped list."""
        query = select(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())
        if principal.role == UserRole.BOOKING_AGENT:
            query = query.where(Booking.created_by_user_id == principal.user_id)
        if status is not None:
            query = query.where(Booking.status == status)
        if society_id is not None:
            query = query.where(Booking.society_id == society_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_temporisations(self, booking_id: int, principal: Principal) -> list[BookingTemporisation]:
        """Historique des temporisations / Temporisation history."""
        booking = await self.get(booking_id, principal)
        return list(booking.temporisations)

    @staticmethod
    def active_temporisation(booking: Booking) -> BookingTemporisation | None:
        return next((t for t in booking.temporisations if t.is_active), None)

    # --- Creation ---

    async def create(self, data: BookingCreate, principal: Principal) -> Booking:
        """Creer une reservation en Pending / Create a Pending booking."""
        principal.require_role(*BOOKING_CREATORS)

        errors = self._check_fields(data.model_dump())
        society = await self.db.get(Society, data.society_id)
        if society is None:
            raise NotFound("Society not found", field="society_id")
        if not society.is_active:
            errors["society_id"] = f"Society {society.society_name} is inactive"
        if errors:
            raise ValidationError.from_errors(errors)

        booking = Booking(
            booking_reference=await next_booking_reference(self.db),
            numero_bk=data.numero_bk.strip(),
            society_id=society.id,
            type_voyage=data.type_voyage.strip(),
            type_contenaire=data.type_contenaire,
            nom_client=data.nom_client,
            nbr_ltc=data.nbr_ltc,
            notes=data.notes,
            status=BookingStatus.PENDING,
            created_by_user_id=principal.user_id,
        )
        self.db.add(booking)
        await self.db.flush()
        log_audit(self.db, "booking", booking.id, "CREATE", principal, {
            "booking_reference": booking.booking_reference, "nbr_ltc": booking.nbr_ltc,
        })

        booking = await self._load(booking.id)
        logger.info("Booking %s created by %s", booking.booking_reference, principal.username)
        self.notifier.notify(
            NotificationEvent.BOOKING_CREATED,
            [self.config.NOTIFICATION_EMAIL, booking.created_by.email],
            self._payload(booking),
        )
        return booking

    def _check_fields(self, fields: dict) -> dict[str, str]:
        """Regles de champ communes / Shared field rules (only keys present are checked)."""
        errors: dict[str, str] = {}
        if "numero_bk" in fields and not (fields["numero_bk"] or "").strip():
            errors["numero_bk"] = "Booking number is required"
        if "type_voyage" in fields and not (fields["type_voyage"] or "").strip():
            errors["type_voyage"] = "Voyage type is required"
        if "society_id" in fields and fields["society_id"] is None:
            errors["society_id"] = "Society is required"
        if "nbr_ltc" in fields:
            nbr_ltc = fields["nbr_ltc"]
            if nbr_ltc is None or not 1 <= nbr_ltc <= self.config.MAX_NBR_LTC:
                errors["nbr_ltc"] = f"Nbr_LTC must be between 1 and {self.config.MAX_NBR_LTC}"
        return errors

    # --- Validation ---

    async def validate(self, booking_id: int, principal: Principal) -> Booking:
        """Pending -> Validated, irreversible."""
        principal.require_role(*VALIDATORS)
        booking = await self._load(booking_id, lock=True)
        if booking.status != BookingStatus.PENDING:
            raise InvalidState(
                f"Only Pending bookings can be validated (current status: {booking.status.value})"
            )

        booking.status = BookingStatus.VALIDATED
        booking.validated_by_user_id = principal.user_id
        booking.validated_at = datetime.now()
        await self.db.flush()
        log_audit(self.db, "booking", booking.id, "VALIDATE", principal)

        booking = await self._load(booking.id)
        logger.info("Booking %s validated by %s", booking.booking_reference, principal.username)
        payload = self._payload(booking)
        payload["validated_by"] = booking.validated_by.full_name if booking.validated_by else principal.username
        self.notifier.notify(NotificationEvent.BOOKING_VALIDATED, [booking.created_by.email], payload)
        return booking

    # --- Temporisation ---

    async def temporise(self, booking_id: int, data: TemporiseInput, principal: Principal) -> Booking:
        """Reporter une reservation Pending / Defer a Pending booking."""
        principal.require_role(*VALIDATORS)
        booking = await self._load(booking_id, lock=True)
        if booking.status != BookingStatus.PENDING:
            raise InvalidState(
                f"Only Pending bookings can be temporised (current status: {booking.status.value})"
            )

        errors = {}
        if not data.reason_temporisation.strip():
            errors["reason_temporisation"] = "A reason is required"
        if data.estimated_validation_date <= date.today():
            errors["estimated_validation_date"] = "The estimated validation date must be in the future"
        if errors:
            raise ValidationError.from_errors(errors)

        # Desactiver les temporisations precedentes / Deactivate previous temporisations
        await self.db.execute(
            update(BookingTemporisation)
            .where(BookingTemporisation.booking_id == booking.id, BookingTemporisation.is_active.is_(True))
            .values(is_active=False)
        )
        temporisation = BookingTemporisation(
            booking_id=booking.id,
            temporised_by_user_id=principal.user_id,
            temporised_at=datetime.now(),
            reason_temporisation=data.reason_temporisation.strip(),
            estimated_validation_date=data.estimated_validation_date,
            creator_response=CreatorResponse.PENDING,
            is_active=True,
        )
        self.db.add(temporisation)
        booking.status = BookingStatus.TEMPORISED
        await self.db.flush()
        log_audit(self.db, "booking", booking.id, "TEMPORISE", principal, {
            "temporisation_id": temporisation.id,
            "estimated_validation_date": data.estimated_validation_date,
        })

        booking = await self._load(booking.id)
        active = self.active_temporisation(booking)
        logger.info(
            "Booking %s temporised until %s by %s",
            booking.booking_reference, data.estimated_validation_date, principal.username,
        )
        payload = self._payload(booking)
        payload.update({
            "temporised_by": active.temporised_by.full_name,
            "reason": active.reason_temporisation,
            "estimated_validation_date": active.estimated_validation_date.isoformat(),
        })
        self.notifier.notify(NotificationEvent.BOOKING_TEMPORISED, [booking.created_by.email], payload)
        return booking

    async def respond(
        self,
        temporisation_id: int,
        data: TemporisationResponseInput,
        principal: Principal,
    ) -> Booking:
        """Reponse du createur / Creator response: Accepted keeps Temporised, Refused reverts to Pending."""
        result = await self.db.execute(
            select(BookingTemporisation).where(BookingTemporisation.id == temporisation_id)
        )
        temporisation = result.scalar_one_or_none()
        if temporisation is None:
            raise NotFound("Temporisation not found")

        booking = await self._load(temporisation.booking_id, lock=True)
        if booking.created_by_user_id != principal.user_id:
            raise Forbidden("Only the booking creator can respond to a temporisation")
        if temporisation.creator_response != CreatorResponse.PENDING:
            raise AlreadyResponded(
                f"This temporisation was already answered ({temporisation.creator_response.value})"
            )
        if not temporisation.is_active:
            raise InvalidState("This temporisation is no longer active")
        if data.creator_response == CreatorResponse.PENDING:
            raise ValidationError("The response must be Accepted or Refused", field="creator_response")

        temporisation.creator_response = data.creator_response
        temporisation.creator_responded_at = datetime.now()
        temporisation.creator_response_notes = data.creator_response_notes
        if data.creator_response == CreatorResponse.REFUSED:
            temporisation.is_active = False
            booking.status = BookingStatus.PENDING
        await self.db.flush()
        log_audit(self.db, "booking", booking.id, "RESPOND", principal, {
            "temporisation_id": temporisation.id, "response": data.creator_response.value,
        })

        booking = await self._load(booking.id)
        temporisation = next(t for t in booking.temporisations if t.id == temporisation_id)
        logger.info(
            "Temporisation %s of booking %s answered %s",
            temporisation.id, booking.booking_reference, data.creator_response.value,
        )
        payload = self._payload(booking)
        payload.update({
            "temporised_by": temporisation.temporised_by.full_name,
            "reason": temporisation.reason_temporisation,
            "response": data.creator_response.value,
            "response_notes": temporisation.creator_response_notes,
        })
        self.notifier.notify(
            NotificationEvent.TEMPORISATION_RESPONDED,
            [temporisation.temporised_by.email, self.config.NOTIFICATION_EMAIL],
            payload,
        )
        return booking

    async def release_temporisation(self, booking_id: int, principal: Principal) -> Booking:
        """Temporised -> Pending, la temporisation active est close / the active temporisation is closed."""
        principal.require_role(*VALIDATORS)
        booking = await self._load(booking_id, lock=True)
        if booking.status != BookingStatus.TEMPORISED:
            raise InvalidState(
                f"Only Temporised bookings can be released (current status: {booking.status.value})"
            )
        for temporisation in booking.temporisations:
            temporisation.is_active = False
        booking.status = BookingStatus.PENDING
        await self.db.flush()
        log_audit(self.db, "booking", booking.id, "RELEASE", principal)
        logger.info("Booking %s released back to Pending by %s", booking.booking_reference, principal.username)
        return await self._load(booking.id)

    # --- Modification / Edit ---

    async def edit(self, booking_id: int, data: BookingUpdate, principal: Principal) -> Booking:
        """Modifier une reservation Pending / Edit a Pending booking."""
        booking = await self._load(booking_id, lock=True)
        self._check_owner(booking, principal)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("nbr_ltc") is not None and fields["nbr_ltc"] < booking.voyage_count:
            raise ValidationError(
                f"Nbr_LTC cannot be lower than the number of existing voyages ({booking.voyage_count})",
                field="nbr_ltc",
            )
        if booking.status != BookingStatus.PENDING:
            raise InvalidState(f"Only Pending bookings can be edited (current status: {booking.status.value})")

        changes = await self._apply_fields(booking, fields)
        log_audit(self.db, "booking", booking.id, "UPDATE", principal, changes)
        logger.info("Booking %s edited by %s", booking.booking_reference, principal.username)
        return await self._load(booking.id)

    async def _apply_fields(self, booking: Booking, fields: dict) -> dict:
        """Verifier puis appliquer, rien n'est applique en cas d'erreur / Check then apply, all or nothing."""
        errors = self._check_fields(fields)
        nbr_ltc = fields.pop("nbr_ltc", None)
        if nbr_ltc is not None and nbr_ltc < booking.voyage_count:
            errors["nbr_ltc"] = (
                f"Nbr_LTC cannot be lower than the number of existing voyages ({booking.voyage_count})"
            )
        society_id = fields.get("society_id")
        if society_id is not None and society_id != booking.society_id:
            society = await self.db.get(Society, society_id)
            if society is None:
                raise NotFound("Society not found", field="society_id")
            if not society.is_active:
                errors["society_id"] = f"Society {society.society_name} is inactive"
        if errors:
            raise ValidationError.from_errors(errors)

        changes = {}
        for key, value in fields.items():
            if isinstance(value, str) and key in ("numero_bk", "type_voyage"):
                value = value.strip()
            if getattr(booking, key) != value:
                changes[key] = {"old": getattr(booking, key), "new": value}
                setattr(booking, key, value)
        await self.db.flush()

        if society_id is not None and "society_id" in changes:
            # La societe principale des voyages suit la reservation / Voyage principal society follows the booking
            await self.db.execute(
                update(Voyage).where(Voyage.booking_id == booking.id).values(society_principale_id=society_id)
            )

        if nbr_ltc is not None and nbr_ltc != booking.nbr_ltc:
            # Garde atomique contre un voyage cree entre-temps / Atomic guard against a voyage created meanwhile
            result = await self.db.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.voyage_count <= nbr_ltc)
                .values(nbr_ltc=nbr_ltc)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ValidationError(
                    "Nbr_LTC cannot be lower than the number of existing voyages", field="nbr_ltc"
                )
            changes["nbr_ltc"] = {"old": booking.nbr_ltc, "new": nbr_ltc}
        return changes

    async def bulk_edit(self, booking_id: int, data: BookingBulkEdit, principal: Principal) -> Booking:
        """Super edition administrateur / Administrator super edit.

        Champs de la reservation (Pending ou Validated) et TC des voyages Planned,
        en une seule operation tout-ou-rien.
        Booking fields (Pending or Validated) and TC numbers of Planned voyages,
        as a single all-or-nothing operation.
        """
        principal.require_role(UserRole.ADMIN)
        booking = await self._load(booking_id, lock=True)

        fields = data.booking.model_dump(exclude_unset=True) if data.booking else {}
        if fields and booking.status not in (BookingStatus.PENDING, BookingStatus.VALIDATED):
            raise InvalidState(
                f"Booking fields can not be edited in status {booking.status.value}"
            )

        result = await self.db.execute(select(Voyage).where(Voyage.booking_id == booking.id))
        voyages = {v.id: v for v in result.scalars().all()}

        errors: dict[str, str] = {}
        seen: dict[str, int] = {}
        edited: set[int] = set()
        for index, item in enumerate(data.voyages):
            voyage = voyages.get(item.voyage_id)
            if voyage is None:
                raise NotFound(f"Voyage {item.voyage_id} does not belong to this booking")
            if item.voyage_id in edited:
                errors[f"voyages[{index}].voyage_id"] = f"Voyage #{voyage.voyage_number} is listed more than once"
            edited.add(item.voyage_id)
            tc = item.numero_tc.strip()
            key = f"voyages[{index}].numero_tc"
            if not tc:
                errors[key] = "TC number is required"
                continue
            if tc.upper() in seen:
                errors[key] = f"TC number {tc} is used more than once"
            seen[tc.upper()] = item.voyage_id
            if tc != voyage.numero_tc and voyage.status != VoyageStatus.PLANNED:
                raise InvalidState(f"Voyage #{voyage.voyage_number} is {voyage.status.value}, its TC is locked")
        if errors:
            raise ValidationError.from_errors(errors)

        changes = await self._apply_fields(booking, fields) if fields else {}
        for item in data.voyages:
            voyage = voyages[item.voyage_id]
            tc = item.numero_tc.strip()
            if voyage.numero_tc != tc:
                changes[f"voyage:{voyage.id}.numero_tc"] = {"old": voyage.numero_tc, "new": tc}
                voyage.numero_tc = tc
        await self.db.flush()

        log_audit(self.db, "booking", booking.id, "BULK_EDIT", principal, changes)
        logger.info(
            "Booking %s bulk edited by %s (%d change(s))", booking.booking_reference, principal.username, len(changes)
        )
        return await self._load(booking.id)

    # --- Suppression / Delete ---

    async def delete(self, booking_id: int, principal: Principal) -> None:
        booking = await self._load(booking_id, lock=True)
        self._check_owner(booking, principal)
        if booking.status != BookingStatus.PENDING:
            raise InvalidState(f"Only Pending bookings can be deleted (current status: {booking.status.value})")

        reference = booking.booking_reference
        log_audit(self.db, "booking", booking.id, "DELETE", principal, {"booking_reference": reference})
        await self.db.delete(booking)
        await self.db.flush()
        logger.info("Booking %s deleted by %s", reference, principal.username)

    # --- Notifications ---

    @staticmethod
    def _payload(booking: Booking) -> dict:
        return {
            "booking_id": booking.id,
            "booking_reference": booking.booking_reference,
            "numero_bk": booking.numero_bk,
            "society_name": booking.society.society_name,
            "type_voyage": booking.type_voyage,
            "nbr_ltc": booking.nbr_ltc,
            "created_by": booking.created_by.full_name,
        }
