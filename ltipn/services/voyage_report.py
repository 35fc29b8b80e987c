"""
Etat de suivi des voyages / Voyage tracking report.

Lecture seule. Un voyage avec societe secondaire donne deux lignes :
la seconde presente la societe secondaire et son prix comme couple principal.
Read-only. A voyage with a secondary society yields two rows: the second one
shows the secondary society and its price as the principal pair.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ltipn.models.booking import Booking
from ltipn.models.voyage import Voyage, VoyageStatus

# Colonnes exportees et libelles / Exported columns and labels
REPORT_COLUMNS = {
    "booking_reference": "Référence Booking",
    "numero_bk": "Numéro BK",
    "type_voyage": "Type Voyage",
    "voyage_number": "N° Voyage",
    "numero_tc": "N° TC",
    "status": "Statut",
    "society_principale": "Société Principale",
    "society_secondaire": "Société Secondaire",
    "departure_type": "Type Départ",
    "type_emballage": "Type Emballage",
    "departure_city": "Ville Départ",
    "departure_date": "Date Départ",
    "departure_time": "Heure Départ",
    "camion_first": "Camion Départ",
    "camion_first_driver": "Chauffeur Départ",
    "reception_date": "Date Réception",
    "reception_time": "Heure Réception",
    "return_departure_date": "Date Départ Retour",
    "return_departure_time": "Heure Départ Retour",
    "camion_second": "Camion Retour",
    "camion_second_driver": "Chauffeur Retour",
    "return_arrival_city": "Ville Arrivée",
    "return_arrival_date": "Date Arrivée",
    "return_arrival_time": "Heure Arrivée",
    "price_principale": "Prix Principal",
    "price_secondaire": "Prix Secondaire",
    "currency": "Devise",
    "duration_outbound": "Durée Aller",
    "duration_hub": "Durée Séjour Hub",
    "duration_return": "Durée Retour",
    "duration_total": "Durée Totale",
    "created_at": "Créé le",
}


@dataclass
class VoyageReportFilters:
    date_from: date | None = None
    date_to: date | None = None
    booking_reference: str | None = None
    numero_bk: str | None = None
    numero_tc: str | None = None
    camion_id: int | None = None
    society_id: int | None = None
    status: VoyageStatus | None = None
    type_voyage: str | None = None
    departure_city: str | None = None


def format_duration(
    start_day: date | None, start_time: time | None, end_day: date | None, end_time: time | None
) -> str | None:
    """Duree entre deux etapes, heure absente = minuit / Duration between two steps, missing time = midnight."""
    if start_day is None or end_day is None:
        return None
    start = datetime.combine(start_day, start_time or time.min)
    end = datetime.combine(end_day, end_time or time.min)
    minutes = int((end - start).total_seconds() // 60)
    return f"{minutes // 60}h {minutes % 60}m"


class VoyageReportService:
    """Projection des voyages pour l'etat de suivi / Voyage projection for the tracking report."""

    @staticmethod
    async def fetch(db: AsyncSession, filters: VoyageReportFilters) -> list[Voyage]:
        query = (
            select(Voyage)
            .join(Booking, Voyage.booking_id == Booking.id)
            .options(selectinload(Voyage.booking))
            .order_by(Voyage.departure_date.desc(), Voyage.voyage_number)
            .execution_options(populate_existing=True)
        )
        if filters.date_from is not None:
            query = query.where(Voyage.departure_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(Voyage.departure_date <= filters.date_to)
        if filters.booking_reference:
            query = query.where(Booking.booking_reference.contains(filters.booking_reference))
        if filters.numero_bk:
            query = query.where(Booking.numero_bk.contains(filters.numero_bk))
        if filters.numero_tc:
            query = query.where(Voyage.numero_tc.contains(filters.numero_tc))
        if filters.camion_id is not None:
            query = query.where(
                or_(Voyage.camion_first_id == filters.camion_id, Voyage.camion_second_id == filters.camion_id)
            )
        if filters.society_id is not None:
            query = query.where(
                or_(
                    Voyage.society_principale_id == filters.society_id,
                    Voyage.society_secondaire_id == filters.society_id,
                )
            )
        if filters.status is not None:
            query = query.where(Voyage.status == filters.status)
        if filters.type_voyage:
            query = query.where(Booking.type_voyage == filters.type_voyage)
        if filters.departure_city:
            query = query.where(Voyage.departure_city == filters.departure_city)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def rows(voyages: list[Voyage]) -> list[dict[str, Any]]:
        """Une ligne par operation / One row per operation."""
        rows = []
        for voyage in voyages:
            base = VoyageReportService._base_row(voyage)
            rows.append({
                **base,
                "society_principale": voyage.society_principale.society_name,
                "price_principale": voyage.price_principale,
            })
            if voyage.society_secondaire is not None:
                rows.append({
                    **base,
                    "society_principale": voyage.society_secondaire.society_name,
                    "price_principale": voyage.price_secondaire,
                })
        return rows

    @staticmethod
    def _base_row(voyage: Voyage) -> dict[str, Any]:
        booking = voyage.booking
        first, second = voyage.camion_first, voyage.camion_second
        return {
            "voyage_id": voyage.id,
            "booking_reference": booking.booking_reference,
            "numero_bk": booking.numero_bk,
            "type_voyage": booking.type_voyage,
            "voyage_number": voyage.voyage_number,
            "numero_tc": voyage.numero_tc,
            "status": voyage.status.value,
            # Chaque operation ne montre qu'une societe / Each operation shows a single society
            "society_secondaire": None,
            "departure_type": voyage.departure_type.value if voyage.departure_type else None,
            "type_emballage": voyage.type_emballage,
            "departure_city": voyage.departure_city,
            "departure_date": voyage.departure_date,
            "departure_time": voyage.departure_time,
            "camion_first": first.camion_matricule if first else "-",
            "camion_first_driver": first.driver_name if first else None,
            "reception_date": voyage.reception_date,
            "reception_time": voyage.reception_time,
            "return_departure_date": voyage.return_departure_date,
            "return_departure_time": voyage.return_departure_time,
            "camion_second": second.camion_matricule if second else "-",
            "camion_second_driver": second.driver_name if second else None,
            "return_arrival_city": voyage.return_arrival_city,
            "return_arrival_date": voyage.return_arrival_date,
            "return_arrival_time": voyage.return_arrival_time,
            "price_secondaire": None,
            "currency": voyage.currency,
            "duration_outbound": format_duration(
                voyage.departure_date, voyage.departure_time, voyage.reception_date, voyage.reception_time
            ),
            "duration_hub": format_duration(
                voyage.reception_date, voyage.reception_time,
                voyage.return_departure_date, voyage.return_departure_time,
            ),
            "duration_return": format_duration(
                voyage.return_departure_date, voyage.return_departure_time,
                voyage.return_arrival_date, voyage.return_arrival_time,
            ),
            "duration_total": format_duration(
                voyage.departure_date, voyage.departure_time,
                voyage.return_arrival_date, voyage.return_arrival_time,
            ),
            "created_at": voyage.created_at.strftime("%d/%m/%Y %H:%M") if voyage.created_at else None,
        }
