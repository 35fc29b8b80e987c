"""Modele Voyage / Voyage model.

Un voyage = un aller (ville de depart -> hub) puis un retour (hub -> ville d'arrivee).
One voyage = an outbound leg (departure city -> hub) then a return leg (hub -> arrival city).
"""

import enum
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ltipn.database import Base, str_enum


class VoyageStatus(str, enum.Enum):
    """Statut du voyage / Voyage status."""
    PLANNED = "Planned"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class DepartureType(str, enum.Enum):
    """Type de depart / Departure type."""
    EMPTY = "Empty"
    EMBALLAGE = "Emballage"  # emballage -> societe secondaire requise / packaging -> secondary society required


class Voyage(Base):
    __tablename__ = "voyages"
    __table_args__ = (
        UniqueConstraint("booking_id", "voyage_number", name="uq_voyages_booking_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    voyage_number: Mapped[int] = mapped_column(Integer, nullable=False)
    numero_tc: Mapped[str] = mapped_column(String(50), nullable=False)  # numero conteneur / container number

    # Societes / Societies
    society_principale_id: Mapped[int] = mapped_column(
        ForeignKey("societies.id", ondelete="RESTRICT"), nullable=False
    )
    society_secondaire_id: Mapped[int | None] = mapped_column(ForeignKey("societies.id", ondelete="RESTRICT"))

    # Camions aller / retour / Outbound / return trucks
    camion_first_id: Mapped[int | None] = mapped_column(ForeignKey("camions.id", ondelete="SET NULL"))
    camion_second_id: Mapped[int | None] = mapped_column(ForeignKey("camions.id", ondelete="SET NULL"))

    # Depart / Departure
    departure_city: Mapped[str | None] = mapped_column(String(50))
    departure_date: Mapped[date | None] = mapped_column(Date)
    departure_time: Mapped[time | None] = mapped_column(Time)
    departure_type: Mapped[DepartureType | None] = mapped_column(str_enum(DepartureType, length=20))
    type_emballage: Mapped[str | None] = mapped_column(String(200))

    # Reception au hub / Hub reception
    reception_date: Mapped[date | None] = mapped_column(Date)
    reception_time: Mapped[time | None] = mapped_column(Time)

    # Retour / Return
    return_departure_date: Mapped[date | None] = mapped_column(Date)
    return_departure_time: Mapped[time | None] = mapped_column(Time)
    return_arrival_city: Mapped[str | None] = mapped_column(String(50))
    return_arrival_date: Mapped[date | None] = mapped_column(Date)
    return_arrival_time: Mapped[time | None] = mapped_column(Time)

    # Prix / Prices
    price_principale: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    price_secondaire: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))  # seulement si societe secondaire
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="MAD")

    status: Mapped[VoyageStatus] = mapped_column(
        str_enum(VoyageStatus), nullable=False, default=VoyageStatus.PLANNED
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relations
    booking: Mapped["Booking"] = relationship()
    society_principale: Mapped["Society"] = relationship(foreign_keys=[society_principale_id], lazy="selectin")
    society_secondaire: Mapped["Society | None"] = relationship(foreign_keys=[society_secondaire_id], lazy="selectin")
    camion_first: Mapped["Camion | None"] = relationship(foreign_keys=[camion_first_id], lazy="selectin")
    camion_second: Mapped["Camion | None"] = relationship(foreign_keys=[camion_second_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Voyage #{self.voyage_number} booking={self.booking_id} - {self.status.value}>"
