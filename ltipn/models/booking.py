"""Modeles Reservation et Temporisation / Booking and temporisation models."""

import enum
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ltipn.database import Base, str_enum


class BookingStatus(str, enum.Enum):
    """Statut de la reservation / Booking status."""
    PENDING = "Pending"
    TEMPORISED = "Temporised"
    VALIDATED = "Validated"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class CreatorResponse(str, enum.Enum):
    """Reponse du createur a une temporisation / Creator response to a temporisation."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REFUSED = "Refused"


class Booking(Base):
    """Reservation client : plafond de Nbr_LTC voyages / Client booking capped at Nbr_LTC voyages."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_reference: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)  # BK{yyyyMMdd}{seq:03d}
    numero_bk: Mapped[str] = mapped_column(String(50), nullable=False)  # numero de commande client
    society_id: Mapped[int] = mapped_column(ForeignKey("societies.id", ondelete="RESTRICT"), nullable=False)
    type_voyage: Mapped[str] = mapped_column(String(100), nullable=False)
    type_contenaire: Mapped[str | None] = mapped_column(String(20))  # 20P | 40P
    nom_client: Mapped[str | None] = mapped_column(String(200))
    nbr_ltc: Mapped[int] = mapped_column(Integer, nullable=False)
    # Compteur de voyages garde par UPDATE conditionnel / Voyage counter guarded by conditional UPDATE
    voyage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[BookingStatus] = mapped_column(
        str_enum(BookingStatus), nullable=False, default=BookingStatus.PENDING
    )
    created_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    validated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"))
    validated_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relations
    society: Mapped["Society"] = relationship(lazy="selectin")
    created_by: Mapped["User"] = relationship(foreign_keys=[created_by_user_id], lazy="selectin")
    validated_by: Mapped["User | None"] = relationship(foreign_keys=[validated_by_user_id], lazy="selectin")
    temporisations: Mapped[list["BookingTemporisation"]] = relationship(
        back_populates="booking", cascade="all, delete-orphan", passive_deletes=True,
        order_by="BookingTemporisation.id",
    )

    def __repr__(self) -> str:
        return f"<Booking {self.booking_reference} - {self.status.value}>"


class BookingSequence(Base):
    """Compteur journalier des references / Daily booking reference counter."""

    __tablename__ = "booking_sequences"

    day: Mapped[str] = mapped_column(String(8), primary_key=True)  # yyyyMMdd
    last_value: Mapped[int] = mapped_column(Integer, nullable=False)


class BookingTemporisation(Base):
    """Report d'une reservation en attente de l'accord du createur / Booking deferral awaiting creator response."""

    __tablename__ = "booking_temporisations"
    __table_args__ = (
        # Une seule temporisation active par reservation / At most one active temporisation per booking
        Index(
            "uq_booking_temporisations_active",
            "booking_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    temporised_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    temporised_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    reason_temporisation: Mapped[str] = mapped_column(String(1000), nullable=False)
    estimated_validation_date: Mapped[date] = mapped_column(Date, nullable=False)
    creator_response: Mapped[CreatorResponse] = mapped_column(
        str_enum(CreatorResponse), nullable=False, default=CreatorResponse.PENDING
    )
    creator_responded_at: Mapped[datetime | None] = mapped_column(DateTime)
    creator_response_notes: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relations
    booking: Mapped["Booking"] = relationship(back_populates="temporisations")
    temporised_by: Mapped["User"] = relationship(lazy="selectin")

    @property
    def days_until_estimated_validation(self) -> int:
        return (self.estimated_validation_date - date.today()).days

    @property
    def is_overdue(self) -> bool:
        return (
            self.creator_response == CreatorResponse.ACCEPTED
            and self.estimated_validation_date < date.today()
        )

    def __repr__(self) -> str:
        return f"<BookingTemporisation {self.id} booking={self.booking_id} active={self.is_active}>"
