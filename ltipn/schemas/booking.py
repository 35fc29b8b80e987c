"""
Schémas Booking / Booking schemas.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ltipn.models.booking import BookingStatus, CreatorResponse
from ltipn.schemas.society import SocietyBrief
from ltipn.schemas.user import UserBrief


class BookingCreate(BaseModel):
    numero_bk: str = Field(min_length=1, max_length=50)
    society_id: int
    type_voyage: str = Field(min_length=1, max_length=100)
    type_contenaire: str | None = Field(default=None, max_length=20)
    nom_client: str | None = Field(default=None, max_length=200)
    nbr_ltc: int
    notes: str | None = None


class BookingUpdate(BaseModel):
    numero_bk: str | None = Field(default=None, min_length=1, max_length=50)
    society_id: int | None = None
    type_voyage: str | None = Field(default=None, min_length=1, max_length=100)
    type_contenaire: str | None = Field(default=None, max_length=20)
    nom_client: str | None = Field(default=None, max_length=200)
    nbr_ltc: int | None = None
    notes: str | None = None


class TemporiseInput(BaseModel):
    reason_temporisation: str = Field(max_length=1000)
    estimated_validation_date: date


class TemporisationResponseInput(BaseModel):
    creator_response: CreatorResponse
    creator_response_notes: str | None = Field(default=None, max_length=500)


class VoyageTcEdit(BaseModel):
    voyage_id: int
    numero_tc: str = Field(max_length=50)


class BookingBulkEdit(BaseModel):
    """Super édition : réservation et TC de ses voyages / Super edit: booking and its voyages' TCs."""
    booking: BookingUpdate | None = None
    voyages: list[VoyageTcEdit] = Field(default_factory=list)


class TemporisationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    booking_id: int
    temporised_by: UserBrief
    temporised_at: datetime
    reason_temporisation: str
    estimated_validation_date: date
    creator_response: CreatorResponse
    creator_responded_at: datetime | None
    creator_response_notes: str | None
    is_active: bool
    days_until_estimated_validation: int
    is_overdue: bool


class BookingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    booking_reference: str
    numero_bk: str
    society: SocietyBrief
    type_voyage: str
    type_contenaire: str | None
    nom_client: str | None
    nbr_ltc: int
    voyage_count: int
    notes: str | None
    status: BookingStatus
    created_by: UserBrief
    validated_by: UserBrief | None = None
    validated_at: datetime | None
    created_at: datetime
    updated_at: datetime


class BookingDetail(BookingRead):
    """Réservation avec sa temporisation active / Booking with its active temporisation."""
    active_temporisation: TemporisationRead | None = None
