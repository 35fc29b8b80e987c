"""
Schémas Voyage / Voyage schemas.
Chaque étape du cycle a son propre schéma d'entrée.
Each lifecycle step has its own input schema.
"""

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ltipn.models.voyage import DepartureType, VoyageStatus
from ltipn.schemas.camion import CamionSummary
from ltipn.schemas.society import SocietyBrief


# --- Camions / Trucks ---
class ExternalTruckInput(BaseModel):
    """Camion externe saisi à la volée / Ad-hoc external truck."""
    society_transp_name: str = ""
    camion_matricule: str = ""
    driver_name: str = ""
    driver_phone: str = ""


class TruckSlotInput(BaseModel):
    """Camion du parc OU camion externe / Fleet truck OR external truck."""
    camion_id: int | None = None
    external: ExternalTruckInput | None = None


# --- Entrées / Inputs ---
class VoyageCreate(BaseModel):
    numero_tc: str = Field(max_length=50)


class VoyageUpdate(BaseModel):
    numero_tc: str | None = Field(default=None, max_length=50)
    voyage_number: int | None = None


class DepartInput(BaseModel):
    departure_type: DepartureType | None = None
    society_secondaire_id: int | None = None
    type_emballage: str | None = Field(default=None, max_length=200)
    departure_city: str | None = None
    departure_date: date | None = None
    departure_time: time | None = None
    truck: TruckSlotInput = Field(default_factory=TruckSlotInput)


class ReceptionInput(BaseModel):
    reception_date: date | None = None
    reception_time: time | None = None


class ReturnDepartureInput(BaseModel):
    return_departure_date: date | None = None
    return_departure_time: time | None = None
    return_arrival_city: str | None = None
    truck: TruckSlotInput = Field(default_factory=TruckSlotInput)


class ReturnArrivalInput(BaseModel):
    return_arrival_date: date | None = None
    return_arrival_time: time | None = None


class PricesInput(BaseModel):
    price_principale: Decimal | None = None
    price_secondaire: Decimal | None = None
    currency: str | None = None


# --- Lecture / Read ---
class VoyageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    booking_id: int
    voyage_number: int
    numero_tc: str
    status: VoyageStatus
    society_principale: SocietyBrief
    society_secondaire: SocietyBrief | None = None
    camion_first: CamionSummary | None = None
    camion_second: CamionSummary | None = None
    departure_type: DepartureType | None
    type_emballage: str | None
    departure_city: str | None
    departure_date: date | None
    departure_time: time | None
    reception_date: date | None
    reception_time: time | None
    return_departure_date: date | None
    return_departure_time: time | None
    return_arrival_city: str | None
    return_arrival_date: date | None
    return_arrival_time: time | None
    price_principale: Decimal | None
    price_secondaire: Decimal | None
    currency: str
    created_at: datetime
    updated_at: datetime


class BookingVoyages(BaseModel):
    """Écran d'affectation des voyages / Voyage assignment view."""
    booking_id: int
    booking_reference: str
    nbr_ltc: int
    remaining_voyages: int
    can_add_voyage: bool
    voyages: list[VoyageRead]
