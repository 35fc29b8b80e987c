"""Schémas Camion / Truck schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CamionCreate(BaseModel):
    camion_matricule: str = Field(min_length=1, max_length=50)
    driver_name: str | None = None
    driver_phone: str | None = None
    camion_type: str | None = None
    society_transp_id: int | None = None
    is_active: bool = True


class CamionUpdate(BaseModel):
    camion_matricule: str | None = Field(default=None, min_length=1, max_length=50)
    driver_name: str | None = None
    driver_phone: str | None = None
    camion_type: str | None = None
    society_transp_id: int | None = None
    is_active: bool | None = None


class CamionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    camion_matricule: str
    driver_name: str | None
    driver_phone: str | None
    camion_type: str | None
    society_transp_id: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CamionSummary(BaseModel):
    """Version allégée pour les listes de choix / Lightweight version for choice lists."""
    model_config = ConfigDict(from_attributes=True)
    id: int
    camion_matricule: str
    driver_name: str | None
