"""Schémas Société et Transporteur / Society and carrier schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Society ---
class SocietyCreate(BaseModel):
    society_name: str = Field(min_length=1, max_length=200)
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    is_active: bool = True


class SocietyUpdate(BaseModel):
    society_name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    is_active: bool | None = None


class SocietyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    society_name: str
    address: str | None
    city: str | None
    phone: str | None
    email: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SocietyBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    society_name: str


# --- SocietyTransp ---
class SocietyTranspCreate(BaseModel):
    society_transp_name: str = Field(min_length=1, max_length=200)
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    is_active: bool = True


class SocietyTranspUpdate(BaseModel):
    society_transp_name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    is_active: bool | None = None


class SocietyTranspRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    society_transp_name: str
    address: str | None
    city: str | None
    phone: str | None
    email: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
