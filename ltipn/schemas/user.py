"""
Schémas User / User schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ltipn.models.user import UserRole
from ltipn.schemas.society import SocietyBrief


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    first_name: str = ""
    last_name: str = ""
    email: EmailStr
    password: str = Field(min_length=4, max_length=200)
    role: UserRole
    society_id: int | None = None
    type_voyage: str | None = None
    is_active: bool = True


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=100)
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=4, max_length=200)
    role: UserRole | None = None
    society_id: int | None = None
    type_voyage: str | None = None
    is_active: bool | None = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    username: str
    first_name: str
    last_name: str
    email: str
    role: UserRole
    society_id: int | None
    society: SocietyBrief | None = None
    type_voyage: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    username: str
    full_name: str


class UserMe(BaseModel):
    """Profil de l'utilisateur connecté / Current user profile."""
    model_config = ConfigDict(from_attributes=True)
    id: int
    username: str
    email: str
    full_name: str
    role: UserRole
    society_id: int | None
    society: SocietyBrief | None = None
    type_voyage: str | None
