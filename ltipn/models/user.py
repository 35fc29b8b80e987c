"""
Modele Utilisateur / User model.
Un role par utilisateur, societe de rattachement optionnelle.
One role per user, optional society affiliation.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ltipn.database import Base, str_enum


class UserRole(str, enum.Enum):
    """Role applicatif / Application role."""
    ADMIN = "Admin"
    BOOKING_AGENT = "Booking_Agent"
    TRANS_RESPO = "Trans_Respo"  # responsable transport / validator


class User(Base):
    """Utilisateur de l'application / Application user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(str_enum(UserRole), nullable=False)
    society_id: Mapped[int | None] = mapped_column(ForeignKey("societies.id", ondelete="SET NULL"))
    type_voyage: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relations
    society: Mapped["Society | None"] = relationship(lazy="selectin")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username

    def __repr__(self) -> str:
        return f"<User {self.username}>"
