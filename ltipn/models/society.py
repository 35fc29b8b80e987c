"""Modeles Societe cliente et Societe de transport / Client society and carrier models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ltipn.database import Base


class Society(Base):
    """Societe cliente (chargeur) / Client society (shipper)."""

    __tablename__ = "societies"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    society_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    address: Mapped[str | None] = mapped_column(String(500))
    city: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self) -> str:
        return f"<Society {self.society_name}>"


class SocietyTransp(Base):
    """Societe de transport (transporteur) / Carrier company."""

    __tablename__ = "societies_transp"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    society_transp_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    address: Mapped[str | None] = mapped_column(String(500))
    city: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relations
    camions: Mapped[list["Camion"]] = relationship(back_populates="society_transp", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<SocietyTransp {self.society_transp_name}>"
