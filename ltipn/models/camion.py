"""Modele Camion / Truck model.

Camion du parc ou camion externe cree a la volee lors d'un depart.
Fleet truck, or external truck created on the fly during a departure.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ltipn.database import Base

# Type attribue aux camions saisis pendant un depart / Type given to trucks entered during a departure
EXTERNAL_CAMION_TYPE = "EXTERNE"


class Camion(Base):
    __tablename__ = "camions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    camion_matricule: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    driver_name: Mapped[str | None] = mapped_column(String(100))
    driver_phone: Mapped[str | None] = mapped_column(String(50))
    camion_type: Mapped[str | None] = mapped_column(String(50))  # Refrigerated, Standard, EXTERNE
    society_transp_id: Mapped[int | None] = mapped_column(
        ForeignKey("societies_transp.id", ondelete="SET NULL")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relations
    society_transp: Mapped["SocietyTransp | None"] = relationship(back_populates="camions")

    def __repr__(self) -> str:
        return f"<Camion {self.camion_matricule}>"
