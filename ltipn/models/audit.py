"""Modèle Historique / Audit log model.

Une ligne par operation metier (reservation, voyage, donnees de reference, connexion).
One row per business operation (booking, voyage, master data, login).
"""

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ltipn.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # booking, voyage, society, auth...
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)  # CREATE, VALIDATE, TEMPORISE, DEPART...
    changes: Mapped[str | None] = mapped_column(Text)  # JSON {champ: {old, new}}
    user: Mapped[str | None] = mapped_column(String(100))  # username du principal
    timestamp: Mapped[str] = mapped_column(String(32), nullable=False)  # ISO 8601 UTC

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id} by {self.user}>"
