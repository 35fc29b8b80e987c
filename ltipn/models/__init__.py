"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que create_all les détecte.
Import all models here so create_all can detect them.
"""

from ltipn.models.society import Society, SocietyTransp
from ltipn.models.camion import Camion, EXTERNAL_CAMION_TYPE
from ltipn.models.user import User, UserRole
from ltipn.models.booking import Booking, BookingSequence, BookingStatus, BookingTemporisation, CreatorResponse
from ltipn.models.voyage import DepartureType, Voyage, VoyageStatus
from ltipn.models.audit import AuditLog

__all__ = [
    "Society",
    "SocietyTransp",
    "Camion",
    "EXTERNAL_CAMION_TYPE",
    "User",
    "UserRole",
    "Booking",
    "BookingSequence",
    "BookingStatus",
    "BookingTemporisation",
    "CreatorResponse",
    "DepartureType",
    "Voyage",
    "VoyageStatus",
    "AuditLog",
]
