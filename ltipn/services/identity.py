"""
Contexte d'identite / Identity context.

Le principal est passe explicitement a chaque operation metier, jamais lu
depuis un etat global de requete.
The principal is passed explicitly to every business operation, never read
from ambient request state.
"""

from dataclasses import dataclass

from ltipn.models.user import UserRole
from ltipn.services.errors import Forbidden


@dataclass(frozen=True)
class Principal:
    user_id: int
    username: str
    role: UserRole
    society_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def require_role(self, *roles: UserRole) -> None:
        """Verifier le role / Check role. Raises Forbidden."""
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise Forbidden(f"Role required: {allowed}")


# Groupes de roles par capacite / Role groups per capability
BOOKING_CREATORS = (UserRole.ADMIN, UserRole.BOOKING_AGENT)
VALIDATORS = (UserRole.ADMIN, UserRole.TRANS_RESPO)
