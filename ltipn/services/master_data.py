"""
Donnees de reference / Master data.

Societes clientes, transporteurs, camions et utilisateurs : unicite et
gardes de suppression verifiees par l'application.
Client societies, carriers, trucks and users: uniqueness and delete guards
checked by the application.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.models.booking import Booking, BookingTemporisation
from ltipn.models.camion import Camion
from ltipn.models.society import Society, SocietyTransp
from ltipn.models.user import User, UserRole
from ltipn.models.voyage import Voyage
from ltipn.schemas.camion import CamionCreate, CamionUpdate
from ltipn.schemas.society import SocietyCreate, SocietyTranspCreate, SocietyTranspUpdate, SocietyUpdate
from ltipn.schemas.user import UserCreate, UserUpdate
from ltipn.services.audit import log_audit
from ltipn.services.errors import Conflict, NotFound, ValidationError
from ltipn.services.identity import Principal
from ltipn.utils.auth import hash_password

logger = logging.getLogger(__name__)


class MasterDataService:
    """Ecritures sur les donnees de reference (Admin) / Master data writes (Admin)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Outils / Helpers ---

    async def _get(self, model, entity_id: int, label: str):
        entity = await self.db.get(model, entity_id)
        if entity is None:
            raise NotFound(f"{label} not found")
        return entity

    async def _ensure_unique(self, column, value, field: str, label: str, exclude_id: int | None = None) -> None:
        query = select(column.class_.id).where(column == value)
        if exclude_id is not None:
            query = query.where(column.class_.id != exclude_id)
        if await self.db.scalar(query.limit(1)) is not None:
            raise Conflict(f"{label} '{value}' already exists", field=field)

    async def _count(self, query) -> int:
        return await self.db.scalar(select(func.count()).select_from(query.subquery())) or 0

    @staticmethod
    def _apply(entity, fields: dict) -> dict:
        changes = {}
        for key, value in fields.items():
            if getattr(entity, key) != value:
                changes[key] = {"old": getattr(entity, key), "new": value}
                setattr(entity, key, value)
        return changes

    async def _save(self, entity, entity_type: str, action: str, principal: Principal, changes: dict | None = None):
        await self.db.flush()
        log_audit(self.db, entity_type, entity.id, action, principal, changes)
        await self.db.refresh(entity)
        return entity

    # --- Societes / Societies ---

    async def create_society(self, data: SocietyCreate, principal: Principal) -> Society:
        principal.require_role(UserRole.ADMIN)
        name = data.society_name.strip()
        await self._ensure_unique(Society.society_name, name, "society_name", "Society")
        society = Society(**data.model_dump(exclude={"society_name"}), society_name=name)
        self.db.add(society)
        logger.info("Society %s created by %s", name, principal.username)
        return await self._save(society, "society", "CREATE", principal)

    async def update_society(self, society_id: int, data: SocietyUpdate, principal: Principal) -> Society:
        principal.require_role(UserRole.ADMIN)
        society = await self._get(Society, society_id, "Society")
        fields = data.model_dump(exclude_unset=True)
        if fields.get("society_name"):
            fields["society_name"] = fields["society_name"].strip()
            await self._ensure_unique(
                Society.society_name, fields["society_name"], "society_name", "Society", exclude_id=society.id
            )
        changes = self._apply(society, fields)
        return await self._save(society, "society", "UPDATE", principal, changes)

    async def delete_society(self, society_id: int, principal: Principal) -> None:
        principal.require_role(UserRole.ADMIN)
        society = await self._get(Society, society_id, "Society")
        references = {
            "users": await self._count(select(User.id).where(User.society_id == society.id)),
            "bookings": await self._count(select(Booking.id).where(Booking.society_id == society.id)),
            "voyages": await self._count(
                select(Voyage.id).where(
                    or_(Voyage.society_principale_id == society.id, Voyage.society_secondaire_id == society.id)
                )
            ),
        }
        self._guard_delete(f"society {society.society_name}", references)
        log_audit(self.db, "society", society.id, "DELETE", principal, {"society_name": society.society_name})
        await self.db.delete(society)
        await self.db.flush()

    @staticmethod
    def _guard_delete(label: str, references: dict[str, int]) -> None:
        linked = [f"{count} {name}" for name, count in references.items() if count]
        if linked:
            raise Conflict(f"Cannot delete {label}, it has associated {', '.join(linked)}; deactivate it instead")

    # --- Transporteurs / Carriers ---

    async def create_carrier(self, data: SocietyTranspCreate, principal: Principal) -> SocietyTransp:
        principal.require_role(UserRole.ADMIN)
        name = data.society_transp_name.strip()
        await self._ensure_unique(SocietyTransp.society_transp_name, name, "society_transp_name", "Carrier")
        carrier = SocietyTransp(**data.model_dump(exclude={"society_transp_name"}), society_transp_name=name)
        self.db.add(carrier)
        return await self._save(carrier, "carrier", "CREATE", principal)

    async def update_carrier(self, carrier_id: int, data: SocietyTranspUpdate, principal: Principal) -> SocietyTransp:
        principal.require_role(UserRole.ADMIN)
        carrier = await self._get(SocietyTransp, carrier_id, "Carrier")
        fields = data.model_dump(exclude_unset=True)
        if fields.get("society_transp_name"):
            fields["society_transp_name"] = fields["society_transp_name"].strip()
            await self._ensure_unique(
                SocietyTransp.society_transp_name, fields["society_transp_name"],
                "society_transp_name", "Carrier", exclude_id=carrier.id,
            )
        changes = self._apply(carrier, fields)
        return await self._save(carrier, "carrier", "UPDATE", principal, changes)

    async def delete_carrier(self, carrier_id: int, principal: Principal) -> None:
        principal.require_role(UserRole.ADMIN)
        carrier = await self._get(SocietyTransp, carrier_id, "Carrier")
        trucks = await self._count(select(Camion.id).where(Camion.society_transp_id == carrier.id))
        self._guard_delete(f"carrier {carrier.society_transp_name}", {"trucks": trucks})
        log_audit(self.db, "carrier", carrier.id, "DELETE", principal, {
            "society_transp_name": carrier.society_transp_name,
        })
        await self.db.delete(carrier)
        await self.db.flush()

    # --- Camions / Trucks ---

    async def _check_carrier(self, carrier_id: int | None) -> None:
        if carrier_id is not None:
            await self._get(SocietyTransp, carrier_id, "Carrier")

    async def create_camion(self, data: CamionCreate, principal: Principal) -> Camion:
        principal.require_role(UserRole.ADMIN)
        matricule = data.camion_matricule.strip()
        await self._ensure_unique(Camion.camion_matricule, matricule, "camion_matricule", "Truck")
        await self._check_carrier(data.society_transp_id)
        camion = Camion(**data.model_dump(exclude={"camion_matricule"}), camion_matricule=matricule)
        self.db.add(camion)
        return await self._save(camion, "camion", "CREATE", principal)

    async def update_camion(self, camion_id: int, data: CamionUpdate, principal: Principal) -> Camion:
        principal.require_role(UserRole.ADMIN)
        camion = await self._get(Camion, camion_id, "Truck")
        fields = data.model_dump(exclude_unset=True)
        if fields.get("camion_matricule"):
            fields["camion_matricule"] = fields["camion_matricule"].strip()
            await self._ensure_unique(
                Camion.camion_matricule, fields["camion_matricule"], "camion_matricule", "Truck",
                exclude_id=camion.id,
            )
        await self._check_carrier(fields.get("society_transp_id"))
        changes = self._apply(camion, fields)
        return await self._save(camion, "camion", "UPDATE", principal, changes)

    async def delete_camion(self, camion_id: int, principal: Principal) -> None:
        principal.require_role(UserRole.ADMIN)
        camion = await self._get(Camion, camion_id, "Truck")
        voyages = await self._count(
            select(Voyage.id).where(or_(Voyage.camion_first_id == camion.id, Voyage.camion_second_id == camion.id))
        )
        self._guard_delete(f"truck {camion.camion_matricule}", {"voyages": voyages})
        log_audit(self.db, "camion", camion.id, "DELETE", principal, {"camion_matricule": camion.camion_matricule})
        await self.db.delete(camion)
        await self.db.flush()

    # --- Utilisateurs / Users ---

    async def _other_active_admins(self, user_id: int) -> int:
        return await self._count(
            select(User.id).where(User.role == UserRole.ADMIN, User.is_active.is_(True), User.id != user_id)
        )

    async def create_user(self, data: UserCreate, principal: Principal) -> User:
        principal.require_role(UserRole.ADMIN)
        await self._ensure_unique(User.username, data.username, "username", "Username")
        await self._ensure_unique(User.email, data.email, "email", "Email")
        if data.society_id is not None:
            await self._get(Society, data.society_id, "Society")
        user = User(
            **data.model_dump(exclude={"password"}),
            hashed_password=hash_password(data.password),
        )
        self.db.add(user)
        logger.info("User %s (%s) created by %s", data.username, data.role.value, principal.username)
        return await self._save(user, "user", "CREATE", principal, {"username": data.username, "role": data.role.value})

    async def update_user(self, user_id: int, data: UserUpdate, principal: Principal) -> User:
        principal.require_role(UserRole.ADMIN)
        user = await self._get(User, user_id, "User")
        fields = data.model_dump(exclude_unset=True)
        password = fields.pop("password", None)
        if fields.get("username"):
            await self._ensure_unique(User.username, fields["username"], "username", "Username", exclude_id=user.id)
        if fields.get("email"):
            await self._ensure_unique(User.email, fields["email"], "email", "Email", exclude_id=user.id)
        if fields.get("society_id") is not None:
            await self._get(Society, fields["society_id"], "Society")

        # Ne pas retirer le dernier administrateur actif / Keep at least one active administrator
        loses_admin = fields.get("role", user.role) != UserRole.ADMIN or fields.get("is_active") is False
        if user.role == UserRole.ADMIN and user.is_active and loses_admin:
            if await self._other_active_admins(user.id) == 0:
                raise ValidationError("The last active administrator can not be demoted or deactivated")

        changes = self._apply(user, fields)
        if password:
            user.hashed_password = hash_password(password)
            changes["password"] = "changed"
        return await self._save(user, "user", "UPDATE", principal, changes)

    async def delete_user(self, user_id: int, principal: Principal) -> None:
        principal.require_role(UserRole.ADMIN)
        user = await self._get(User, user_id, "User")
        self._guard_delete(f"user {user.username}", {
            "bookings": await self._count(select(Booking.id).where(Booking.created_by_user_id == user.id)),
            "validated bookings": await self._count(
                select(Booking.id).where(Booking.validated_by_user_id == user.id)
            ),
            "temporisations": await self._count(
                select(BookingTemporisation.id).where(BookingTemporisation.temporised_by_user_id == user.id)
            ),
        })
        if user.role == UserRole.ADMIN and user.is_active and await self._other_active_admins(user.id) == 0:
            raise Conflict("Cannot delete the last active administrator")
        log_audit(self.db, "user", user.id, "DELETE", principal, {"username": user.username})
        await self.db.delete(user)
        await self.db.flush()
        logger.info("User %s deleted by %s", user.username, principal.username)
