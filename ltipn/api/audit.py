"""Routes Historique / Audit log API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import require_roles
from ltipn.database import get_db
from ltipn.models.audit import AuditLog
from ltipn.models.user import UserRole
from ltipn.services.identity import Principal

router = APIRouter()


def _as_item(log: AuditLog) -> dict:
    return {
        "id": log.id,
        "entity_type": log.entity_type,
        "entity_id": log.entity_id,
        "action": log.action,
        "changes": log.changes,
        "user": log.user,
        "timestamp": log.timestamp,
    }


@router.get("/")
async def list_audit_logs(
    entity_type: str | None = Query(default=None),
    entity_id: int | None = Query(default=None),
    action: str | None = Query(default=None),
    user: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
):
    """Historique des operations, plus recent d'abord (Admin) / Operation history, newest first (Admin)."""
    conditions = []
    if entity_type:
        conditions.append(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        conditions.append(AuditLog.entity_id == entity_id)
    if action:
        conditions.append(AuditLog.action == action.upper())
    if user:
        conditions.append(AuditLog.user == user)

    total = await db.scalar(select(func.count(AuditLog.id)).where(*conditions)) or 0
    result = await db.execute(
        select(AuditLog).where(*conditions).order_by(AuditLog.id.desc()).offset(offset).limit(limit)
    )
    return {"total": total, "items": [_as_item(log) for log in result.scalars().all()]}
