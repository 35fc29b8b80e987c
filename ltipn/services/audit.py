"""Journal d'audit des operations metier / Audit trail for business operations."""

import enum
import json
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.models.audit import AuditLog
from ltipn.services.identity import Principal


def _json_default(value):
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: int,
    action: str,
    principal: Principal | None,
    changes: dict | None = None,
) -> None:
    """Enregistrer une action dans l'historique / Log an action to audit_logs."""
    db.add(AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        changes=json.dumps(changes, ensure_ascii=False, default=_json_default) if changes else None,
        user=principal.username if principal else None,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    ))
