"""Audit logging service.

Admin mutations write an ``AuditLogEntry`` in the same transaction as the
change they describe, so an entry exists exactly when the change commits.
The acting identity is copied onto the row at write time.
"""

import logging
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from cafebook.core.errors import ValidationError
from cafebook.models.operations import AuditLogEntry

logger = logging.getLogger("audit")

MAX_AUDIT_PAGE = 500


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    CHANGE_ROLE = "change_role"
    APPROVE = "approve"
    REJECT = "reject"


class AuditEntityType(str, Enum):
    CAFE = "cafe"
    USER = "user"
    BOOKING = "booking"
    TOURNAMENT = "tournament"
    ANNOUNCEMENT = "announcement"
    SETTINGS = "settings"


def log_admin_action(
    db: Session,
    action: AuditAction,
    entity_type: AuditEntityType,
    entity_id: Any,
    actor_id: Optional[int] = None,
    actor_name: str = "",
    details: Optional[dict[str, Any]] = None,
    ip_address: str = "",
) -> AuditLogEntry:
    """Write an audit log entry.

    Args:
        db: The caller's session. The entry is flushed, not committed.
        action: What was done.
        entity_type: Kind of entity affected.
        entity_id: ID of the affected entity.
        actor_id: Profile ID of the admin performing the action.
        actor_name: Username of the admin, captured now.
        details: Free-form context, e.g. old and new values.
        ip_address: Client IP address.
    """
    entry = AuditLogEntry(
        user_id=actor_id,
        user_name=actor_name,
        action=AuditAction(action).value,
        entity_type=AuditEntityType(entity_type).value,
        entity_id=str(entity_id) if entity_id is not None else "",
        details=details or {},
        ip_address=ip_address or "",
    )
    db.add(entry)
    db.flush()
    logger.info(f"{actor_name or actor_id} {entry.action} {entry.entity_type}:{entry.entity_id}")
    return entry


def list_audit_logs(
    db: Session,
    limit: int = 100,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[int] = None,
) -> List[AuditLogEntry]:
    """Newest first."""
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    query = db.query(AuditLogEntry)
    if action:
        query = query.filter(AuditLogEntry.action == action)
    if entity_type:
        query = query.filter(AuditLogEntry.entity_type == entity_type)
    if user_id is not None:
        query = query.filter(AuditLogEntry.user_id == user_id)
    return (
        query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .limit(min(limit, MAX_AUDIT_PAGE))
        .all()
    )
