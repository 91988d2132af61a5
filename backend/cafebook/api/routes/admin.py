"""Platform admin routes. Every mutation is audit-logged in the same transaction."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request
from slowapi.util import get_remote_address

from cafebook.core.errors import ConflictError, NotFoundError, ValidationError
from cafebook.core.rate_limit import limiter
from cafebook.core.rbac import RequireAdmin
from cafebook.db.session import DbSession
from cafebook.models.cafe import Cafe
from cafebook.models.user import Profile
from cafebook.schemas.admin import AuditLogResponse, CafeAdminAction, ProfileResponse, RoleChangeRequest
from cafebook.schemas.cafe import CafeCreate, CafeResponse
from cafebook.schemas.tournament import TournamentCreate, TournamentResponse, TournamentStatusUpdate
from cafebook.services.audit_service import AuditAction, AuditEntityType, list_audit_logs, log_admin_action
from cafebook.services.tournament_service import TournamentService

router = APIRouter()

CAFE_ACTIONS = {
    "activate": ("is_active", True, AuditAction.ACTIVATE),
    "deactivate": ("is_active", False, AuditAction.DEACTIVATE),
    "feature": ("is_featured", True, AuditAction.FEATURE),
    "unfeature": ("is_featured", False, AuditAction.UNFEATURE),
}


@router.get("/cafes", response_model=List[CafeResponse])
def list_all_cafes(admin: RequireAdmin, db: DbSession, include_inactive: bool = Query(True)):
    query = db.query(Cafe)
    if not include_inactive:
        query = query.filter(Cafe.is_active.is_(True))
    return query.order_by(Cafe.name).all()


@router.post("/cafes", response_model=CafeResponse, status_code=201)
@limiter.limit("30/minute")
def create_cafe(request: Request, body: CafeCreate, admin: RequireAdmin, db: DbSession):
    if db.query(Cafe).filter(Cafe.slug == body.slug).first():
        raise ConflictError(f"Slug '{body.slug}' is already taken")
    if body.owner_id is not None and db.get(Profile, body.owner_id) is None:
        raise ValidationError("owner_id does not match any user")

    cafe = Cafe(**body.model_dump(exclude_unset=True))
    db.add(cafe)
    db.flush()
    log_admin_action(
        db,
        AuditAction.CREATE,
        AuditEntityType.CAFE,
        cafe.id,
        actor_id=admin.user_id,
        actor_name=admin.username,
        details={"name": cafe.name, "slug": cafe.slug},
        ip_address=get_remote_address(request),
    )
    db.commit()
    db.refresh(cafe)
    return cafe


@router.patch("/cafes/{cafe_id}", response_model=CafeResponse)
@limiter.limit("30/minute")
def update_cafe_flags(
    request: Request, cafe_id: int, body: CafeAdminAction, admin: RequireAdmin, db: DbSession
):
    """Activate, deactivate, feature or unfeature a café."""
    cafe = db.get(Cafe, cafe_id)
    if cafe is None:
        raise NotFoundError("Cafe not found")

    column, value, action = CAFE_ACTIONS[body.action]
    previous = getattr(cafe, column)
    setattr(cafe, column, value)
    log_admin_action(
        db,
        action,
        AuditEntityType.CAFE,
        cafe.id,
        actor_id=admin.user_id,
        actor_name=admin.username,
        details={column: {"old": previous, "new": value}},
        ip_address=get_remote_address(request),
    )
    db.commit()
    db.refresh(cafe)
    return cafe


@router.patch("/users/{user_id}/role", response_model=ProfileResponse)
@limiter.limit("30/minute")
def change_user_role(
    request: Request, user_id: int, body: RoleChangeRequest, admin: RequireAdmin, db: DbSession
):
    profile = db.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("User not found")
    if profile.id == admin.user_id:
        raise ValidationError("You cannot change your own role")

    previous = profile.role
    profile.role = body.role
    log_admin_action(
        db,
        AuditAction.CHANGE_ROLE,
        AuditEntityType.USER,
        profile.id,
        actor_id=admin.user_id,
        actor_name=admin.username,
        details={"old_role": previous, "new_role": body.role},
        ip_address=get_remote_address(request),
    )
    db.commit()
    db.refresh(profile)
    return profile


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
@limiter.limit("30/minute")
def create_tournament(request: Request, body: TournamentCreate, admin: RequireAdmin, db: DbSession):
    if body.cafe_id is not None and db.get(Cafe, body.cafe_id) is None:
        raise ValidationError("cafe_id does not match any cafe")

    tournament = TournamentService(db).create_tournament(body.model_dump(exclude_none=True))
    log_admin_action(
        db,
        AuditAction.CREATE,
        AuditEntityType.TOURNAMENT,
        tournament.id,
        actor_id=admin.user_id,
        actor_name=admin.username,
        details={"name": tournament.name, "date": tournament.tournament_date.isoformat()},
        ip_address=get_remote_address(request),
    )
    db.commit()
    db.refresh(tournament)
    return tournament


@router.patch("/tournaments/{tournament_id}/status", response_model=TournamentResponse)
@limiter.limit("30/minute")
def update_tournament_status(
    request: Request, tournament_id: int, body: TournamentStatusUpdate, admin: RequireAdmin, db: DbSession
):
    service = TournamentService(db)
    tournament = service.get_tournament(tournament_id)
    previous = tournament.status
    service.set_status(tournament, body.status.value)
    log_admin_action(
        db,
        AuditAction.UPDATE,
        AuditEntityType.TOURNAMENT,
        tournament.id,
        actor_id=admin.user_id,
        actor_name=admin.username,
        details={"status": {"old": previous, "new": tournament.status}},
        ip_address=get_remote_address(request),
    )
    db.commit()
    db.refresh(tournament)
    return tournament


@router.get("/audit-logs", response_model=List[AuditLogResponse])
def get_audit_logs(
    admin: RequireAdmin,
    db: DbSession,
    limit: int = Query(100, ge=1, le=500),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
):
    return list_audit_logs(db, limit=limit, action=action, entity_type=entity_type, user_id=user_id)
