"""
Directory Routes - teams, users and notifications
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import EmailStr
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_postgres_session
from app.config import utc_now
from app.maintenance.application.reference_data import (
    NotificationInbox,
    TeamDirectory,
    UserDirectory,
)
from app.maintenance.domain.errors import DomainError
from app.maintenance.domain.models import SUPERVISOR_ROLES, UserSummary
from app.maintenance.infrastructure.sqlalchemy_repository import (
    SqlAlchemyMaintenanceRepository,
    SqlAlchemyNotificationStore,
)
from app.maintenance.presentation.response_mapper import (
    notification_to_response,
    team_to_response,
    user_to_response,
)
from routes.auth_routes import get_current_user, require_admin, require_supervisor
from routes.common import CamelModel, http_error, new_id

# Create router
directory_router = APIRouter(prefix="/api", tags=["Teams & Users"])


# ==================== PYDANTIC MODELS ====================

class TeamCreate(CamelModel):
    name: str
    description: Optional[str] = None
    member_ids: List[str] = []


class TeamUpdate(CamelModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    member_ids: Optional[List[str]] = None


class UserCreate(CamelModel):
    name: str
    email: EmailStr
    role: str
    department: Optional[str] = None


class UserUpdate(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    department: Optional[str] = None


def _teams(session: AsyncSession) -> TeamDirectory:
    return TeamDirectory(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)


def _users(session: AsyncSession) -> UserDirectory:
    return UserDirectory(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)


# ==================== TEAM ROUTES ====================

@directory_router.get("/teams")
async def get_teams(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    try:
        if id:
            return team_to_response(await _teams(session).get(id))
        teams = await _teams(session).list()
    except DomainError as exc:
        raise http_error(exc)
    return [team_to_response(t) for t in teams]


@directory_router.post("/teams", status_code=201)
async def create_team(
    team_data: TeamCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    require_supervisor(current_user)
    try:
        team = await _teams(session).create(team_data.model_dump())
    except DomainError as exc:
        raise http_error(exc)
    return team_to_response(team)


@directory_router.put("/teams")
async def update_team(
    team_data: TeamUpdate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Edit a team - the first member receives new request notifications"""
    require_supervisor(current_user)
    changes = team_data.model_dump(exclude_unset=True, exclude={"id"})
    try:
        team = await _teams(session).update(team_data.id, changes)
    except DomainError as exc:
        raise http_error(exc)
    return team_to_response(team)


@directory_router.delete("/teams")
async def delete_team(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Delete a team and clear it from equipment and requests"""
    require_supervisor(current_user)
    if not id:
        raise HTTPException(status_code=400, detail="ID parameter required")
    try:
        await _teams(session).delete(id)
    except DomainError as exc:
        raise http_error(exc)
    return {"success": True}


# ==================== USER ROUTES ====================

@directory_router.get("/users")
async def get_users(
    id: Optional[str] = None,
    role: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    try:
        if id:
            return user_to_response(await _users(session).get(id))
        users = await _users(session).list(role)
    except DomainError as exc:
        raise http_error(exc)
    return [user_to_response(u) for u in users]


@directory_router.post("/users", status_code=201)
async def create_user(
    user_data: UserCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Add a user - admin only"""
    require_admin(current_user)
    try:
        user = await _users(session).create(user_data.model_dump())
    except DomainError as exc:
        raise http_error(exc)
    return user_to_response(user)


@directory_router.put("/users")
async def update_user(
    user_data: UserUpdate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    require_admin(current_user)
    changes = user_data.model_dump(exclude_unset=True, exclude={"id"})
    try:
        user = await _users(session).update(user_data.id, changes)
    except DomainError as exc:
        raise http_error(exc)
    return user_to_response(user)


@directory_router.delete("/users")
async def delete_user(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Delete a user, remove them from teams and unassign their requests"""
    require_admin(current_user)
    if not id:
        raise HTTPException(status_code=400, detail="ID parameter required")
    try:
        await _users(session).delete(id)
    except DomainError as exc:
        raise http_error(exc)
    return {"success": True}


# ==================== NOTIFICATION ROUTES ====================

@directory_router.get("/notifications")
async def get_notifications(
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Notifications for the caller, or for ?userId= when admin / manager"""
    target = user_id or current_user.id
    if target != current_user.id and current_user.role not in SUPERVISOR_ROLES:
        raise HTTPException(status_code=403, detail="You can only read your own notifications")
    try:
        notifications = await NotificationInbox(SqlAlchemyNotificationStore(session)).list(target)
    except DomainError as exc:
        raise http_error(exc)
    return [notification_to_response(n) for n in notifications]


@directory_router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    try:
        notification = await NotificationInbox(SqlAlchemyNotificationStore(session)).mark_read(
            notification_id
        )
    except DomainError as exc:
        raise http_error(exc)
    return notification_to_response(notification)
