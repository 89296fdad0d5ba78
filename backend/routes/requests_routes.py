"""
Maintenance Request Routes - lifecycle endpoints
Create / update / assign / stage changes go through the lifecycle use cases
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional, List
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_postgres_session
from app.config import app_settings, utc_now
from app.maintenance.application.use_cases import (
    AddTrackingLogCommand,
    AddTrackingLogUseCase,
    AssignTechnicianCommand,
    AssignTechnicianUseCase,
    CreateMaintenanceRequestCommand,
    CreateMaintenanceRequestUseCase,
    DeleteMaintenanceRequestUseCase,
    EquipmentHistoryUseCase,
    GetMaintenanceRequestUseCase,
    ListMaintenanceRequestsQuery,
    ListMaintenanceRequestsUseCase,
    ReviewRequirementCommand,
    ReviewRequirementUseCase,
    SubmitRequirementCommand,
    SubmitRequirementUseCase,
    TransitionStageCommand,
    TransitionStageUseCase,
    UpdateMaintenanceRequestCommand,
    UpdateMaintenanceRequestUseCase,
)
from app.maintenance.domain.errors import DomainError
from app.maintenance.domain.models import (
    SUPERVISOR_ROLES,
    MaintenanceFor,
    MaintenanceRequest,
    Priority,
    UserRole,
    UserSummary,
)
from app.maintenance.infrastructure.sqlalchemy_repository import SqlAlchemyMaintenanceRepository
from app.maintenance.presentation.response_mapper import (
    equipment_history_to_response,
    maintenance_request_to_response,
    requirement_to_response,
    tracking_log_to_response,
)
from routes.auth_routes import get_current_user, require_admin, require_supervisor
from routes.common import CamelModel, http_error, lifecycle_dependencies

# Create router
requests_router = APIRouter(prefix="/api", tags=["Maintenance Requests"])


# ==================== PYDANTIC MODELS ====================

class RequestCreate(CamelModel):
    subject: str
    type: str
    equipment_id: str = ""
    requested_by_user_id: Optional[str] = None
    team_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    description: Optional[str] = None
    maintenance_for: str = MaintenanceFor.EQUIPMENT.value
    work_center_id: Optional[str] = None
    priority: str = Priority.MEDIUM.value
    duration_hours: Optional[float] = None
    notes: Optional[str] = None


class RequestUpdate(CamelModel):
    id: str
    subject: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    maintenance_for: Optional[str] = None
    equipment_id: Optional[str] = None
    work_center_id: Optional[str] = None
    requested_by_user_id: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    team_id: Optional[str] = None
    stage: Optional[str] = None
    priority: Optional[str] = None
    scheduled_date: Optional[date] = None
    duration_hours: Optional[float] = None
    notes: Optional[str] = None


class AssignData(CamelModel):
    user_id: Optional[str] = None


class StageData(CamelModel):
    stage: str


class TrackingLogCreate(CamelModel):
    request_id: str
    description: str


class RequirementCreate(CamelModel):
    request_id: str
    products: List[str]
    pricing: Optional[float] = None
    notes: Optional[str] = None


class RequirementReview(CamelModel):
    status: str


# ==================== HELPER FUNCTIONS ====================

def can_work_on(current_user: UserSummary, request: MaintenanceRequest) -> bool:
    if current_user.role in SUPERVISOR_ROLES:
        return True
    return current_user.role is UserRole.TECHNICIAN and request.assigned_to_user_id == current_user.id


async def load_for_work(session: AsyncSession, request_id: str, current_user: UserSummary) -> None:
    request = await SqlAlchemyMaintenanceRepository(session).get_request(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Request not found")
    if not can_work_on(current_user, request):
        raise HTTPException(status_code=403, detail="You are not allowed to change this request")


# ==================== MAINTENANCE REQUEST ROUTES ====================

@requests_router.get("/requests")
async def get_requests(
    id: Optional[str] = None,
    equipment_id: Optional[str] = Query(None, alias="equipmentId"),
    team_id: Optional[str] = Query(None, alias="teamId"),
    stage: Optional[str] = None,
    type: Optional[str] = None,
    assigned_to_user_id: Optional[str] = Query(None, alias="assignedToUserId"),
    work_center_id: Optional[str] = Query(None, alias="workCenterId"),
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """List requests, or fetch one with ?id= - isOverdue is computed per read"""
    repository = SqlAlchemyMaintenanceRepository(session)
    try:
        if id:
            view = await GetMaintenanceRequestUseCase(repository, utc_now).execute(id)
            return maintenance_request_to_response(view)
        query = ListMaintenanceRequestsQuery(
            equipment_id=equipment_id,
            team_id=team_id,
            stage=stage,
            type=type,
            assigned_to_user_id=assigned_to_user_id,
            work_center_id=work_center_id,
        )
        views = await ListMaintenanceRequestsUseCase(repository, utc_now).execute(query)
    except DomainError as exc:
        raise http_error(exc)

    return [maintenance_request_to_response(view) for view in views]


@requests_router.post("/requests", status_code=201)
async def create_request(
    request_data: RequestCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Create a maintenance request - any signed-in user"""
    use_case = CreateMaintenanceRequestUseCase(**lifecycle_dependencies(session))
    command = CreateMaintenanceRequestCommand(
        subject=request_data.subject,
        type=request_data.type,
        equipment_id=request_data.equipment_id,
        requested_by_user_id=request_data.requested_by_user_id or current_user.id,
        team_id=request_data.team_id,
        scheduled_date=request_data.scheduled_date,
        description=request_data.description,
        maintenance_for=request_data.maintenance_for,
        work_center_id=request_data.work_center_id,
        priority=request_data.priority,
        duration_hours=request_data.duration_hours,
        notes=request_data.notes,
    )
    try:
        request = await use_case.execute(command)
    except DomainError as exc:
        raise http_error(exc)

    return maintenance_request_to_response(request)


@requests_router.put("/requests")
async def update_request(
    request_data: RequestUpdate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Patch a request - admin, manager or the assigned technician"""
    await load_for_work(session, request_data.id, current_user)
    changes = request_data.model_dump(exclude_unset=True, exclude={"id"})
    if "assigned_to_user_id" in changes and current_user.role not in SUPERVISOR_ROLES:
        raise HTTPException(status_code=403, detail="Only admins and managers can reassign requests")

    use_case = UpdateMaintenanceRequestUseCase(**lifecycle_dependencies(session))
    try:
        request = await use_case.execute(
            UpdateMaintenanceRequestCommand(request_id=request_data.id, changes=changes)
        )
    except DomainError as exc:
        raise http_error(exc)

    return maintenance_request_to_response(request)


@requests_router.delete("/requests")
async def delete_request(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Delete a request with its tracking logs and requirements - admin / manager"""
    require_supervisor(current_user)
    if not id:
        raise HTTPException(status_code=400, detail="ID parameter required")

    try:
        await DeleteMaintenanceRequestUseCase(SqlAlchemyMaintenanceRepository(session)).execute(id)
    except DomainError as exc:
        raise http_error(exc)

    return {"success": True}


@requests_router.post("/requests/{request_id}/assign")
async def assign_request(
    request_id: str,
    assign_data: AssignData,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Assign or unassign a technician - admin / manager"""
    require_supervisor(current_user)
    use_case = AssignTechnicianUseCase(**lifecycle_dependencies(session))
    try:
        request = await use_case.execute(
            AssignTechnicianCommand(request_id=request_id, user_id=assign_data.user_id)
        )
    except DomainError as exc:
        raise http_error(exc)

    return maintenance_request_to_response(request)


@requests_router.post("/requests/{request_id}/stage")
async def change_stage(
    request_id: str,
    stage_data: StageData,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Move a request along New -> In Progress -> Repaired, or to Scrap"""
    await load_for_work(session, request_id, current_user)
    use_case = TransitionStageUseCase(**lifecycle_dependencies(session))
    try:
        request = await use_case.execute(
            TransitionStageCommand(request_id=request_id, new_stage=stage_data.stage)
        )
    except DomainError as exc:
        raise http_error(exc)

    return maintenance_request_to_response(request)


# ==================== TRACKING LOG ROUTES ====================

@requests_router.get("/tracking-logs")
async def get_tracking_logs(
    request_id: str = Query(..., alias="requestId"),
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    repository = SqlAlchemyMaintenanceRepository(session)
    try:
        logs = await repository.list_tracking_logs([request_id])
    except DomainError as exc:
        raise http_error(exc)
    return [tracking_log_to_response(log) for log in logs]


@requests_router.post("/tracking-logs", status_code=201)
async def add_tracking_log(
    log_data: TrackingLogCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Append a progress note - the author is the caller"""
    use_case = AddTrackingLogUseCase(
        **lifecycle_dependencies(session),
        preview_length=app_settings.tracking_preview_length,
    )
    command = AddTrackingLogCommand(
        request_id=log_data.request_id,
        description=log_data.description,
        created_by=current_user.id,
    )
    try:
        log = await use_case.execute(command)
    except DomainError as exc:
        raise http_error(exc)

    return tracking_log_to_response(log)


# ==================== REQUIREMENT ROUTES ====================

@requests_router.get("/requirements")
async def get_requirements(
    request_id: str = Query(..., alias="requestId"),
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    repository = SqlAlchemyMaintenanceRepository(session)
    try:
        requirements = await repository.list_requirements([request_id])
    except DomainError as exc:
        raise http_error(exc)
    return [requirement_to_response(r) for r in requirements]


@requests_router.post("/requirements", status_code=201)
async def submit_requirement(
    requirement_data: RequirementCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Submit parts / pricing for a request - admins are notified"""
    use_case = SubmitRequirementUseCase(**lifecycle_dependencies(session))
    command = SubmitRequirementCommand(
        request_id=requirement_data.request_id,
        submitted_by=current_user.id,
        products=requirement_data.products,
        pricing=requirement_data.pricing,
        notes=requirement_data.notes,
    )
    try:
        requirement = await use_case.execute(command)
    except DomainError as exc:
        raise http_error(exc)

    return requirement_to_response(requirement)


@requests_router.post("/requirements/{requirement_id}/review")
async def review_requirement(
    requirement_id: str,
    review_data: RequirementReview,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Approve or reject a requirement - admin only"""
    require_admin(current_user)
    use_case = ReviewRequirementUseCase(**lifecycle_dependencies(session))
    try:
        requirement = await use_case.execute(
            ReviewRequirementCommand(requirement_id=requirement_id, status=review_data.status)
        )
    except DomainError as exc:
        raise http_error(exc)

    return requirement_to_response(requirement)


# ==================== EQUIPMENT HISTORY ====================

@requests_router.get("/equipment-history")
async def get_equipment_history(
    equipment_id: str = Query(..., alias="equipmentId"),
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Equipment with every request, log and requirement recorded against it"""
    use_case = EquipmentHistoryUseCase(SqlAlchemyMaintenanceRepository(session))
    try:
        history = await use_case.execute(equipment_id)
    except DomainError as exc:
        raise http_error(exc)

    return equipment_history_to_response(history)
