"""
Equipment Routes - equipment, categories and work centers
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_postgres_session
from app.config import utc_now
from app.maintenance.application.reference_data import (
    CategoryCatalog,
    EquipmentCatalog,
    WorkCenterCatalog,
)
from app.maintenance.application.use_cases import parse_enum
from app.maintenance.domain.errors import DomainError
from app.maintenance.domain.models import EquipmentFilters, EquipmentStatus, UserSummary
from app.maintenance.infrastructure.sqlalchemy_repository import SqlAlchemyMaintenanceRepository
from app.maintenance.presentation.response_mapper import (
    category_to_response,
    equipment_to_response,
    work_center_to_response,
)
from routes.auth_routes import get_current_user, require_admin, require_supervisor
from routes.common import CamelModel, http_error, new_id

# Create router
equipment_router = APIRouter(prefix="/api", tags=["Equipment"])


# ==================== PYDANTIC MODELS ====================

class EquipmentCreate(CamelModel):
    name: str
    serial_number: str
    category: str = ""
    department_id: str = ""
    purchase_date: str = ""
    location: str = ""
    maintenance_team_id: str = ""
    status: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    warranty_expiry: Optional[str] = None
    notes: Optional[str] = None
    work_center_id: Optional[str] = None


class EquipmentUpdate(CamelModel):
    id: str
    name: Optional[str] = None
    serial_number: Optional[str] = None
    category: Optional[str] = None
    department_id: Optional[str] = None
    purchase_date: Optional[str] = None
    location: Optional[str] = None
    maintenance_team_id: Optional[str] = None
    status: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    warranty_expiry: Optional[str] = None
    notes: Optional[str] = None
    work_center_id: Optional[str] = None


class CategoryCreate(CamelModel):
    name: str
    description: Optional[str] = None
    responsible: Optional[str] = None


class CategoryUpdate(CamelModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    responsible: Optional[str] = None


class WorkCenterCreate(CamelModel):
    name: str
    description: Optional[str] = None
    cost: Optional[float] = None
    cost_per_hour: Optional[float] = None
    cost_target: Optional[float] = None
    allocated_man_hours: Optional[float] = None


class WorkCenterUpdate(CamelModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[float] = None
    cost_per_hour: Optional[float] = None
    cost_target: Optional[float] = None
    allocated_man_hours: Optional[float] = None


def _changes(body: CamelModel) -> dict:
    return body.model_dump(exclude_unset=True, exclude={"id"})


def _equipment_catalog(session: AsyncSession) -> EquipmentCatalog:
    return EquipmentCatalog(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)


# ==================== EQUIPMENT ROUTES ====================

@equipment_router.get("/equipment")
async def get_equipment(
    id: Optional[str] = None,
    team_id: Optional[str] = Query(None, alias="teamId"),
    status: Optional[str] = None,
    category: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    catalog = _equipment_catalog(session)
    try:
        if id:
            return equipment_to_response(await catalog.get(id))
        filters = EquipmentFilters(
            team_id=team_id,
            status=parse_enum(EquipmentStatus, status, "status") if status else None,
            category=category,
        )
        equipment = await catalog.list(filters)
    except DomainError as exc:
        raise http_error(exc)
    return [equipment_to_response(e) for e in equipment]


@equipment_router.post("/equipment", status_code=201)
async def create_equipment(
    equipment_data: EquipmentCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Register equipment - admin only"""
    require_admin(current_user)
    try:
        equipment = await _equipment_catalog(session).create(equipment_data.model_dump())
    except DomainError as exc:
        raise http_error(exc)
    return equipment_to_response(equipment)


@equipment_router.put("/equipment")
async def update_equipment(
    equipment_data: EquipmentUpdate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Edit equipment - marking it Scrapped closes its open requests"""
    require_supervisor(current_user)
    try:
        equipment = await _equipment_catalog(session).update(equipment_data.id, _changes(equipment_data))
    except DomainError as exc:
        raise http_error(exc)
    return equipment_to_response(equipment)


@equipment_router.delete("/equipment")
async def delete_equipment(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Delete equipment together with its requests - admin only"""
    require_admin(current_user)
    if not id:
        raise HTTPException(status_code=400, detail="ID parameter required")
    try:
        await _equipment_catalog(session).delete(id)
    except DomainError as exc:
        raise http_error(exc)
    return {"success": True}


# ==================== CATEGORY ROUTES ====================

@equipment_router.get("/categories")
async def get_categories(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    catalog = CategoryCatalog(SqlAlchemyMaintenanceRepository(session), new_id)
    try:
        if id:
            return category_to_response(await catalog.get(id))
        categories = await catalog.list()
    except DomainError as exc:
        raise http_error(exc)
    return [category_to_response(c) for c in categories]


@equipment_router.post("/categories", status_code=201)
async def create_category(
    category_data: CategoryCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    require_admin(current_user)
    catalog = CategoryCatalog(SqlAlchemyMaintenanceRepository(session), new_id)
    try:
        category = await catalog.create(category_data.model_dump())
    except DomainError as exc:
        raise http_error(exc)
    return category_to_response(category)


@equipment_router.put("/categories")
async def update_category(
    category_data: CategoryUpdate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    require_admin(current_user)
    catalog = CategoryCatalog(SqlAlchemyMaintenanceRepository(session), new_id)
    try:
        category = await catalog.update(category_data.id, _changes(category_data))
    except DomainError as exc:
        raise http_error(exc)
    return category_to_response(category)


@equipment_router.delete("/categories")
async def delete_category(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Delete a category and blank it on equipment"""
    require_admin(current_user)
    if not id:
        raise HTTPException(status_code=400, detail="ID parameter required")
    try:
        await CategoryCatalog(SqlAlchemyMaintenanceRepository(session), new_id).delete(id)
    except DomainError as exc:
        raise http_error(exc)
    return {"success": True}


# ==================== WORK CENTER ROUTES ====================

@equipment_router.get("/workcenters")
async def get_work_centers(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    catalog = WorkCenterCatalog(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)
    try:
        if id:
            return work_center_to_response(await catalog.get(id))
        work_centers = await catalog.list()
    except DomainError as exc:
        raise http_error(exc)
    return [work_center_to_response(wc) for wc in work_centers]


@equipment_router.post("/workcenters", status_code=201)
async def create_work_center(
    work_center_data: WorkCenterCreate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    require_supervisor(current_user)
    catalog = WorkCenterCatalog(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)
    try:
        work_center = await catalog.create(work_center_data.model_dump())
    except DomainError as exc:
        raise http_error(exc)
    return work_center_to_response(work_center)


@equipment_router.put("/workcenters")
async def update_work_center(
    work_center_data: WorkCenterUpdate,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    require_supervisor(current_user)
    catalog = WorkCenterCatalog(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)
    try:
        work_center = await catalog.update(work_center_data.id, _changes(work_center_data))
    except DomainError as exc:
        raise http_error(exc)
    return work_center_to_response(work_center)


@equipment_router.delete("/workcenters")
async def delete_work_center(
    id: Optional[str] = None,
    current_user: UserSummary = Depends(get_current_user),
    session: AsyncSession = Depends(get_postgres_session)
):
    """Delete a work center and clear it on requests"""
    require_supervisor(current_user)
    if not id:
        raise HTTPException(status_code=400, detail="ID parameter required")
    catalog = WorkCenterCatalog(SqlAlchemyMaintenanceRepository(session), new_id, utc_now)
    try:
        await catalog.delete(id)
    except DomainError as exc:
        raise http_error(exc)
    return {"success": True}
