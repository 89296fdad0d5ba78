import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.maintenance.application.ports import (
    MaintenanceRepository,
    NotificationReader,
    NotificationSink,
)
from app.maintenance.domain.errors import StoreError
from app.maintenance.domain.models import (
    Equipment,
    EquipmentCategory,
    EquipmentFilters,
    EquipmentStatus,
    MaintenanceFor,
    MaintenanceRequest,
    Notification,
    NotificationType,
    Priority,
    RelatedEntity,
    RelatedType,
    RequestFilters,
    RequestStage,
    RequestType,
    Requirement,
    RequirementStatus,
    Team,
    TrackingLog,
    UserRole,
    UserSummary,
    WorkCenter,
)
from database import (
    Equipment as EquipmentModel,
    EquipmentCategory as EquipmentCategoryModel,
    MaintenanceRequest as MaintenanceRequestModel,
    Notification as NotificationModel,
    Requirement as RequirementModel,
    Team as TeamModel,
    TrackingLog as TrackingLogModel,
    User as UserModel,
    WorkCenter as WorkCenterModel,
)

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store failure while %s: %s", action, exc)
        raise StoreError(f"Database error while {action}") from exc


# ==================== ROW <-> DOMAIN MAPPING ====================

def _to_user(row: UserModel) -> UserSummary:
    return UserSummary(
        id=row.id,
        name=row.name,
        email=row.email,
        role=UserRole(row.role),
        department=row.department,
        created_at=row.created_at,
    )


def _to_team(row: TeamModel) -> Team:
    return Team(
        id=row.id,
        name=row.name,
        description=row.description,
        member_ids=list(row.member_ids or []),
        created_at=row.created_at,
    )


def _to_equipment(row: EquipmentModel) -> Equipment:
    return Equipment(
        id=row.id,
        name=row.name,
        serial_number=row.serial_number,
        category=row.category,
        department_id=row.department_id,
        assigned_to_user_id=row.assigned_to_user_id,
        purchase_date=row.purchase_date,
        warranty_expiry=row.warranty_expiry,
        location=row.location,
        maintenance_team_id=row.maintenance_team_id,
        status=EquipmentStatus(row.status),
        notes=row.notes,
        work_center_id=row.work_center_id,
        scrap_date=row.scrap_date,
        created_at=row.created_at,
    )


def _to_request(row: MaintenanceRequestModel) -> MaintenanceRequest:
    return MaintenanceRequest(
        id=row.id,
        subject=row.subject,
        description=row.description,
        type=RequestType(row.type),
        maintenance_for=MaintenanceFor(row.maintenance_for),
        equipment_id=row.equipment_id,
        work_center_id=row.work_center_id,
        requested_by_user_id=row.requested_by_user_id,
        assigned_to_user_id=row.assigned_to_user_id,
        team_id=row.team_id,
        stage=RequestStage(row.stage),
        priority=Priority(row.priority),
        scheduled_date=row.scheduled_date,
        completed_date=row.completed_date,
        accepted_at=row.accepted_at,
        duration_hours=row.duration_hours,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_tracking_log(row: TrackingLogModel) -> TrackingLog:
    return TrackingLog(
        id=row.id,
        request_id=row.request_id,
        description=row.description,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _to_requirement(row: RequirementModel) -> Requirement:
    return Requirement(
        id=row.id,
        request_id=row.request_id,
        submitted_by=row.submitted_by,
        pricing=row.pricing,
        products=list(row.products or []),
        notes=row.notes,
        status=RequirementStatus(row.status),
        submitted_at=row.submitted_at,
        approved_at=row.approved_at,
    )


def _to_category(row: EquipmentCategoryModel) -> EquipmentCategory:
    return EquipmentCategory(
        id=row.id,
        name=row.name,
        description=row.description,
        responsible=row.responsible,
    )


def _to_work_center(row: WorkCenterModel) -> WorkCenter:
    return WorkCenter(
        id=row.id,
        name=row.name,
        description=row.description,
        cost=row.cost,
        cost_per_hour=row.cost_per_hour,
        cost_target=row.cost_target,
        allocated_man_hours=row.allocated_man_hours,
        created_at=row.created_at,
    )


def _to_notification(row: NotificationModel) -> Notification:
    related = None
    if row.related_id and row.related_type:
        related = RelatedEntity(kind=RelatedType(row.related_type), id=row.related_id)
    return Notification(
        id=row.id,
        user_id=row.user_id,
        type=NotificationType(row.type),
        title=row.title,
        message=row.message,
        related=related,
        is_read=row.is_read,
        created_at=row.created_at,
    )


class SqlAlchemyMaintenanceRepository(MaintenanceRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get(self, model, entity_id: str):
        with _store_errors(f"loading {model.__tablename__}"):
            result = await self._session.execute(select(model).where(model.id == entity_id))
            return result.scalar_one_or_none()

    async def _all(self, query) -> list:
        with _store_errors("listing records"):
            result = await self._session.execute(query)
            return list(result.scalars().all())

    async def _merge(self, row) -> None:
        with _store_errors(f"saving {row.__tablename__}"):
            await self._session.merge(row)

    async def _delete(self, model, *conditions) -> None:
        with _store_errors(f"deleting {model.__tablename__}"):
            await self._session.execute(delete(model).where(*conditions))

    # ==================== EQUIPMENT ====================

    async def get_equipment(self, equipment_id: str) -> Optional[Equipment]:
        row = await self._get(EquipmentModel, equipment_id)
        return _to_equipment(row) if row else None

    async def list_equipment(self, filters: EquipmentFilters) -> Sequence[Equipment]:
        query = select(EquipmentModel)
        if filters.team_id:
            query = query.where(EquipmentModel.maintenance_team_id == filters.team_id)
        if filters.status:
            query = query.where(EquipmentModel.status == filters.status.value)
        if filters.category:
            query = query.where(EquipmentModel.category == filters.category)
        query = query.order_by(EquipmentModel.name)
        return [_to_equipment(row) for row in await self._all(query)]

    async def save_equipment(self, equipment: Equipment) -> None:
        await self._merge(EquipmentModel(
            id=equipment.id,
            name=equipment.name,
            serial_number=equipment.serial_number,
            category=equipment.category,
            department_id=equipment.department_id,
            assigned_to_user_id=equipment.assigned_to_user_id,
            purchase_date=equipment.purchase_date,
            warranty_expiry=equipment.warranty_expiry,
            location=equipment.location,
            maintenance_team_id=equipment.maintenance_team_id,
            status=equipment.status.value,
            notes=equipment.notes,
            work_center_id=equipment.work_center_id,
            scrap_date=equipment.scrap_date,
            created_at=equipment.created_at,
        ))

    async def delete_equipment(self, equipment_id: str) -> None:
        await self._delete(EquipmentModel, EquipmentModel.id == equipment_id)

    # ==================== MAINTENANCE REQUESTS ====================

    async def get_request(self, request_id: str) -> Optional[MaintenanceRequest]:
        row = await self._get(MaintenanceRequestModel, request_id)
        return _to_request(row) if row else None

    async def list_requests(self, filters: RequestFilters) -> Sequence[MaintenanceRequest]:
        query = select(MaintenanceRequestModel)
        if filters.equipment_id:
            query = query.where(MaintenanceRequestModel.equipment_id == filters.equipment_id)
        if filters.team_id:
            query = query.where(MaintenanceRequestModel.team_id == filters.team_id)
        if filters.stage:
            query = query.where(MaintenanceRequestModel.stage == filters.stage.value)
        if filters.type:
            query = query.where(MaintenanceRequestModel.type == filters.type.value)
        if filters.assigned_to_user_id:
            query = query.where(
                MaintenanceRequestModel.assigned_to_user_id == filters.assigned_to_user_id
            )
        if filters.work_center_id:
            query = query.where(MaintenanceRequestModel.work_center_id == filters.work_center_id)
        query = query.order_by(desc(MaintenanceRequestModel.created_at))
        return [_to_request(row) for row in await self._all(query)]

    async def save_request(self, request: MaintenanceRequest) -> None:
        await self._merge(MaintenanceRequestModel(
            id=request.id,
            subject=request.subject,
            description=request.description,
            type=request.type.value,
            maintenance_for=request.maintenance_for.value,
            equipment_id=request.equipment_id,
            work_center_id=request.work_center_id,
            requested_by_user_id=request.requested_by_user_id,
            assigned_to_user_id=request.assigned_to_user_id,
            team_id=request.team_id,
            stage=request.stage.value,
            priority=request.priority.value,
            scheduled_date=request.scheduled_date,
            completed_date=request.completed_date,
            accepted_at=request.accepted_at,
            duration_hours=request.duration_hours,
            notes=request.notes,
            created_at=request.created_at,
            updated_at=request.updated_at,
        ))

    async def delete_request(self, request_id: str) -> None:
        await self._delete(MaintenanceRequestModel, MaintenanceRequestModel.id == request_id)

    # ==================== TEAMS ====================

    async def get_team(self, team_id: str) -> Optional[Team]:
        row = await self._get(TeamModel, team_id)
        return _to_team(row) if row else None

    async def list_teams(self) -> Sequence[Team]:
        return [_to_team(row) for row in await self._all(select(TeamModel).order_by(TeamModel.name))]

    async def save_team(self, team: Team) -> None:
        await self._merge(TeamModel(
            id=team.id,
            name=team.name,
            description=team.description,
            member_ids=list(team.member_ids),
            created_at=team.created_at,
        ))

    async def delete_team(self, team_id: str) -> None:
        await self._delete(TeamModel, TeamModel.id == team_id)

    # ==================== USERS ====================

    async def get_user(self, user_id: str) -> Optional[UserSummary]:
        row = await self._get(UserModel, user_id)
        return _to_user(row) if row else None

    async def list_users(self, roles: Optional[Sequence[UserRole]] = None) -> Sequence[UserSummary]:
        query = select(UserModel)
        if roles:
            query = query.where(UserModel.role.in_([role.value for role in roles]))
        query = query.order_by(UserModel.name)
        return [_to_user(row) for row in await self._all(query)]

    async def save_user(self, user: UserSummary) -> None:
        await self._merge(UserModel(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.value,
            department=user.department,
            created_at=user.created_at,
        ))

    async def delete_user(self, user_id: str) -> None:
        await self._delete(UserModel, UserModel.id == user_id)

    # ==================== TRACKING LOGS ====================

    async def list_tracking_logs(self, request_ids: Sequence[str]) -> Sequence[TrackingLog]:
        if not request_ids:
            return []
        query = (
            select(TrackingLogModel)
            .where(TrackingLogModel.request_id.in_(list(request_ids)))
            .order_by(TrackingLogModel.created_at)
        )
        return [_to_tracking_log(row) for row in await self._all(query)]

    async def add_tracking_log(self, log: TrackingLog) -> None:
        with _store_errors("adding tracking log"):
            self._session.add(TrackingLogModel(
                id=log.id,
                request_id=log.request_id,
                description=log.description,
                created_by=log.created_by,
                created_at=log.created_at,
            ))

    async def delete_tracking_logs(self, request_id: str) -> None:
        await self._delete(TrackingLogModel, TrackingLogModel.request_id == request_id)

    # ==================== REQUIREMENTS ====================

    async def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        row = await self._get(RequirementModel, requirement_id)
        return _to_requirement(row) if row else None

    async def list_requirements(self, request_ids: Sequence[str]) -> Sequence[Requirement]:
        if not request_ids:
            return []
        query = (
            select(RequirementModel)
            .where(RequirementModel.request_id.in_(list(request_ids)))
            .order_by(RequirementModel.submitted_at)
        )
        return [_to_requirement(row) for row in await self._all(query)]

    async def save_requirement(self, requirement: Requirement) -> None:
        await self._merge(RequirementModel(
            id=requirement.id,
            request_id=requirement.request_id,
            submitted_by=requirement.submitted_by,
            pricing=requirement.pricing,
            products=list(requirement.products),
            notes=requirement.notes,
            status=requirement.status.value,
            submitted_at=requirement.submitted_at,
            approved_at=requirement.approved_at,
        ))

    async def delete_requirements(self, request_id: str) -> None:
        await self._delete(RequirementModel, RequirementModel.request_id == request_id)

    # ==================== CATEGORIES & WORK CENTERS ====================

    async def get_category(self, category_id: str) -> Optional[EquipmentCategory]:
        row = await self._get(EquipmentCategoryModel, category_id)
        return _to_category(row) if row else None

    async def list_categories(self) -> Sequence[EquipmentCategory]:
        query = select(EquipmentCategoryModel).order_by(EquipmentCategoryModel.name)
        return [_to_category(row) for row in await self._all(query)]

    async def save_category(self, category: EquipmentCategory) -> None:
        await self._merge(EquipmentCategoryModel(
            id=category.id,
            name=category.name,
            description=category.description,
            responsible=category.responsible,
        ))

    async def delete_category(self, category_id: str) -> None:
        await self._delete(EquipmentCategoryModel, EquipmentCategoryModel.id == category_id)

    async def get_work_center(self, work_center_id: str) -> Optional[WorkCenter]:
        row = await self._get(WorkCenterModel, work_center_id)
        return _to_work_center(row) if row else None

    async def list_work_centers(self) -> Sequence[WorkCenter]:
        query = select(WorkCenterModel).order_by(WorkCenterModel.name)
        return [_to_work_center(row) for row in await self._all(query)]

    async def save_work_center(self, work_center: WorkCenter) -> None:
        await self._merge(WorkCenterModel(
            id=work_center.id,
            name=work_center.name,
            description=work_center.description,
            cost=work_center.cost,
            cost_per_hour=work_center.cost_per_hour,
            cost_target=work_center.cost_target,
            allocated_man_hours=work_center.allocated_man_hours,
            created_at=work_center.created_at,
        ))

    async def delete_work_center(self, work_center_id: str) -> None:
        await self._delete(WorkCenterModel, WorkCenterModel.id == work_center_id)

    async def commit(self) -> None:
        with _store_errors("committing"):
            await self._session.commit()


class SqlAlchemyNotificationStore(NotificationSink, NotificationReader):
    """Notification writes commit on their own so a failure never undoes the caller's work."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, notification: Notification) -> None:
        self._session.add(NotificationModel(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            related_id=notification.related.id if notification.related else None,
            related_type=notification.related.kind.value if notification.related else None,
            is_read=notification.is_read,
            created_at=notification.created_at,
        ))
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            raise

    async def list_for_user(self, user_id: str) -> Sequence[Notification]:
        with _store_errors("listing notifications"):
            result = await self._session.execute(
                select(NotificationModel)
                .where(NotificationModel.user_id == user_id)
                .order_by(desc(NotificationModel.created_at))
            )
            return [_to_notification(row) for row in result.scalars().all()]

    async def mark_read(self, notification_id: str) -> Optional[Notification]:
        with _store_errors("marking notification read"):
            result = await self._session.execute(
                select(NotificationModel).where(NotificationModel.id == notification_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            row.is_read = True
            await self._session.commit()
            return _to_notification(row)
