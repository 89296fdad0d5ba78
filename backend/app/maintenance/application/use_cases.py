import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from app.maintenance.application.notifier import Clock, IdGenerator, Notifier
from app.maintenance.application.ports import MaintenanceRepository, NotificationSink
from app.maintenance.domain.errors import NotFoundError, ValidationError
from app.maintenance.domain.models import (
    OPEN_STAGES,
    SUPERVISOR_ROLES,
    EquipmentHistory,
    EquipmentStatus,
    MaintenanceFor,
    MaintenanceRequest,
    MaintenanceRequestView,
    NotificationType,
    Priority,
    RelatedEntity,
    RequestFilters,
    RequestStage,
    RequestType,
    Requirement,
    RequirementStatus,
    TrackingLog,
    UserRole,
)
from app.maintenance.domain.stage_machine import StageChange, apply_stage, force_scrap, parse_stage

logger = logging.getLogger(__name__)

ENUM_FIELDS = {
    "type": RequestType,
    "maintenance_for": MaintenanceFor,
    "priority": Priority,
}

# Stored as NOT NULL; a patch may change them but never clear them
REQUIRED_REQUEST_FIELDS = (
    "subject",
    "type",
    "maintenance_for",
    "requested_by_user_id",
    "stage",
    "priority",
)


def parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}'. Expected one of: {allowed}")


def parse_date(value: Any, field_name: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"Invalid {field_name} '{value}'. Expected YYYY-MM-DD")


def require_scheduled_date(request_type: RequestType, scheduled_date: Optional[date]) -> None:
    if request_type is RequestType.PREVENTIVE and scheduled_date is None:
        raise ValidationError("Scheduled date is required for preventive maintenance")


def coerce_request_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    coerced = dict(changes)
    for field_name in REQUIRED_REQUEST_FIELDS:
        if field_name in coerced and coerced[field_name] is None:
            raise ValidationError(f"{field_name} cannot be empty")
    for field_name in ("equipment_id", "team_id"):
        if field_name in coerced and coerced[field_name] is None:
            coerced[field_name] = ""
    for field_name, enum_cls in ENUM_FIELDS.items():
        if field_name in coerced:
            coerced[field_name] = parse_enum(enum_cls, coerced[field_name], field_name)
    if "stage" in coerced:
        coerced["stage"] = parse_stage(coerced["stage"])
    if "scheduled_date" in coerced:
        coerced["scheduled_date"] = parse_date(coerced["scheduled_date"], "scheduled_date")
    if "subject" in coerced and not (coerced["subject"] or "").strip():
        raise ValidationError("Subject is required")
    return coerced


@dataclass(frozen=True)
class CreateMaintenanceRequestCommand:
    subject: str
    type: RequestType
    equipment_id: str
    requested_by_user_id: str
    team_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    description: Optional[str] = None
    maintenance_for: MaintenanceFor = MaintenanceFor.EQUIPMENT
    work_center_id: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    assigned_to_user_id: Optional[str] = None
    duration_hours: Optional[float] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class UpdateMaintenanceRequestCommand:
    request_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class AssignTechnicianCommand:
    request_id: str
    user_id: Optional[str]


@dataclass(frozen=True)
class TransitionStageCommand:
    request_id: str
    new_stage: Any


@dataclass(frozen=True)
class AddTrackingLogCommand:
    request_id: str
    description: str
    created_by: str


@dataclass(frozen=True)
class SubmitRequirementCommand:
    request_id: str
    submitted_by: str
    products: Sequence[str]
    pricing: Optional[float] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ReviewRequirementCommand:
    requirement_id: str
    status: Any


@dataclass(frozen=True)
class ListMaintenanceRequestsQuery:
    equipment_id: Optional[str] = None
    team_id: Optional[str] = None
    stage: Optional[str] = None
    type: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    work_center_id: Optional[str] = None


class _RequestLifecycleUseCase:
    def __init__(
        self,
        repository: MaintenanceRepository,
        notifications: NotificationSink,
        id_generator: IdGenerator,
        clock: Clock,
        enforce_forward_transitions: bool = True,
    ) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock
        self._notifier = Notifier(notifications, id_generator, clock)
        self._enforce_forward = enforce_forward_transitions

    async def _load_request(self, request_id: str) -> MaintenanceRequest:
        request = await self._repository.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Maintenance request {request_id} not found")
        return request

    async def _store_stage_change(self, change: StageChange) -> MaintenanceRequest:
        request = change.request
        await self._repository.save_request(request)
        await self._repository.commit()
        if change.changed:
            logger.info(
                "Request %s moved from %s to %s",
                request.id,
                change.previous.stage.value,
                request.stage.value,
            )
        if change.scrapped:
            await scrap_equipment(self._repository, request.equipment_id, self._clock(), request.id)
        return request


async def scrap_equipment(
    repository: MaintenanceRepository,
    equipment_id: str,
    now: datetime,
    source_request_id: Optional[str] = None,
) -> None:
    """Mark equipment Scrapped and force-close its other open requests.

    The equipment write and each request write are committed separately.
    """
    equipment = await repository.get_equipment(equipment_id)
    if equipment is None:
        logger.warning("Scrap cascade skipped: equipment %s not found", equipment_id)
    elif equipment.status is not EquipmentStatus.SCRAPPED:
        await repository.save_equipment(
            replace(equipment, status=EquipmentStatus.SCRAPPED, scrap_date=now)
        )
        await repository.commit()
        logger.info("Equipment %s scrapped", equipment_id)

    open_requests = await repository.list_requests(RequestFilters(equipment_id=equipment_id))
    for other in open_requests:
        if other.id == source_request_id or other.stage not in OPEN_STAGES:
            continue
        if other.maintenance_for is not MaintenanceFor.EQUIPMENT:
            continue
        await repository.save_request(force_scrap(other, now))
        await repository.commit()
        logger.info("Request %s force-closed after equipment %s was scrapped", other.id, equipment_id)


class CreateMaintenanceRequestUseCase(_RequestLifecycleUseCase):
    async def execute(self, command: CreateMaintenanceRequestCommand) -> MaintenanceRequest:
        if not (command.subject or "").strip():
            raise ValidationError("Subject is required")
        request_type = parse_enum(RequestType, command.type, "type")
        maintenance_for = parse_enum(MaintenanceFor, command.maintenance_for, "maintenance_for")
        priority = parse_enum(Priority, command.priority, "priority")
        scheduled_date = parse_date(command.scheduled_date, "scheduled_date")
        require_scheduled_date(request_type, scheduled_date)
        if not command.requested_by_user_id:
            raise ValidationError("Requester is required")

        team_id = command.team_id or ""
        if not team_id and maintenance_for is MaintenanceFor.EQUIPMENT and command.equipment_id:
            equipment = await self._repository.get_equipment(command.equipment_id)
            if equipment is not None:
                team_id = equipment.maintenance_team_id or ""
            else:
                logger.warning(
                    "Equipment %s not found, request created without a team",
                    command.equipment_id,
                )

        now = self._clock()
        request = MaintenanceRequest(
            id=self._id_generator(),
            subject=command.subject.strip(),
            description=command.description,
            type=request_type,
            maintenance_for=maintenance_for,
            equipment_id=command.equipment_id or "",
            work_center_id=command.work_center_id,
            requested_by_user_id=command.requested_by_user_id,
            assigned_to_user_id=command.assigned_to_user_id or None,
            team_id=team_id,
            stage=RequestStage.NEW,
            priority=priority,
            scheduled_date=scheduled_date,
            duration_hours=command.duration_hours,
            notes=command.notes,
            created_at=now,
            updated_at=now,
        )
        await self._repository.save_request(request)
        await self._repository.commit()
        logger.info("Created %s request %s for team %s", request_type.value, request.id, team_id or "-")

        if team_id:
            team = await self._repository.get_team(team_id)
            if team is not None and team.member_ids:
                await self._notifier.notify(
                    team.member_ids[0],
                    NotificationType.NEW_REQUEST,
                    "New Maintenance Request",
                    f"New request: {request.subject}",
                    RelatedEntity.request(request.id),
                )
        return request


class UpdateMaintenanceRequestUseCase(_RequestLifecycleUseCase):
    async def execute(self, command: UpdateMaintenanceRequestCommand) -> MaintenanceRequest:
        request = await self._load_request(command.request_id)
        changes = coerce_request_changes(command.changes)
        change = apply_stage(request, changes, self._clock(), self._enforce_forward)
        require_scheduled_date(change.request.type, change.request.scheduled_date)
        updated = await self._store_stage_change(change)

        if change.changed:
            recipient = updated.assigned_to_user_id or updated.requested_by_user_id
            notification_type = (
                NotificationType.REQUEST_COMPLETED
                if change.completed
                else NotificationType.REQUEST_UPDATED
            )
            await self._notifier.notify(
                recipient,
                notification_type,
                "Request Status Updated",
                f'Request "{updated.subject}" status changed to {updated.stage.value}',
                RelatedEntity.request(updated.id),
            )
        return updated


class TransitionStageUseCase(_RequestLifecycleUseCase):
    async def execute(self, command: TransitionStageCommand) -> MaintenanceRequest:
        new_stage = parse_stage(command.new_stage)
        request = await self._load_request(command.request_id)
        if request.stage == new_stage:
            return request

        change = apply_stage(request, {"stage": new_stage}, self._clock(), self._enforce_forward)
        updated = await self._store_stage_change(change)
        related = RelatedEntity.request(updated.id)

        if change.started:
            await self._notifier.notify(
                updated.requested_by_user_id,
                NotificationType.REQUEST_UPDATED,
                "Request In Progress",
                f'Your request "{updated.subject}" is now in progress',
                related,
            )
        elif change.completed:
            await self._notifier.notify(
                updated.requested_by_user_id,
                NotificationType.REQUEST_COMPLETED,
                "Request Completed",
                f'Your request "{updated.subject}" has been completed',
                related,
            )
            assignee = None
            if updated.assigned_to_user_id:
                assignee = await self._repository.get_user(updated.assigned_to_user_id)
            assignee_name = assignee.name if assignee else "technician"
            for supervisor in await self._repository.list_users(sorted(SUPERVISOR_ROLES)):
                await self._notifier.notify(
                    supervisor.id,
                    NotificationType.REQUEST_COMPLETED,
                    "Request Completed",
                    f'Request "{updated.subject}" has been completed by {assignee_name}',
                    related,
                )
        else:
            await self._notifier.notify(
                updated.requested_by_user_id,
                NotificationType.REQUEST_UPDATED,
                "Request Status Updated",
                f'Your request "{updated.subject}" status changed to {updated.stage.value}',
                related,
            )
        return updated


class AssignTechnicianUseCase(_RequestLifecycleUseCase):
    async def execute(self, command: AssignTechnicianCommand) -> MaintenanceRequest:
        request = await self._load_request(command.request_id)
        new_assignee_id = command.user_id or None
        new_assignee = None
        if new_assignee_id:
            new_assignee = await self._repository.get_user(new_assignee_id)
            if new_assignee is None:
                raise NotFoundError(f"User {new_assignee_id} not found")

        previous_assignee_id = request.assigned_to_user_id
        updated = replace(request, assigned_to_user_id=new_assignee_id, updated_at=self._clock())
        await self._repository.save_request(updated)
        await self._repository.commit()
        logger.info(
            "Request %s assigned to %s (was %s)",
            updated.id,
            new_assignee_id or "nobody",
            previous_assignee_id or "nobody",
        )

        related = RelatedEntity.request(updated.id)
        if previous_assignee_id and previous_assignee_id != new_assignee_id:
            new_name = new_assignee.name if new_assignee else "another technician"
            await self._notifier.notify(
                previous_assignee_id,
                NotificationType.TASK_REASSIGNED,
                "Task Reassigned",
                f'Task "{updated.subject}" has been reassigned to {new_name}',
                related,
            )
        if new_assignee_id:
            await self._notifier.notify(
                new_assignee_id,
                NotificationType.REQUEST_ASSIGNED,
                "Task Assigned to You",
                f"You have been assigned to: {updated.subject}",
                related,
            )
        return updated


class DeleteMaintenanceRequestUseCase:
    def __init__(self, repository: MaintenanceRepository) -> None:
        self._repository = repository

    async def execute(self, request_id: str) -> None:
        request = await self._repository.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Maintenance request {request_id} not found")
        await self._repository.delete_tracking_logs(request_id)
        await self._repository.delete_requirements(request_id)
        await self._repository.delete_request(request_id)
        await self._repository.commit()
        logger.info("Deleted request %s with its tracking logs and requirements", request_id)


class AddTrackingLogUseCase(_RequestLifecycleUseCase):
    def __init__(self, *args, preview_length: int = 50, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._preview_length = preview_length

    async def execute(self, command: AddTrackingLogCommand) -> TrackingLog:
        description = (command.description or "").strip()
        if not description:
            raise ValidationError("Tracking description is required")
        if not command.created_by:
            raise ValidationError("Author is required")
        request = await self._load_request(command.request_id)

        log = TrackingLog(
            id=self._id_generator(),
            request_id=request.id,
            description=description,
            created_by=command.created_by,
            created_at=self._clock(),
        )
        await self._repository.add_tracking_log(log)
        await self._repository.commit()

        author = await self._repository.get_user(command.created_by)
        if author is not None and author.role is UserRole.TECHNICIAN:
            await self._notifier.notify(
                request.requested_by_user_id,
                NotificationType.TRACKING_UPDATED,
                "Request Update",
                f"Update on {request.subject}: {description[:self._preview_length]}...",
                RelatedEntity.request(request.id),
            )
        return log


class SubmitRequirementUseCase(_RequestLifecycleUseCase):
    async def execute(self, command: SubmitRequirementCommand) -> Requirement:
        products = [product.strip() for product in command.products if product and product.strip()]
        if not products:
            raise ValidationError("At least one product is required")
        if not command.submitted_by:
            raise ValidationError("Submitter is required")
        request = await self._load_request(command.request_id)

        requirement = Requirement(
            id=self._id_generator(),
            request_id=request.id,
            submitted_by=command.submitted_by,
            products=products,
            pricing=command.pricing,
            notes=command.notes,
            status=RequirementStatus.PENDING,
            submitted_at=self._clock(),
        )
        await self._repository.save_requirement(requirement)
        await self._repository.commit()

        for admin in await self._repository.list_users([UserRole.ADMIN]):
            await self._notifier.notify(
                admin.id,
                NotificationType.REQUIREMENT_SUBMITTED,
                "Repair Requirements Submitted",
                f"Technician submitted requirements for {request.subject}",
                RelatedEntity.request(request.id),
            )
        return requirement


class ReviewRequirementUseCase(_RequestLifecycleUseCase):
    async def execute(self, command: ReviewRequirementCommand) -> Requirement:
        status = parse_enum(RequirementStatus, command.status, "status")
        if status is RequirementStatus.PENDING:
            raise ValidationError("A review must approve or reject the requirement")
        requirement = await self._repository.get_requirement(command.requirement_id)
        if requirement is None:
            raise NotFoundError(f"Requirement {command.requirement_id} not found")

        now = self._clock()
        reviewed = replace(
            requirement,
            status=status,
            approved_at=now if status is RequirementStatus.APPROVED else None,
        )
        await self._repository.save_requirement(reviewed)
        await self._repository.commit()

        await self._notifier.notify(
            reviewed.submitted_by,
            NotificationType.REQUEST_UPDATED,
            "Requirements Reviewed",
            f"Your requirements were {status.value}",
            RelatedEntity.request(reviewed.request_id),
        )
        return reviewed


class GetMaintenanceRequestUseCase:
    def __init__(self, repository: MaintenanceRepository, clock: Clock) -> None:
        self._repository = repository
        self._clock = clock

    async def execute(self, request_id: str) -> MaintenanceRequestView:
        request = await self._repository.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Maintenance request {request_id} not found")
        return MaintenanceRequestView(request=request, is_overdue=request.is_overdue(self._clock()))


class ListMaintenanceRequestsUseCase:
    def __init__(self, repository: MaintenanceRepository, clock: Clock) -> None:
        self._repository = repository
        self._clock = clock

    async def execute(self, query: ListMaintenanceRequestsQuery) -> Sequence[MaintenanceRequestView]:
        filters = RequestFilters(
            equipment_id=query.equipment_id,
            team_id=query.team_id,
            stage=parse_stage(query.stage) if query.stage else None,
            type=parse_enum(RequestType, query.type, "type") if query.type else None,
            assigned_to_user_id=query.assigned_to_user_id,
            work_center_id=query.work_center_id,
        )
        requests = await self._repository.list_requests(filters)
        now = self._clock()
        return [
            MaintenanceRequestView(request=request, is_overdue=request.is_overdue(now))
            for request in requests
        ]


class EquipmentHistoryUseCase:
    def __init__(self, repository: MaintenanceRepository) -> None:
        self._repository = repository

    async def execute(self, equipment_id: str) -> EquipmentHistory:
        if not equipment_id:
            raise ValidationError("Equipment ID is required")
        equipment = await self._repository.get_equipment(equipment_id)
        if equipment is None:
            raise NotFoundError(f"Equipment {equipment_id} not found")

        requests = await self._repository.list_requests(RequestFilters(equipment_id=equipment_id))
        request_ids = [request.id for request in requests]
        repaired = [request for request in requests if request.stage is RequestStage.REPAIRED]

        return EquipmentHistory(
            equipment=equipment,
            requests=requests,
            tracking_logs=await self._repository.list_tracking_logs(request_ids),
            requirements=await self._repository.list_requirements(request_ids),
            open_issues=sum(1 for request in requests if request.stage in OPEN_STAGES),
            total_maintenance_count=len(requests),
            last_maintenance_date=max((r.updated_at for r in repaired), default=None),
        )
