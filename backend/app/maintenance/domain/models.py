import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Sequence


class RequestStage(str, enum.Enum):
    NEW = "New"
    IN_PROGRESS = "In Progress"
    REPAIRED = "Repaired"
    SCRAP = "Scrap"


CLOSED_STAGES = frozenset({RequestStage.REPAIRED, RequestStage.SCRAP})
OPEN_STAGES = frozenset({RequestStage.NEW, RequestStage.IN_PROGRESS})


class RequestType(str, enum.Enum):
    CORRECTIVE = "Corrective"
    PREVENTIVE = "Preventive"


class MaintenanceFor(str, enum.Enum):
    EQUIPMENT = "Equipment"
    WORK_CENTER = "WorkCenter"


class Priority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class EquipmentStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SCRAPPED = "Scrapped"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    TECHNICIAN = "technician"
    USER = "user"


SUPERVISOR_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})


class NotificationType(str, enum.Enum):
    NEW_REQUEST = "new_request"
    REQUEST_ASSIGNED = "request_assigned"
    REQUEST_UPDATED = "request_updated"
    REQUEST_COMPLETED = "request_completed"
    TASK_REASSIGNED = "task_reassigned"
    EQUIPMENT_UPDATED = "equipment_updated"
    NEW_USER_REGISTERED = "new_user_registered"
    SYSTEM_ALERT = "system_alert"
    REQUIREMENT_SUBMITTED = "requirement_submitted"
    TRACKING_UPDATED = "tracking_updated"


class RelatedType(str, enum.Enum):
    REQUEST = "request"
    EQUIPMENT = "equipment"
    USER = "user"


class RequirementStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RelatedEntity:
    """Typed pointer from a notification to the record it is about."""

    kind: RelatedType
    id: str

    @classmethod
    def request(cls, request_id: str) -> "RelatedEntity":
        return cls(kind=RelatedType.REQUEST, id=request_id)

    @classmethod
    def equipment(cls, equipment_id: str) -> "RelatedEntity":
        return cls(kind=RelatedType.EQUIPMENT, id=equipment_id)

    @classmethod
    def user(cls, user_id: str) -> "RelatedEntity":
        return cls(kind=RelatedType.USER, id=user_id)

    @property
    def detail_path(self) -> str:
        if self.kind is RelatedType.REQUEST:
            return f"/maintenance/{self.id}"
        if self.kind is RelatedType.EQUIPMENT:
            return f"/equipment/{self.id}"
        if self.kind is RelatedType.USER:
            return f"/users/{self.id}"
        raise ValueError(f"Unhandled related type: {self.kind}")


@dataclass(frozen=True)
class UserSummary:
    id: str
    name: str
    role: UserRole
    email: str = ""
    department: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    member_ids: Sequence[str] = field(default_factory=tuple)
    description: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Equipment:
    id: str
    name: str
    serial_number: str
    category: str
    department_id: str
    purchase_date: str
    location: str
    maintenance_team_id: str
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    assigned_to_user_id: Optional[str] = None
    warranty_expiry: Optional[str] = None
    notes: Optional[str] = None
    work_center_id: Optional[str] = None
    scrap_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class MaintenanceRequest:
    id: str
    subject: str
    type: RequestType
    equipment_id: str
    requested_by_user_id: str
    team_id: str
    stage: RequestStage
    created_at: datetime
    updated_at: datetime
    maintenance_for: MaintenanceFor = MaintenanceFor.EQUIPMENT
    priority: Priority = Priority.MEDIUM
    description: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    work_center_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    completed_date: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    duration_hours: Optional[float] = None
    notes: Optional[str] = None

    @property
    def targets_equipment(self) -> bool:
        return self.maintenance_for is MaintenanceFor.EQUIPMENT and bool(self.equipment_id)

    def is_overdue(self, now: datetime) -> bool:
        if self.scheduled_date is None or self.stage in CLOSED_STAGES:
            return False
        return datetime.combine(self.scheduled_date, time.min) < now


@dataclass(frozen=True)
class Notification:
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    created_at: datetime
    related: Optional[RelatedEntity] = None
    is_read: bool = False


@dataclass(frozen=True)
class TrackingLog:
    id: str
    request_id: str
    description: str
    created_by: str
    created_at: datetime


@dataclass(frozen=True)
class Requirement:
    id: str
    request_id: str
    submitted_by: str
    products: Sequence[str]
    submitted_at: datetime
    status: RequirementStatus = RequirementStatus.PENDING
    pricing: Optional[float] = None
    notes: Optional[str] = None
    approved_at: Optional[datetime] = None


@dataclass(frozen=True)
class EquipmentCategory:
    id: str
    name: str
    description: Optional[str] = None
    responsible: Optional[str] = None


@dataclass(frozen=True)
class WorkCenter:
    id: str
    name: str
    description: Optional[str] = None
    cost: Optional[float] = None
    cost_per_hour: Optional[float] = None
    cost_target: Optional[float] = None
    allocated_man_hours: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RequestFilters:
    equipment_id: Optional[str] = None
    team_id: Optional[str] = None
    stage: Optional[RequestStage] = None
    type: Optional[RequestType] = None
    assigned_to_user_id: Optional[str] = None
    work_center_id: Optional[str] = None


@dataclass(frozen=True)
class EquipmentFilters:
    team_id: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class EquipmentHistory:
    equipment: Equipment
    requests: Sequence[MaintenanceRequest]
    tracking_logs: Sequence[TrackingLog]
    requirements: Sequence[Requirement]
    open_issues: int
    total_maintenance_count: int
    last_maintenance_date: Optional[datetime] = None


@dataclass(frozen=True)
class MaintenanceRequestView:
    """A request as read at a given instant, with its derived overdue flag."""

    request: MaintenanceRequest
    is_overdue: bool
