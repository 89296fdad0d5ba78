from typing import Optional, Protocol, Sequence

from app.maintenance.domain.models import (
    Equipment,
    EquipmentCategory,
    EquipmentFilters,
    MaintenanceRequest,
    Notification,
    RequestFilters,
    Requirement,
    Team,
    TrackingLog,
    UserRole,
    UserSummary,
    WorkCenter,
)


class MaintenanceRepository(Protocol):
    async def get_equipment(self, equipment_id: str) -> Optional[Equipment]:
        ...

    async def list_equipment(self, filters: EquipmentFilters) -> Sequence[Equipment]:
        ...

    async def save_equipment(self, equipment: Equipment) -> None:
        ...

    async def delete_equipment(self, equipment_id: str) -> None:
        ...

    async def get_request(self, request_id: str) -> Optional[MaintenanceRequest]:
        ...

    async def list_requests(self, filters: RequestFilters) -> Sequence[MaintenanceRequest]:
        ...

    async def save_request(self, request: MaintenanceRequest) -> None:
        ...

    async def delete_request(self, request_id: str) -> None:
        ...

    async def get_team(self, team_id: str) -> Optional[Team]:
        ...

    async def list_teams(self) -> Sequence[Team]:
        ...

    async def save_team(self, team: Team) -> None:
        ...

    async def delete_team(self, team_id: str) -> None:
        ...

    async def get_user(self, user_id: str) -> Optional[UserSummary]:
        ...

    async def list_users(self, roles: Optional[Sequence[UserRole]] = None) -> Sequence[UserSummary]:
        ...

    async def save_user(self, user: UserSummary) -> None:
        ...

    async def delete_user(self, user_id: str) -> None:
        ...

    async def list_tracking_logs(self, request_ids: Sequence[str]) -> Sequence[TrackingLog]:
        ...

    async def add_tracking_log(self, log: TrackingLog) -> None:
        ...

    async def delete_tracking_logs(self, request_id: str) -> None:
        ...

    async def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        ...

    async def list_requirements(self, request_ids: Sequence[str]) -> Sequence[Requirement]:
        ...

    async def save_requirement(self, requirement: Requirement) -> None:
        ...

    async def delete_requirements(self, request_id: str) -> None:
        ...

    async def get_category(self, category_id: str) -> Optional[EquipmentCategory]:
        ...

    async def list_categories(self) -> Sequence[EquipmentCategory]:
        ...

    async def save_category(self, category: EquipmentCategory) -> None:
        ...

    async def delete_category(self, category_id: str) -> None:
        ...

    async def get_work_center(self, work_center_id: str) -> Optional[WorkCenter]:
        ...

    async def list_work_centers(self) -> Sequence[WorkCenter]:
        ...

    async def save_work_center(self, work_center: WorkCenter) -> None:
        ...

    async def delete_work_center(self, work_center_id: str) -> None:
        ...

    async def commit(self) -> None:
        ...


class NotificationSink(Protocol):
    async def create(self, notification: Notification) -> None:
        ...


class NotificationReader(Protocol):
    async def list_for_user(self, user_id: str) -> Sequence[Notification]:
        ...

    async def mark_read(self, notification_id: str) -> Optional[Notification]:
        ...
