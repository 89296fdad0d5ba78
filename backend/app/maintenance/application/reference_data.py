import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence

from app.maintenance.application.notifier import Clock, IdGenerator
from app.maintenance.application.ports import MaintenanceRepository, NotificationReader
from app.maintenance.application.use_cases import parse_enum, scrap_equipment
from app.maintenance.domain.errors import NotFoundError, ValidationError
from app.maintenance.domain.models import (
    Equipment,
    EquipmentCategory,
    EquipmentFilters,
    EquipmentStatus,
    Notification,
    RequestFilters,
    Team,
    UserRole,
    UserSummary,
    WorkCenter,
)

logger = logging.getLogger(__name__)


def _require_name(data: Mapping[str, Any], field_name: str = "name") -> None:
    if not (data.get(field_name) or "").strip():
        raise ValidationError(f"{field_name} is required")


def _without_id(data: Mapping[str, Any]) -> dict:
    return {key: value for key, value in data.items() if key not in ("id", "created_at")}


class EquipmentCatalog:
    def __init__(self, repository: MaintenanceRepository, id_generator: IdGenerator, clock: Clock) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def get(self, equipment_id: str) -> Equipment:
        equipment = await self._repository.get_equipment(equipment_id)
        if equipment is None:
            raise NotFoundError(f"Equipment {equipment_id} not found")
        return equipment

    async def list(self, filters: EquipmentFilters) -> Sequence[Equipment]:
        return await self._repository.list_equipment(filters)

    async def create(self, data: Mapping[str, Any]) -> Equipment:
        _require_name(data)
        fields = _without_id(data)
        fields["status"] = parse_enum(EquipmentStatus, fields.get("status") or EquipmentStatus.ACTIVE, "status")
        equipment = Equipment(id=self._id_generator(), created_at=self._clock(), **fields)
        await self._repository.save_equipment(equipment)
        await self._repository.commit()
        return equipment

    async def update(self, equipment_id: str, changes: Mapping[str, Any]) -> Equipment:
        """Apply ``changes``. Setting status to Scrapped closes open requests."""
        current = await self.get(equipment_id)
        fields = _without_id(changes)
        if "status" in fields:
            fields["status"] = parse_enum(EquipmentStatus, fields["status"], "status")
        if "name" in fields:
            _require_name(fields)

        updated = replace(current, **fields)
        if updated.status is EquipmentStatus.SCRAPPED and current.status is not EquipmentStatus.SCRAPPED:
            updated = replace(updated, scrap_date=updated.scrap_date or self._clock())
        await self._repository.save_equipment(updated)
        await self._repository.commit()

        if updated.status is EquipmentStatus.SCRAPPED:
            await scrap_equipment(self._repository, equipment_id, self._clock())
        return updated

    async def delete(self, equipment_id: str) -> None:
        await self.get(equipment_id)
        requests = await self._repository.list_requests(RequestFilters(equipment_id=equipment_id))
        for request in requests:
            await self._repository.delete_tracking_logs(request.id)
            await self._repository.delete_requirements(request.id)
            await self._repository.delete_request(request.id)
        await self._repository.delete_equipment(equipment_id)
        await self._repository.commit()
        logger.info("Deleted equipment %s and %d related requests", equipment_id, len(requests))


class TeamDirectory:
    def __init__(self, repository: MaintenanceRepository, id_generator: IdGenerator, clock: Clock) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def get(self, team_id: str) -> Team:
        team = await self._repository.get_team(team_id)
        if team is None:
            raise NotFoundError(f"Team {team_id} not found")
        return team

    async def list(self) -> Sequence[Team]:
        return await self._repository.list_teams()

    async def create(self, data: Mapping[str, Any]) -> Team:
        _require_name(data)
        fields = _without_id(data)
        fields["member_ids"] = list(fields.get("member_ids") or [])
        team = Team(id=self._id_generator(), created_at=self._clock(), **fields)
        await self._repository.save_team(team)
        await self._repository.commit()
        return team

    async def update(self, team_id: str, changes: Mapping[str, Any]) -> Team:
        current = await self.get(team_id)
        fields = _without_id(changes)
        if "member_ids" in fields:
            fields["member_ids"] = list(fields["member_ids"] or [])
        updated = replace(current, **fields)
        await self._repository.save_team(updated)
        await self._repository.commit()
        return updated

    async def delete(self, team_id: str) -> None:
        """Delete the team and blank it on equipment and requests."""
        await self.get(team_id)
        await self._repository.delete_team(team_id)
        for equipment in await self._repository.list_equipment(EquipmentFilters(team_id=team_id)):
            await self._repository.save_equipment(replace(equipment, maintenance_team_id=""))
        for request in await self._repository.list_requests(RequestFilters(team_id=team_id)):
            await self._repository.save_request(replace(request, team_id=""))
        await self._repository.commit()


class UserDirectory:
    def __init__(self, repository: MaintenanceRepository, id_generator: IdGenerator, clock: Clock) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def get(self, user_id: str) -> UserSummary:
        user = await self._repository.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def list(self, role: Optional[str] = None) -> Sequence[UserSummary]:
        roles = [parse_enum(UserRole, role, "role")] if role else None
        return await self._repository.list_users(roles)

    async def create(self, data: Mapping[str, Any]) -> UserSummary:
        _require_name(data)
        _require_name(data, "email")
        fields = _without_id(data)
        fields["role"] = parse_enum(UserRole, fields.get("role"), "role")
        user = UserSummary(id=self._id_generator(), created_at=self._clock(), **fields)
        await self._repository.save_user(user)
        await self._repository.commit()
        return user

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> UserSummary:
        current = await self.get(user_id)
        fields = _without_id(changes)
        if "role" in fields:
            fields["role"] = parse_enum(UserRole, fields["role"], "role")
        updated = replace(current, **fields)
        await self._repository.save_user(updated)
        await self._repository.commit()
        return updated

    async def delete(self, user_id: str) -> None:
        """Delete the user, drop them from teams and unassign their requests."""
        await self.get(user_id)
        await self._repository.delete_user(user_id)
        for team in await self._repository.list_teams():
            if user_id in team.member_ids:
                members = [member for member in team.member_ids if member != user_id]
                await self._repository.save_team(replace(team, member_ids=members))
        assigned = await self._repository.list_requests(RequestFilters(assigned_to_user_id=user_id))
        for request in assigned:
            await self._repository.save_request(replace(request, assigned_to_user_id=None))
        await self._repository.commit()


class CategoryCatalog:
    def __init__(self, repository: MaintenanceRepository, id_generator: IdGenerator) -> None:
        self._repository = repository
        self._id_generator = id_generator

    async def list(self) -> Sequence[EquipmentCategory]:
        return await self._repository.list_categories()

    async def get(self, category_id: str) -> EquipmentCategory:
        category = await self._repository.get_category(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    async def create(self, data: Mapping[str, Any]) -> EquipmentCategory:
        _require_name(data)
        category = EquipmentCategory(id=self._id_generator(), **_without_id(data))
        await self._repository.save_category(category)
        await self._repository.commit()
        return category

    async def update(self, category_id: str, changes: Mapping[str, Any]) -> EquipmentCategory:
        updated = replace(await self.get(category_id), **_without_id(changes))
        await self._repository.save_category(updated)
        await self._repository.commit()
        return updated

    async def delete(self, category_id: str) -> None:
        await self.get(category_id)
        await self._repository.delete_category(category_id)
        for equipment in await self._repository.list_equipment(EquipmentFilters(category=category_id)):
            await self._repository.save_equipment(replace(equipment, category=""))
        await self._repository.commit()


class WorkCenterCatalog:
    def __init__(self, repository: MaintenanceRepository, id_generator: IdGenerator, clock: Clock) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def list(self) -> Sequence[WorkCenter]:
        return await self._repository.list_work_centers()

    async def get(self, work_center_id: str) -> WorkCenter:
        work_center = await self._repository.get_work_center(work_center_id)
        if work_center is None:
            raise NotFoundError(f"Work center {work_center_id} not found")
        return work_center

    async def create(self, data: Mapping[str, Any]) -> WorkCenter:
        _require_name(data)
        work_center = WorkCenter(id=self._id_generator(), created_at=self._clock(), **_without_id(data))
        await self._repository.save_work_center(work_center)
        await self._repository.commit()
        return work_center

    async def update(self, work_center_id: str, changes: Mapping[str, Any]) -> WorkCenter:
        updated = replace(await self.get(work_center_id), **_without_id(changes))
        await self._repository.save_work_center(updated)
        await self._repository.commit()
        return updated

    async def delete(self, work_center_id: str) -> None:
        await self.get(work_center_id)
        await self._repository.delete_work_center(work_center_id)
        requests = await self._repository.list_requests(RequestFilters(work_center_id=work_center_id))
        for request in requests:
            await self._repository.save_request(replace(request, work_center_id=None))
        await self._repository.commit()


class NotificationInbox:
    def __init__(self, reader: NotificationReader) -> None:
        self._reader = reader

    async def list(self, user_id: str) -> Sequence[Notification]:
        if not user_id:
            raise ValidationError("userId is required")
        return await self._reader.list_for_user(user_id)

    async def mark_read(self, notification_id: str) -> Notification:
        notification = await self._reader.mark_read(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification
