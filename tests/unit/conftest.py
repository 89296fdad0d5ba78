import itertools
from dataclasses import replace
from datetime import datetime

import pytest

from app.maintenance.domain.models import (
    Equipment,
    EquipmentStatus,
    MaintenanceRequest,
    RequestStage,
    RequestType,
    Team,
    UserRole,
    UserSummary,
)

NOW = datetime(2026, 1, 17, 10, 0, 0)


class FakeMaintenanceRepository:
    def __init__(self) -> None:
        self.equipment = {}
        self.requests = {}
        self.teams = {}
        self.users = {}
        self.tracking_logs = []
        self.requirements = {}
        self.categories = {}
        self.work_centers = {}
        self.commits = 0

    async def get_equipment(self, equipment_id):
        return self.equipment.get(equipment_id)

    async def list_equipment(self, filters):
        result = list(self.equipment.values())
        if filters.team_id:
            result = [e for e in result if e.maintenance_team_id == filters.team_id]
        if filters.status:
            result = [e for e in result if e.status == filters.status]
        if filters.category:
            result = [e for e in result if e.category == filters.category]
        return result

    async def save_equipment(self, equipment):
        self.equipment[equipment.id] = equipment

    async def delete_equipment(self, equipment_id):
        self.equipment.pop(equipment_id, None)

    async def get_request(self, request_id):
        return self.requests.get(request_id)

    async def list_requests(self, filters):
        result = list(self.requests.values())
        if filters.equipment_id:
            result = [r for r in result if r.equipment_id == filters.equipment_id]
        if filters.team_id:
            result = [r for r in result if r.team_id == filters.team_id]
        if filters.stage:
            result = [r for r in result if r.stage == filters.stage]
        if filters.type:
            result = [r for r in result if r.type == filters.type]
        if filters.assigned_to_user_id:
            result = [r for r in result if r.assigned_to_user_id == filters.assigned_to_user_id]
        if filters.work_center_id:
            result = [r for r in result if r.work_center_id == filters.work_center_id]
        return result

    async def save_request(self, request):
        self.requests[request.id] = request

    async def delete_request(self, request_id):
        self.requests.pop(request_id, None)

    async def get_team(self, team_id):
        return self.teams.get(team_id)

    async def list_teams(self):
        return list(self.teams.values())

    async def save_team(self, team):
        self.teams[team.id] = team

    async def delete_team(self, team_id):
        self.teams.pop(team_id, None)

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def list_users(self, roles=None):
        users = list(self.users.values())
        if roles:
            users = [u for u in users if u.role in roles]
        return users

    async def save_user(self, user):
        self.users[user.id] = user

    async def delete_user(self, user_id):
        self.users.pop(user_id, None)

    async def list_tracking_logs(self, request_ids):
        return [log for log in self.tracking_logs if log.request_id in request_ids]

    async def add_tracking_log(self, log):
        self.tracking_logs.append(log)

    async def delete_tracking_logs(self, request_id):
        self.tracking_logs = [log for log in self.tracking_logs if log.request_id != request_id]

    async def get_requirement(self, requirement_id):
        return self.requirements.get(requirement_id)

    async def list_requirements(self, request_ids):
        return [r for r in self.requirements.values() if r.request_id in request_ids]

    async def save_requirement(self, requirement):
        self.requirements[requirement.id] = requirement

    async def delete_requirements(self, request_id):
        self.requirements = {
            key: r for key, r in self.requirements.items() if r.request_id != request_id
        }

    async def get_category(self, category_id):
        return self.categories.get(category_id)

    async def list_categories(self):
        return list(self.categories.values())

    async def save_category(self, category):
        self.categories[category.id] = category

    async def delete_category(self, category_id):
        self.categories.pop(category_id, None)

    async def get_work_center(self, work_center_id):
        return self.work_centers.get(work_center_id)

    async def list_work_centers(self):
        return list(self.work_centers.values())

    async def save_work_center(self, work_center):
        self.work_centers[work_center.id] = work_center

    async def delete_work_center(self, work_center_id):
        self.work_centers.pop(work_center_id, None)

    async def commit(self):
        self.commits += 1


class FakeNotificationSink:
    def __init__(self) -> None:
        self.notifications = []

    async def create(self, notification):
        self.notifications.append(notification)

    def for_user(self, user_id):
        return [n for n in self.notifications if n.user_id == user_id]


class BrokenNotificationSink:
    async def create(self, notification):
        raise RuntimeError("notification store is down")


@pytest.fixture
def repo():
    return FakeMaintenanceRepository()


@pytest.fixture
def sink():
    return FakeNotificationSink()


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def lifecycle(repo, sink, ids, clock):
    """Build a lifecycle use case wired to the fakes."""

    def build(use_case_cls, **kwargs):
        return use_case_cls(
            repository=repo,
            notifications=kwargs.pop("notifications", sink),
            id_generator=ids,
            clock=clock,
            **kwargs,
        )

    return build


def make_user(user_id, role=UserRole.TECHNICIAN, name=None):
    return UserSummary(id=user_id, name=name or user_id.upper(), role=role, email=f"{user_id}@test.com")


def make_equipment(equipment_id="e1", team_id="t1", **overrides):
    equipment = Equipment(
        id=equipment_id,
        name="Press",
        serial_number="SN-1",
        category="cat-1",
        department_id="dep-1",
        purchase_date="2024-01-01",
        location="Hall A",
        maintenance_team_id=team_id,
        status=EquipmentStatus.ACTIVE,
    )
    return replace(equipment, **overrides)


def make_request(request_id="r1", stage=RequestStage.NEW, **overrides):
    request = MaintenanceRequest(
        id=request_id,
        subject="Leaking valve",
        type=RequestType.CORRECTIVE,
        equipment_id="e1",
        requested_by_user_id="requester",
        team_id="t1",
        stage=stage,
        created_at=datetime(2026, 1, 1, 8, 0, 0),
        updated_at=datetime(2026, 1, 1, 8, 0, 0),
    )
    return replace(request, **overrides)


def make_team(team_id="t1", member_ids=("tech-1", "tech-2")):
    return Team(id=team_id, name="Mechanics", member_ids=list(member_ids))


@pytest.fixture
def seeded(repo):
    """Requester, two technicians, an admin, a manager, team t1 and equipment e1."""
    for user in (
        make_user("requester", UserRole.USER),
        make_user("tech-1"),
        make_user("tech-2"),
        make_user("admin-1", UserRole.ADMIN),
        make_user("manager-1", UserRole.MANAGER),
    ):
        repo.users[user.id] = user
    repo.teams["t1"] = make_team()
    repo.equipment["e1"] = make_equipment()
    return repo


@pytest.fixture
def builders():
    class Builders:
        user = staticmethod(make_user)
        equipment = staticmethod(make_equipment)
        request = staticmethod(make_request)
        team = staticmethod(make_team)

    return Builders


@pytest.fixture
def broken_sink():
    return BrokenNotificationSink()
