from datetime import date, datetime

from app.maintenance.domain.models import (
    MaintenanceRequestView,
    Notification,
    NotificationType,
    RelatedEntity,
    RequestStage,
)
from app.maintenance.presentation.response_mapper import (
    maintenance_request_to_response,
    notification_to_response,
)

NOW = datetime(2026, 1, 17, 10, 0, 0)


def test_request_view_carries_overdue_flag(builders):
    request = builders.request(stage=RequestStage.IN_PROGRESS, scheduled_date=date(2024, 1, 1))

    body = maintenance_request_to_response(MaintenanceRequestView(request, is_overdue=True))

    assert body["isOverdue"] is True
    assert body["stage"] == "In Progress"
    assert body["scheduledDate"] == "2024-01-01"
    assert body["requestedByUserId"] == "requester"


def test_stored_request_has_no_overdue_key(builders):
    body = maintenance_request_to_response(builders.request())

    assert "isOverdue" not in body
    assert body["type"] == "Corrective"
    assert body["completedDate"] is None


def test_notification_links_to_related_record():
    notification = Notification(
        id="n1",
        user_id="tech-1",
        type=NotificationType.REQUEST_ASSIGNED,
        title="Task Assigned to You",
        message="You have been assigned to: Leaking valve",
        created_at=NOW,
        related=RelatedEntity.request("r1"),
    )

    body = notification_to_response(notification)

    assert body["type"] == "request_assigned"
    assert body["relatedType"] == "request"
    assert body["link"] == "/maintenance/r1"
    assert body["isRead"] is False
    assert body["createdAt"] == "2026-01-17T10:00:00"


def test_equipment_and_user_links():
    assert RelatedEntity.equipment("e1").detail_path == "/equipment/e1"
    assert RelatedEntity.user("u1").detail_path == "/users/u1"
