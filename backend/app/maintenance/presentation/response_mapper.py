from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from app.maintenance.domain.models import (
    Equipment,
    EquipmentCategory,
    EquipmentHistory,
    MaintenanceRequest,
    MaintenanceRequestView,
    Notification,
    Requirement,
    Team,
    TrackingLog,
    UserSummary,
    WorkCenter,
)


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None


def maintenance_request_to_response(
    request: Union[MaintenanceRequest, MaintenanceRequestView],
) -> Dict[str, Any]:
    is_overdue = None
    if isinstance(request, MaintenanceRequestView):
        is_overdue = request.is_overdue
        request = request.request
    body = {
        "id": request.id,
        "subject": request.subject,
        "description": request.description,
        "type": request.type.value,
        "maintenanceFor": request.maintenance_for.value,
        "equipmentId": request.equipment_id,
        "workCenterId": request.work_center_id,
        "requestedByUserId": request.requested_by_user_id,
        "assignedToUserId": request.assigned_to_user_id,
        "teamId": request.team_id,
        "stage": request.stage.value,
        "priority": request.priority.value,
        "scheduledDate": _iso(request.scheduled_date),
        "completedDate": _iso(request.completed_date),
        "acceptedAt": _iso(request.accepted_at),
        "durationHours": request.duration_hours,
        "notes": request.notes,
        "createdAt": _iso(request.created_at),
        "updatedAt": _iso(request.updated_at),
    }
    if is_overdue is not None:
        body["isOverdue"] = is_overdue
    return body


def equipment_to_response(equipment: Equipment) -> Dict[str, Any]:
    return {
        "id": equipment.id,
        "name": equipment.name,
        "serialNumber": equipment.serial_number,
        "category": equipment.category,
        "departmentId": equipment.department_id,
        "assignedToUserId": equipment.assigned_to_user_id,
        "purchaseDate": equipment.purchase_date,
        "warrantyExpiry": equipment.warranty_expiry,
        "location": equipment.location,
        "maintenanceTeamId": equipment.maintenance_team_id,
        "status": equipment.status.value,
        "notes": equipment.notes,
        "workCenterId": equipment.work_center_id,
        "scrapDate": _iso(equipment.scrap_date),
        "createdAt": _iso(equipment.created_at),
    }


def team_to_response(team: Team) -> Dict[str, Any]:
    return {
        "id": team.id,
        "name": team.name,
        "description": team.description,
        "memberIds": list(team.member_ids),
        "createdAt": _iso(team.created_at),
    }


def user_to_response(user: UserSummary) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "department": user.department,
        "createdAt": _iso(user.created_at),
    }


def notification_to_response(notification: Notification) -> Dict[str, Any]:
    related = notification.related
    return {
        "id": notification.id,
        "userId": notification.user_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "relatedId": related.id if related else None,
        "relatedType": related.kind.value if related else None,
        "link": related.detail_path if related else None,
        "isRead": notification.is_read,
        "createdAt": _iso(notification.created_at),
    }


def tracking_log_to_response(log: TrackingLog) -> Dict[str, Any]:
    return {
        "id": log.id,
        "requestId": log.request_id,
        "description": log.description,
        "createdBy": log.created_by,
        "createdAt": _iso(log.created_at),
    }


def requirement_to_response(requirement: Requirement) -> Dict[str, Any]:
    return {
        "id": requirement.id,
        "requestId": requirement.request_id,
        "submittedBy": requirement.submitted_by,
        "pricing": requirement.pricing,
        "products": list(requirement.products),
        "notes": requirement.notes,
        "status": requirement.status.value,
        "submittedAt": _iso(requirement.submitted_at),
        "approvedAt": _iso(requirement.approved_at),
    }


def category_to_response(category: EquipmentCategory) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "responsible": category.responsible,
    }


def work_center_to_response(work_center: WorkCenter) -> Dict[str, Any]:
    return {
        "id": work_center.id,
        "name": work_center.name,
        "description": work_center.description,
        "cost": work_center.cost,
        "costPerHour": work_center.cost_per_hour,
        "costTarget": work_center.cost_target,
        "allocatedManHours": work_center.allocated_man_hours,
        "createdAt": _iso(work_center.created_at),
    }


def equipment_history_to_response(history: EquipmentHistory) -> Dict[str, Any]:
    return {
        "equipment": equipment_to_response(history.equipment),
        "maintenanceRequests": [maintenance_request_to_response(r) for r in history.requests],
        "trackingLogs": [tracking_log_to_response(log) for log in history.tracking_logs],
        "requirements": [requirement_to_response(r) for r in history.requirements],
        "openIssues": history.open_issues,
        "totalMaintenanceCount": history.total_maintenance_count,
        "lastMaintenanceDate": _iso(history.last_maintenance_date),
    }
