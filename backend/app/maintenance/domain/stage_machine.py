from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Mapping

from app.maintenance.domain.errors import ValidationError
from app.maintenance.domain.models import CLOSED_STAGES, MaintenanceRequest, RequestStage

FORWARD_TRANSITIONS: Mapping[RequestStage, frozenset] = {
    RequestStage.NEW: frozenset(
        {RequestStage.IN_PROGRESS, RequestStage.REPAIRED, RequestStage.SCRAP}
    ),
    RequestStage.IN_PROGRESS: frozenset({RequestStage.REPAIRED, RequestStage.SCRAP}),
    RequestStage.REPAIRED: frozenset(),
    RequestStage.SCRAP: frozenset(),
}

REQUEST_FIELDS = frozenset(f.name for f in fields(MaintenanceRequest))


@dataclass(frozen=True)
class StageChange:
    previous: MaintenanceRequest
    request: MaintenanceRequest

    @property
    def changed(self) -> bool:
        return self.previous.stage != self.request.stage

    @property
    def started(self) -> bool:
        return (
            self.previous.stage is RequestStage.NEW
            and self.request.stage is RequestStage.IN_PROGRESS
        )

    @property
    def completed(self) -> bool:
        return self.changed and self.request.stage is RequestStage.REPAIRED

    @property
    def scrapped(self) -> bool:
        return (
            self.changed
            and self.request.stage is RequestStage.SCRAP
            and self.request.targets_equipment
        )


def parse_stage(value: Any) -> RequestStage:
    if isinstance(value, RequestStage):
        return value
    try:
        return RequestStage(value)
    except ValueError:
        allowed = ", ".join(stage.value for stage in RequestStage)
        raise ValidationError(f"Invalid stage '{value}'. Expected one of: {allowed}")


def check_transition(current: RequestStage, target: RequestStage, enforce_forward: bool) -> None:
    if current == target or not enforce_forward:
        return
    if target not in FORWARD_TRANSITIONS[current]:
        raise ValidationError(f"Cannot move a request from {current.value} to {target.value}")


def apply_stage(
    request: MaintenanceRequest,
    changes: Mapping[str, Any],
    now: datetime,
    enforce_forward: bool = True,
) -> StageChange:
    """Merge ``changes`` onto ``request`` and stamp stage-driven fields.

    ``changes`` uses domain field names and replaces values wholesale. When
    the stage moves, ``accepted_at`` is set on New -> In Progress and
    ``completed_date`` on entering Repaired, unless already present.
    """
    changes = {key: value for key, value in changes.items() if key not in ("id", "updated_at")}
    unknown = set(changes) - REQUEST_FIELDS
    if unknown:
        raise ValidationError(f"Unknown request fields: {', '.join(sorted(unknown))}")
    if "stage" in changes:
        changes["stage"] = parse_stage(changes["stage"])
    target = changes.get("stage", request.stage)
    check_transition(request.stage, target, enforce_forward)

    updated = replace(request, **changes, updated_at=now)
    if target != request.stage:
        if (
            request.stage is RequestStage.NEW
            and target is RequestStage.IN_PROGRESS
            and updated.accepted_at is None
        ):
            updated = replace(updated, accepted_at=now)
        if target is RequestStage.REPAIRED and updated.completed_date is None:
            updated = replace(updated, completed_date=now)
    return StageChange(previous=request, request=updated)


def force_scrap(request: MaintenanceRequest, now: datetime) -> MaintenanceRequest:
    """Close an open request because its equipment was scrapped."""
    if request.stage in CLOSED_STAGES:
        return request
    return replace(request, stage=RequestStage.SCRAP, updated_at=now)
