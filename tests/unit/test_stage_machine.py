from datetime import date, datetime

import pytest

from app.maintenance.domain.errors import ValidationError
from app.maintenance.domain.models import MaintenanceFor, RequestStage
from app.maintenance.domain.stage_machine import (
    apply_stage,
    check_transition,
    force_scrap,
    parse_stage,
)

NOW = datetime(2026, 1, 17, 10, 0, 0)


def test_parse_stage_accepts_display_values():
    assert parse_stage("In Progress") is RequestStage.IN_PROGRESS
    assert parse_stage(RequestStage.SCRAP) is RequestStage.SCRAP


def test_parse_stage_rejects_unknown_value():
    with pytest.raises(ValidationError) as exc:
        parse_stage("Done")
    assert "Done" in exc.value.message


@pytest.mark.parametrize(
    "current,target",
    [
        (RequestStage.NEW, RequestStage.IN_PROGRESS),
        (RequestStage.NEW, RequestStage.REPAIRED),
        (RequestStage.NEW, RequestStage.SCRAP),
        (RequestStage.IN_PROGRESS, RequestStage.REPAIRED),
        (RequestStage.IN_PROGRESS, RequestStage.SCRAP),
    ],
)
def test_forward_moves_are_allowed(current, target):
    check_transition(current, target, enforce_forward=True)


@pytest.mark.parametrize(
    "current,target",
    [
        (RequestStage.REPAIRED, RequestStage.NEW),
        (RequestStage.REPAIRED, RequestStage.IN_PROGRESS),
        (RequestStage.SCRAP, RequestStage.NEW),
        (RequestStage.IN_PROGRESS, RequestStage.NEW),
    ],
)
def test_backward_moves_are_rejected(current, target):
    with pytest.raises(ValidationError):
        check_transition(current, target, enforce_forward=True)


def test_backward_moves_allowed_when_not_enforced():
    check_transition(RequestStage.REPAIRED, RequestStage.NEW, enforce_forward=False)


def test_start_work_stamps_accepted_at(builders):
    request = builders.request(stage=RequestStage.NEW)

    change = apply_stage(request, {"stage": "In Progress"}, NOW)

    assert change.changed and change.started
    assert not change.completed
    assert change.request.accepted_at == NOW
    assert change.request.updated_at == NOW
    assert change.request.completed_date is None


def test_accepted_at_is_not_overwritten(builders):
    earlier = datetime(2026, 1, 2, 9, 0, 0)
    request = builders.request(stage=RequestStage.NEW, accepted_at=earlier)

    change = apply_stage(request, {"stage": RequestStage.IN_PROGRESS}, NOW)

    assert change.request.accepted_at == earlier


def test_repair_stamps_completed_date(builders):
    request = builders.request(stage=RequestStage.IN_PROGRESS)

    change = apply_stage(request, {"stage": RequestStage.REPAIRED}, NOW)

    assert change.completed
    assert not change.started
    assert change.request.completed_date == NOW


def test_repaired_directly_from_new_does_not_set_accepted_at(builders):
    change = apply_stage(builders.request(), {"stage": RequestStage.REPAIRED}, NOW)

    assert change.request.accepted_at is None
    assert change.request.completed_date == NOW


def test_plain_field_update_is_not_a_stage_change(builders):
    request = builders.request(stage=RequestStage.IN_PROGRESS)

    change = apply_stage(request, {"notes": "waiting for parts"}, NOW)

    assert not change.changed
    assert not change.scrapped
    assert change.request.notes == "waiting for parts"
    assert change.request.updated_at == NOW


def test_id_and_updated_at_in_changes_are_ignored(builders):
    request = builders.request()

    change = apply_stage(request, {"id": "other", "updated_at": datetime(2000, 1, 1)}, NOW)

    assert change.request.id == request.id
    assert change.request.updated_at == NOW


def test_unknown_field_is_rejected(builders):
    with pytest.raises(ValidationError) as exc:
        apply_stage(builders.request(), {"colour": "red"}, NOW)
    assert "colour" in exc.value.message


def test_scrap_of_equipment_request_is_flagged(builders):
    change = apply_stage(builders.request(), {"stage": RequestStage.SCRAP}, NOW)

    assert change.scrapped


def test_scrap_of_work_center_request_does_not_cascade(builders):
    request = builders.request(maintenance_for=MaintenanceFor.WORK_CENTER, equipment_id="")

    change = apply_stage(request, {"stage": RequestStage.SCRAP}, NOW)

    assert change.changed
    assert not change.scrapped


def test_force_scrap_leaves_closed_requests_alone(builders):
    repaired = builders.request(stage=RequestStage.REPAIRED)
    assert force_scrap(repaired, NOW) is repaired

    scrapped = force_scrap(builders.request(stage=RequestStage.IN_PROGRESS), NOW)
    assert scrapped.stage is RequestStage.SCRAP
    assert scrapped.updated_at == NOW


def test_overdue_only_while_open_and_past_scheduled_day(builders):
    past = builders.request(scheduled_date=date(2026, 1, 10))
    today = builders.request(scheduled_date=date(2026, 1, 17))
    tomorrow = builders.request(scheduled_date=date(2026, 1, 18))
    closed = builders.request(stage=RequestStage.REPAIRED, scheduled_date=date(2026, 1, 10))
    unscheduled = builders.request()

    assert past.is_overdue(NOW)
    # scheduled midnight today is already behind 10:00
    assert today.is_overdue(NOW)
    assert not tomorrow.is_overdue(NOW)
    assert not closed.is_overdue(NOW)
    assert not unscheduled.is_overdue(NOW)
