from datetime import datetime, timedelta, timezone

import pytest

from crewhours.closings.models import ClosingStatus
from crewhours.closings.workflow import (
    GRACE_PERIOD,
    ClosingAction,
    can_transition,
    ensure_undo_allowed,
    is_within_grace,
    plan_transition,
    undo_remaining,
)
from crewhours.core.exceptions import InvalidTransitionError
from crewhours.records.models import RecordStatus

APPROVED_AT = datetime(2025, 10, 20, 9, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("current", "action", "expected"),
    [
        (ClosingStatus.OPEN, ClosingAction.SUBMIT, ClosingStatus.SUBMITTED),
        (ClosingStatus.RETURNED, ClosingAction.SUBMIT, ClosingStatus.SUBMITTED),
        (ClosingStatus.SUBMITTED, ClosingAction.APPROVE, ClosingStatus.APPROVED),
        (ClosingStatus.SUBMITTED, ClosingAction.RETURN, ClosingStatus.RETURNED),
        (ClosingStatus.APPROVED, ClosingAction.UNDO_APPROVAL, ClosingStatus.SUBMITTED),
        (ClosingStatus.APPROVED, ClosingAction.LOCK, ClosingStatus.LOCKED),
    ],
)
def test_allowed_transitions(current, action, expected):
    assert plan_transition(current, action).closing_to == expected


@pytest.mark.parametrize(
    ("current", "action"),
    [
        (ClosingStatus.SUBMITTED, ClosingAction.SUBMIT),
        (ClosingStatus.APPROVED, ClosingAction.SUBMIT),
        (ClosingStatus.OPEN, ClosingAction.APPROVE),
        (ClosingStatus.RETURNED, ClosingAction.APPROVE),
        (ClosingStatus.SUBMITTED, ClosingAction.LOCK),
        (ClosingStatus.SUBMITTED, ClosingAction.UNDO_APPROVAL),
    ],
)
def test_rejected_transitions(current, action):
    assert not can_transition(current, action)
    with pytest.raises(InvalidTransitionError):
        plan_transition(current, action)


def test_locked_is_terminal():
    assert not any(can_transition(ClosingStatus.LOCKED, action) for action in ClosingAction)


def test_records_follow_the_closing():
    submit = plan_transition(ClosingStatus.OPEN, ClosingAction.SUBMIT)
    assert submit.records_from == {RecordStatus.DRAFT, RecordStatus.RETURNED}
    assert submit.records_to == RecordStatus.SUBMITTED

    undo = plan_transition(ClosingStatus.APPROVED, ClosingAction.UNDO_APPROVAL)
    assert undo.records_from == {RecordStatus.APPROVED}
    assert undo.records_to == RecordStatus.SUBMITTED

    assert plan_transition(ClosingStatus.APPROVED, ClosingAction.LOCK).records_to is None


def test_undo_allowed_just_before_grace_ends():
    now = APPROVED_AT + timedelta(minutes=4, seconds=59)
    assert is_within_grace(APPROVED_AT, now)
    assert undo_remaining(APPROVED_AT, now) == timedelta(seconds=1)
    ensure_undo_allowed(APPROVED_AT, now)


def test_undo_refused_after_grace():
    now = APPROVED_AT + timedelta(minutes=5, seconds=1)
    assert not is_within_grace(APPROVED_AT, now)
    assert undo_remaining(APPROVED_AT, now) == timedelta(0)
    with pytest.raises(InvalidTransitionError):
        ensure_undo_allowed(APPROVED_AT, now)


def test_grace_boundary_is_exclusive():
    assert not is_within_grace(APPROVED_AT, APPROVED_AT + GRACE_PERIOD)


def test_naive_timestamps_are_treated_as_utc():
    naive = APPROVED_AT.replace(tzinfo=None)
    assert is_within_grace(naive, APPROVED_AT + timedelta(minutes=1))


def test_missing_approval_time_cannot_be_undone():
    assert not is_within_grace(None, APPROVED_AT)
