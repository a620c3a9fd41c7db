"""State machine for weekly closings and the records they contain.

A weekly closing and its member records always move together: every action
names the closing states it may start from, the closing state it ends in, and
the record states that follow along.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta

from crewhours.closings.models import ClosingStatus
from crewhours.core.exceptions import InvalidTransitionError
from crewhours.core.timeutils import as_utc
from crewhours.records.models import RecordStatus

GRACE_PERIOD = timedelta(minutes=5)


class ClosingAction(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    RETURN = "return"
    UNDO_APPROVAL = "undo_approval"
    LOCK = "lock"


@dataclass(frozen=True)
class Transition:
    action: ClosingAction
    closing_from: frozenset[ClosingStatus]
    closing_to: ClosingStatus
    records_from: frozenset[RecordStatus]
    records_to: RecordStatus | None


TRANSITIONS: dict[ClosingAction, Transition] = {
    ClosingAction.SUBMIT: Transition(
        action=ClosingAction.SUBMIT,
        closing_from=frozenset({ClosingStatus.OPEN, ClosingStatus.RETURNED}),
        closing_to=ClosingStatus.SUBMITTED,
        records_from=frozenset({RecordStatus.DRAFT, RecordStatus.RETURNED}),
        records_to=RecordStatus.SUBMITTED,
    ),
    ClosingAction.APPROVE: Transition(
        action=ClosingAction.APPROVE,
        closing_from=frozenset({ClosingStatus.SUBMITTED}),
        closing_to=ClosingStatus.APPROVED,
        records_from=frozenset({RecordStatus.SUBMITTED}),
        records_to=RecordStatus.APPROVED,
    ),
    ClosingAction.RETURN: Transition(
        action=ClosingAction.RETURN,
        closing_from=frozenset({ClosingStatus.SUBMITTED}),
        closing_to=ClosingStatus.RETURNED,
        records_from=frozenset({RecordStatus.SUBMITTED}),
        records_to=RecordStatus.RETURNED,
    ),
    ClosingAction.UNDO_APPROVAL: Transition(
        action=ClosingAction.UNDO_APPROVAL,
        closing_from=frozenset({ClosingStatus.APPROVED}),
        closing_to=ClosingStatus.SUBMITTED,
        records_from=frozenset({RecordStatus.APPROVED}),
        records_to=RecordStatus.SUBMITTED,
    ),
    ClosingAction.LOCK: Transition(
        action=ClosingAction.LOCK,
        closing_from=frozenset({ClosingStatus.APPROVED}),
        closing_to=ClosingStatus.LOCKED,
        records_from=frozenset(),
        records_to=None,
    ),
}

# Records in a week whose closing is in one of these states cannot change.
FROZEN_CLOSING_STATUSES = frozenset({
    ClosingStatus.SUBMITTED,
    ClosingStatus.APPROVED,
    ClosingStatus.LOCKED,
})

# Which record states make up the hour total shown for a closing.
PHASE_RECORD_STATUSES: dict[ClosingStatus, frozenset[RecordStatus]] = {
    ClosingStatus.OPEN: frozenset({RecordStatus.DRAFT, RecordStatus.RETURNED}),
    ClosingStatus.SUBMITTED: frozenset({RecordStatus.SUBMITTED}),
    ClosingStatus.APPROVED: frozenset({RecordStatus.APPROVED}),
    ClosingStatus.LOCKED: frozenset({RecordStatus.APPROVED}),
    ClosingStatus.RETURNED: frozenset({RecordStatus.RETURNED}),
}


def plan_transition(current: ClosingStatus, action: ClosingAction) -> Transition:
    """Return the transition for *action* or raise if *current* does not allow it."""
    transition = TRANSITIONS[action]
    if current not in transition.closing_from:
        allowed = ", ".join(sorted(s.value for s in transition.closing_from))
        raise InvalidTransitionError(
            f"Cannot {action.value.replace('_', ' ')} a closing that is "
            f"{current.value}; expected one of: {allowed}.",
            current=current.value,
            action=action.value,
        )
    return transition


def can_transition(current: ClosingStatus, action: ClosingAction) -> bool:
    return current in TRANSITIONS[action].closing_from


def undo_remaining(
    approved_at: datetime | None,
    now: datetime,
    grace: timedelta = GRACE_PERIOD,
) -> timedelta:
    """Time left to undo an approval made at *approved_at*; zero once expired."""
    if approved_at is None:
        return timedelta(0)
    remaining = grace - (as_utc(now) - as_utc(approved_at))
    return max(remaining, timedelta(0))


def is_within_grace(
    approved_at: datetime | None,
    now: datetime,
    grace: timedelta = GRACE_PERIOD,
) -> bool:
    """True while ``now - approved_at`` is strictly less than *grace*."""
    return undo_remaining(approved_at, now, grace) > timedelta(0)


def ensure_undo_allowed(
    approved_at: datetime | None,
    now: datetime,
    grace: timedelta = GRACE_PERIOD,
) -> None:
    if not is_within_grace(approved_at, now, grace):
        minutes = int(grace.total_seconds() // 60)
        raise InvalidTransitionError(
            f"The approval can only be undone within {minutes} minutes.",
            current="approved",
            action="undo_approval",
        )
