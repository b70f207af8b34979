"""Classification of obligations into overdue / due-soon / later."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .obligation import MaintenanceObligation
from .status import DueState

DUE_SOON_DAYS = 14
DUE_SOON_KM = 500


@dataclass
class DueInfo:
    """Calculated due information for an obligation."""

    obligation: MaintenanceObligation
    state: DueState
    days_remaining: Optional[int] = None
    km_remaining: Optional[int] = None

    @property
    def is_due(self) -> bool:
        return self.state in (DueState.OVERDUE, DueState.DUE_SOON)


def check_status(current: float, due: float, soon_threshold: float) -> DueState:
    """Determine state by comparing current value to due threshold."""
    if current >= due:
        return DueState.OVERDUE
    if current >= due - soon_threshold:
        return DueState.DUE_SOON
    return DueState.LATER


def check_date_status(today: date, due: date, soon_days: int) -> DueState:
    """Overdue only once the due date has passed; the due day itself is due-soon."""
    days_left = (due - today).days
    if days_left < 0:
        return DueState.OVERDUE
    if days_left <= soon_days:
        return DueState.DUE_SOON
    return DueState.LATER


def assess_obligation(
    obligation: MaintenanceObligation,
    today: date,
    current_odometer: int,
    due_soon_days: int = DUE_SOON_DAYS,
    due_soon_km: int = DUE_SOON_KM,
) -> DueInfo:
    """
    Evaluate every applicable trigger and keep the most urgent result.

    Logic:
    - Date trigger: overdue if due date < today, due-soon within due_soon_days
    - Odometer trigger: overdue if odometer >= due, due-soon within due_soon_km
    - Otherwise later
    """
    state = DueState.LATER
    days_remaining = None
    km_remaining = None

    due_date = obligation.due_date_value
    if obligation.trigger.uses_date and due_date is not None:
        days_remaining = (due_date - today).days
        state = check_date_status(today, due_date, due_soon_days)

    if obligation.trigger.uses_odometer and obligation.due_odometer is not None:
        km_remaining = int(obligation.due_odometer) - int(current_odometer)
        odo_state = check_status(current_odometer, obligation.due_odometer, due_soon_km)
        # Escalate if the odometer check is worse
        if odo_state.value < state.value:
            state = odo_state

    return DueInfo(
        obligation=obligation,
        state=state,
        days_remaining=days_remaining,
        km_remaining=km_remaining,
    )


def classify_obligation(
    obligation: MaintenanceObligation,
    today: date,
    current_odometer: int,
    due_soon_days: int = DUE_SOON_DAYS,
    due_soon_km: int = DUE_SOON_KM,
) -> DueState:
    """Tri-state urgency of an obligation. Does not mutate it."""
    return assess_obligation(
        obligation, today, current_odometer, due_soon_days, due_soon_km
    ).state
