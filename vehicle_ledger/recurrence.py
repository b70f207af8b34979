"""Helper functions for computing the next occurrence of an obligation."""

from datetime import date
from typing import Optional, TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from .errors import ValidationError
from .obligation import MaintenanceObligation
from .status import ObligationStatus

if TYPE_CHECKING:
    from .catalog import ObligationTemplate


def add_interval(anchor: date, value: int, unit: str) -> date:
    """
    Advance a date by a calendar interval.

    Month and year steps clamp to the last valid day of the target month,
    so Jan 31 + 1 month is Feb 28 (or 29), never Mar 3.
    """
    if unit == "days":
        return anchor + relativedelta(days=value)
    if unit == "months":
        return anchor + relativedelta(months=value)
    if unit == "years":
        return anchor + relativedelta(years=value)
    raise ValidationError(f"unknown interval unit: {unit}", "interval_unit")


def calc_due_date(
    completed_on: date, interval_value: Optional[int], interval_unit: Optional[str]
) -> Optional[date]:
    """Calculate next due date: completion date + interval."""
    if not interval_value or not interval_unit:
        return None
    if interval_value < 0:
        raise ValidationError("interval must not be negative", "interval_value")
    return add_interval(completed_on, interval_value, interval_unit)


def calc_due_odometer(odometer: int, interval_km: Optional[int]) -> Optional[int]:
    """Calculate next due odometer: reading at completion + interval."""
    if not interval_km:
        return None
    if interval_km < 0:
        raise ValidationError("km interval must not be negative", "interval_km")
    return int(odometer) + int(interval_km)


def next_occurrence(
    obligation: MaintenanceObligation, completed_on: date, odometer: int
) -> MaintenanceObligation:
    """
    Build the pending successor of a fulfilled obligation.

    Date and odometer triggers are computed independently; a "both"
    obligation carries whichever values its intervals allow. The
    successor has no id; the caller assigns one when storing it.
    """
    due_date = None
    due_odometer = None
    if obligation.trigger.uses_date:
        next_date = calc_due_date(
            completed_on, obligation.interval_value, obligation.interval_unit
        )
        due_date = next_date.isoformat() if next_date else None
    if obligation.trigger.uses_odometer:
        due_odometer = calc_due_odometer(odometer, obligation.interval_km)

    return MaintenanceObligation(
        vehicle_id=obligation.vehicle_id,
        type=obligation.type,
        trigger=obligation.trigger,
        due_date=due_date,
        due_odometer=due_odometer,
        recurring=obligation.recurring,
        interval_value=obligation.interval_value,
        interval_unit=obligation.interval_unit,
        interval_km=obligation.interval_km,
        status=ObligationStatus.PENDING,
        category=obligation.category,
        standard=obligation.standard,
        notes=obligation.notes,
    )


def seed_from_template(
    template: "ObligationTemplate", vehicle_id: str, anchor: date, odometer: int
) -> MaintenanceObligation:
    """Create a recurring obligation from a catalogue template, anchored now."""
    anchor_obligation = MaintenanceObligation(
        vehicle_id=vehicle_id,
        type=template.name,
        trigger=template.trigger,
        recurring=True,
        interval_value=template.interval_value,
        interval_unit=template.interval_unit,
        interval_km=template.interval_km,
        category=template.category,
        standard=True,
    )
    return next_occurrence(anchor_obligation, anchor, odometer)
