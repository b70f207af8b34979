"""MaintenanceObligation class for tracked maintenance and renewal tasks."""

from datetime import date
from typing import Optional

from .errors import ValidationError
from .status import EntryCategory, ObligationStatus, TriggerKind

INTERVAL_UNITS = ("days", "months", "years")


def infer_category(name: Optional[str]) -> EntryCategory:
    """Keyword match on a type name: fuel, insurance, else service."""
    lowered = (name or "").lower()
    if "fuel" in lowered:
        return EntryCategory.FUEL
    if "insurance" in lowered:
        return EntryCategory.INSURANCE
    return EntryCategory.SERVICE


class MaintenanceObligation:
    """A maintenance or renewal task that falls due by date, odometer, or both."""

    def __init__(
        self,
        vehicle_id: str,
        type: str,
        trigger: TriggerKind,
        due_date: Optional[str] = None,
        due_odometer: Optional[int] = None,
        recurring: bool = False,
        interval_value: Optional[int] = None,
        interval_unit: Optional[str] = None,
        interval_km: Optional[int] = None,
        status: ObligationStatus = ObligationStatus.PENDING,
        category: Optional[EntryCategory] = None,
        standard: bool = False,
        notes: Optional[str] = None,
        id: Optional[str] = None,
        version: int = 0,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.type = type
        self.trigger = trigger
        self.due_date = due_date
        self.due_odometer = due_odometer
        self.recurring = recurring or False
        self.interval_value = interval_value
        self.interval_unit = interval_unit
        self.interval_km = interval_km
        self.status = status
        self.category = category
        self.standard = standard or False
        self.notes = notes
        self.version = version

    @property
    def is_pending(self) -> bool:
        return self.status == ObligationStatus.PENDING

    @property
    def due_date_value(self) -> Optional[date]:
        return date.fromisoformat(str(self.due_date)[:10]) if self.due_date else None

    @property
    def entry_category(self) -> EntryCategory:
        """
        Ledger category for entries that fulfil this obligation.

        An explicit category wins; without one the type name decides.
        """
        if self.category is not None:
            return self.category
        return infer_category(self.type)

    def matches(self, keyword: str) -> bool:
        """Case-insensitive substring match on the type name."""
        return keyword.lower() in (self.type or "").lower()

    def validate(self) -> None:
        """Check the trigger invariants, raising ValidationError on failure."""
        if not self.vehicle_id:
            raise ValidationError("vehicle id is required", "vehicle_id")
        if not self.type:
            raise ValidationError("obligation type is required", "type")
        if not isinstance(self.trigger, TriggerKind):
            raise ValidationError(f"unknown trigger kind: {self.trigger}", "trigger")
        if self.trigger == TriggerKind.DATE and not self.due_date:
            raise ValidationError("date-triggered obligation needs a due date", "due_date")
        if self.trigger == TriggerKind.ODOMETER and self.due_odometer is None:
            raise ValidationError(
                "odometer-triggered obligation needs a due odometer", "due_odometer"
            )
        if self.trigger == TriggerKind.BOTH and not self.due_date and self.due_odometer is None:
            raise ValidationError(
                "obligation needs a due date or a due odometer", "due_date"
            )
        if self.due_date:
            try:
                date.fromisoformat(str(self.due_date)[:10])
            except ValueError:
                raise ValidationError(f"invalid due date: {self.due_date}", "due_date")
        if self.interval_unit is not None and self.interval_unit not in INTERVAL_UNITS:
            raise ValidationError(
                f"interval unit must be one of {INTERVAL_UNITS}", "interval_unit"
            )
        for field in ("interval_value", "interval_km"):
            value = getattr(self, field)
            if value is not None and value <= 0:
                raise ValidationError(f"{field} must be positive", field)
        if self.recurring:
            has_date_interval = bool(self.interval_value and self.interval_unit)
            has_km_interval = bool(self.interval_km)
            if self.trigger == TriggerKind.DATE and not has_date_interval:
                raise ValidationError(
                    "recurring date obligation needs an interval", "interval_value"
                )
            if self.trigger == TriggerKind.ODOMETER and not has_km_interval:
                raise ValidationError(
                    "recurring odometer obligation needs a km interval", "interval_km"
                )
            if not has_date_interval and not has_km_interval:
                raise ValidationError(
                    "recurring obligation needs an interval", "interval_value"
                )
