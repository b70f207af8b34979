"""LedgerEntry class for recorded vehicle expenses and services."""

from typing import Optional

from .status import EntryCategory


class LedgerEntry:
    """A record of a vehicle expense or service performed."""

    def __init__(
        self,
        vehicle_id: str,
        category: EntryCategory,
        amount: float,
        date: str,
        type: Optional[str] = None,
        odometer: Optional[int] = None,
        notes: Optional[str] = None,
        obligation_id: Optional[str] = None,
        finance_tx_id: Optional[str] = None,
        id: Optional[str] = None,
        version: int = 0,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.category = category
        self.type = type
        self.amount = float(amount or 0)
        self.date = date
        self.odometer = odometer
        self.notes = notes
        self.obligation_id = obligation_id
        self.finance_tx_id = finance_tx_id
        self.version = version

    @property
    def is_finance_linked(self) -> bool:
        return self.finance_tx_id is not None

    def matches(self, kind: str) -> bool:
        """True when kind names this entry's category or its type."""
        if self.category.value == kind.lower():
            return True
        return (self.type or "").lower() == kind.lower()
