"""Enums for obligation urgency, risk severity and record states."""

from enum import Enum


class DueState(Enum):
    """Obligation urgency categories. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    LATER = 3


class RiskSeverity(Enum):
    """Risk alert severity. Lower value = shown first."""

    CRITICAL = 1
    WARNING = 2
    INFO = 3


class TriggerKind(Enum):
    """Which condition(s) make an obligation due."""

    DATE = "date"
    ODOMETER = "odometer"
    BOTH = "both"

    @property
    def uses_date(self) -> bool:
        return self in (TriggerKind.DATE, TriggerKind.BOTH)

    @property
    def uses_odometer(self) -> bool:
        return self in (TriggerKind.ODOMETER, TriggerKind.BOTH)


class ObligationStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class EntryCategory(Enum):
    """Ledger entry categories used for spend breakdowns."""

    FUEL = "fuel"
    SERVICE = "service"
    EMI = "emi"
    INSURANCE = "insurance"
    OTHER = "other"


class InterestConvention(Enum):
    REDUCING = "reducing"
    FLAT = "flat"


class LoanState(Enum):
    """Stored loan state. Resolved states (overdue) live in LoanHealth."""

    ACTIVE = "active"
    CLOSED = "closed"


class LoanHealth(Enum):
    ACTIVE = "active"
    OVERDUE = "overdue"
    CLOSED = "closed"


class PaymentCategory(Enum):
    EMI = "EMI"
    PREPAYMENT = "Prepayment"
    PENALTY = "Penalty"
