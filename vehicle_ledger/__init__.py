"""
Vehicle ownership ledger and loan engine.

This package tracks what it costs to own a vehicle:
- Vehicle: Owned vehicle and its odometer
- MaintenanceObligation: Maintenance or renewal task due by date and/or odometer
- LedgerEntry: Recorded expense or service
- Loan / Payment: Vehicle financing and its payment history
- Recurrence, due-state, amortization and loan status calculations
- OwnershipLedgerService: Vehicle, obligation, entry and loan workflows
- Aggregation: Spend, trend, health score and risk list per vehicle
- VehicleWatch: Live view re-derived on every store change
"""

from .status import (
    DueState,
    RiskSeverity,
    TriggerKind,
    ObligationStatus,
    EntryCategory,
    InterestConvention,
    LoanState,
    LoanHealth,
    PaymentCategory,
)
from .errors import (
    LedgerError,
    ValidationError,
    NotFoundError,
    ConflictError,
    CollaboratorError,
    ConsistencyWarning,
    StoreError,
    LedgerWriterError,
)
from .vehicle import Vehicle
from .obligation import MaintenanceObligation
from .entry import LedgerEntry
from .loan import Loan, Payment
from .recurrence import add_interval, calc_due_date, calc_due_odometer, next_occurrence
from .due_state import DueInfo, classify_obligation
from .amortization import (
    EmiQuote,
    ScheduleRow,
    PrepaymentResult,
    calculate_emi,
    generate_schedule,
    simulate_prepayment,
)
from .loan_status import LoanStatus, resolve_loan_status
from .catalog import ObligationTemplate, load_catalog
from .config import Settings, load_settings
from .store import DocumentStore, InMemoryDocumentStore, YamlDocumentStore
from .finance import ExpensePosting, LedgerWriter, StoreLedgerWriter
from .details import CompletionDetails, PaymentDetails, ServiceRecordDetails
from .aggregation import Risk, VehicleStats, VehicleView, derive_vehicle_view
from .service import (
    OwnershipLedgerService,
    CompletionResult,
    PaymentResult,
    ServiceRecordResult,
)
from .live import VehicleWatch

__all__ = [
    "DueState",
    "RiskSeverity",
    "TriggerKind",
    "ObligationStatus",
    "EntryCategory",
    "InterestConvention",
    "LoanState",
    "LoanHealth",
    "PaymentCategory",
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "CollaboratorError",
    "ConsistencyWarning",
    "StoreError",
    "LedgerWriterError",
    "Vehicle",
    "MaintenanceObligation",
    "LedgerEntry",
    "Loan",
    "Payment",
    "add_interval",
    "calc_due_date",
    "calc_due_odometer",
    "next_occurrence",
    "DueInfo",
    "classify_obligation",
    "EmiQuote",
    "ScheduleRow",
    "PrepaymentResult",
    "calculate_emi",
    "generate_schedule",
    "simulate_prepayment",
    "LoanStatus",
    "resolve_loan_status",
    "ObligationTemplate",
    "load_catalog",
    "Settings",
    "load_settings",
    "DocumentStore",
    "InMemoryDocumentStore",
    "YamlDocumentStore",
    "ExpensePosting",
    "LedgerWriter",
    "StoreLedgerWriter",
    "CompletionDetails",
    "PaymentDetails",
    "ServiceRecordDetails",
    "Risk",
    "VehicleStats",
    "VehicleView",
    "derive_vehicle_view",
    "OwnershipLedgerService",
    "CompletionResult",
    "PaymentResult",
    "ServiceRecordResult",
    "VehicleWatch",
]
