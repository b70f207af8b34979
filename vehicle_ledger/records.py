"""Conversion between ledger objects and document store records (camelCase keys)."""

from datetime import date, datetime
from typing import Any, Dict, Optional

from .entry import LedgerEntry
from .loan import Loan, Payment
from .obligation import MaintenanceObligation
from .status import (
    EntryCategory,
    InterestConvention,
    LoanState,
    ObligationStatus,
    PaymentCategory,
    TriggerKind,
)
from .vehicle import Vehicle


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values for cleaner records."""
    return {k: v for k, v in d.items() if v is not None}


def _enum_or_none(enum_cls, value: Optional[str]):
    return enum_cls(value) if value is not None else None


def _date_text(value: Any) -> Optional[str]:
    """ISO text for a date field; unquoted YAML dates load as date objects."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return value


# =============================================================================
# Vehicle
# =============================================================================


def vehicle_to_record(vehicle: Vehicle) -> Dict[str, Any]:
    return _compact(
        {
            "ownerId": vehicle.owner_id,
            "name": vehicle.name,
            "type": vehicle.type,
            "odometer": vehicle.odometer,
            "purchaseDate": vehicle.purchase_date,
            "brandModel": vehicle.brand_model,
            "regNumber": vehicle.reg_number,
            "fuelType": vehicle.fuel_type,
            "archived": vehicle.archived,
        }
    )


def parse_vehicle(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        dct["ownerId"],
        dct["name"],
        dct.get("type", "car"),
        dct.get("odometer", 0),
        _date_text(dct.get("purchaseDate")),
        dct.get("brandModel"),
        dct.get("regNumber"),
        dct.get("fuelType"),
        dct.get("archived", False),
        dct.get("id"),
        dct.get("version", 0),
    )


# =============================================================================
# MaintenanceObligation
# =============================================================================


def obligation_to_record(obligation: MaintenanceObligation) -> Dict[str, Any]:
    return _compact(
        {
            "vehicleId": obligation.vehicle_id,
            "type": obligation.type,
            "trigger": obligation.trigger.value,
            "dueDate": obligation.due_date,
            "dueOdometer": obligation.due_odometer,
            "recurring": obligation.recurring,
            "intervalValue": obligation.interval_value,
            "intervalUnit": obligation.interval_unit,
            "intervalKm": obligation.interval_km,
            "status": obligation.status.value,
            "category": obligation.category.value if obligation.category else None,
            "standard": obligation.standard,
            "notes": obligation.notes,
        }
    )


def parse_obligation(dct: Dict[str, Any]) -> MaintenanceObligation:
    return MaintenanceObligation(
        dct["vehicleId"],
        dct["type"],
        TriggerKind(dct["trigger"]),
        _date_text(dct.get("dueDate")),
        dct.get("dueOdometer"),
        dct.get("recurring", False),
        dct.get("intervalValue"),
        dct.get("intervalUnit"),
        dct.get("intervalKm"),
        ObligationStatus(dct.get("status", "pending")),
        _enum_or_none(EntryCategory, dct.get("category")),
        dct.get("standard", False),
        dct.get("notes"),
        dct.get("id"),
        dct.get("version", 0),
    )


# =============================================================================
# LedgerEntry
# =============================================================================


def entry_to_record(entry: LedgerEntry) -> Dict[str, Any]:
    return _compact(
        {
            "vehicleId": entry.vehicle_id,
            "category": entry.category.value,
            "type": entry.type,
            "amount": entry.amount,
            "date": entry.date,
            "odometer": entry.odometer,
            "notes": entry.notes,
            "obligationId": entry.obligation_id,
            "financeTxId": entry.finance_tx_id,
        }
    )


def parse_entry(dct: Dict[str, Any]) -> LedgerEntry:
    return LedgerEntry(
        dct["vehicleId"],
        EntryCategory(dct.get("category", "other")),
        dct.get("amount", 0),
        _date_text(dct["date"]),
        dct.get("type"),
        dct.get("odometer"),
        dct.get("notes"),
        dct.get("obligationId"),
        dct.get("financeTxId"),
        dct.get("id"),
        dct.get("version", 0),
    )


# =============================================================================
# Loan and Payment
# =============================================================================


def payment_to_record(payment: Payment) -> Dict[str, Any]:
    return _compact(
        {
            "id": payment.id,
            "date": payment.date,
            "amount": payment.amount,
            "principal": payment.principal,
            "interest": payment.interest,
            "penalty": payment.penalty,
            "discount": payment.discount,
            "category": payment.category.value,
            "accountId": payment.account_id,
            "notes": payment.notes,
            "financeTxId": payment.finance_tx_id,
        }
    )


def parse_payment(dct: Dict[str, Any]) -> Payment:
    return Payment(
        _date_text(dct["date"]),
        dct.get("amount", 0),
        dct.get("principal", 0),
        dct.get("interest", 0),
        dct.get("penalty", 0),
        dct.get("discount", 0),
        PaymentCategory(dct.get("category", "EMI")),
        dct.get("accountId"),
        dct.get("notes"),
        dct.get("financeTxId"),
        dct.get("id"),
    )


def loan_to_record(loan: Loan) -> Dict[str, Any]:
    return _compact(
        {
            "vehicleId": loan.vehicle_id,
            "lender": loan.lender,
            "principal": loan.principal,
            "annualRate": loan.annual_rate,
            "tenureMonths": loan.tenure_months,
            "startDate": loan.start_date,
            "dueDay": loan.due_day,
            "convention": loan.convention.value,
            "emi": loan.emi,
            "totalPayable": loan.total_payable,
            "totalInterest": loan.total_interest,
            "remainingPrincipal": loan.remaining_principal,
            "status": loan.status.value,
            "payments": [payment_to_record(p) for p in loan.payments],
        }
    )


def parse_loan(dct: Dict[str, Any]) -> Loan:
    return Loan(
        dct["vehicleId"],
        dct.get("lender", ""),
        dct["principal"],
        dct["annualRate"],
        dct["tenureMonths"],
        _date_text(dct["startDate"]),
        dct.get("dueDay", 1),
        InterestConvention(dct.get("convention", "reducing")),
        dct.get("emi", 0),
        dct.get("totalPayable", 0),
        dct.get("totalInterest", 0),
        dct.get("remainingPrincipal"),
        LoanState(dct.get("status", "active")),
        [parse_payment(p) for p in dct.get("payments") or []],
        dct.get("id"),
        dct.get("version", 0),
    )
