"""Inputs to the write workflows, with validation and payload round-tripping."""

import logging
import warnings
from datetime import date
from typing import Any, Dict, Optional

from .config import Settings
from .errors import ConsistencyWarning, ValidationError
from .status import EntryCategory, PaymentCategory

logger = logging.getLogger(__name__)


def check_date(value: Optional[str], field: str) -> None:
    if not value:
        raise ValidationError(f"{field} is required", field)
    try:
        date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"invalid {field}: {value}", field)


def check_non_negative(value: Optional[float], field: str) -> None:
    if value is not None and value < 0:
        raise ValidationError(f"{field} must not be negative", field)


def warn_consistency(message: str) -> None:
    """Log and issue a ConsistencyWarning for a skipped, non-fatal step."""
    logger.warning(message)
    warnings.warn(message, ConsistencyWarning, stacklevel=3)


def _check_account(amount: float, account_id: Optional[str], settings: Settings) -> None:
    if settings.require_account_for_cost and amount > 0 and not account_id:
        raise ValidationError("a paying account is required for a cost", "account_id")


class CompletionDetails:
    """How and when an obligation was fulfilled."""

    def __init__(
        self,
        date: str,
        odometer: Optional[int] = None,
        cost: float = 0,
        account_id: Optional[str] = None,
        notes: Optional[str] = None,
    ):
        self.date = date
        self.odometer = odometer
        self.cost = float(cost or 0)
        self.account_id = account_id
        self.notes = notes

    def validate(self, settings: Settings) -> None:
        check_date(self.date, "date")
        check_non_negative(self.cost, "cost")
        check_non_negative(self.odometer, "odometer")
        _check_account(self.cost, self.account_id, settings)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "odometer": self.odometer,
            "cost": self.cost,
            "accountId": self.account_id,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, dct: Dict[str, Any]) -> "CompletionDetails":
        return cls(
            dct["date"],
            dct.get("odometer"),
            dct.get("cost", 0),
            dct.get("accountId"),
            dct.get("notes"),
        )


class ServiceRecordDetails:
    """An ad-hoc expense or service logged without a prior obligation."""

    def __init__(
        self,
        vehicle_id: str,
        amount: float,
        date: str,
        type: Optional[str] = None,
        category: Optional[EntryCategory] = None,
        odometer: Optional[int] = None,
        notes: Optional[str] = None,
        account_id: Optional[str] = None,
    ):
        self.vehicle_id = vehicle_id
        self.amount = float(amount or 0)
        self.date = date
        self.type = type
        self.category = category
        self.odometer = odometer
        self.notes = notes
        self.account_id = account_id

    def validate(self, settings: Settings) -> None:
        if not self.vehicle_id:
            raise ValidationError("vehicle id is required", "vehicle_id")
        if not self.type and self.category is None:
            raise ValidationError("a type or a category is required", "type")
        check_date(self.date, "date")
        check_non_negative(self.amount, "amount")
        check_non_negative(self.odometer, "odometer")
        _check_account(self.amount, self.account_id, settings)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "vehicleId": self.vehicle_id,
            "amount": self.amount,
            "date": self.date,
            "type": self.type,
            "category": self.category.value if self.category else None,
            "odometer": self.odometer,
            "notes": self.notes,
            "accountId": self.account_id,
        }

    @classmethod
    def from_dict(cls, dct: Dict[str, Any]) -> "ServiceRecordDetails":
        category = dct.get("category")
        return cls(
            dct["vehicleId"],
            dct.get("amount", 0),
            dct["date"],
            dct.get("type"),
            EntryCategory(category) if category else None,
            dct.get("odometer"),
            dct.get("notes"),
            dct.get("accountId"),
        )


class PaymentDetails:
    """
    A loan payment as entered by the owner.

    principal and interest may be left as None; the service then splits the
    amount using the loan's current-month interest before recording it.
    """

    def __init__(
        self,
        amount: float,
        date: str,
        principal: Optional[float] = None,
        interest: Optional[float] = None,
        penalty: float = 0,
        discount: float = 0,
        category: PaymentCategory = PaymentCategory.EMI,
        account_id: Optional[str] = None,
        notes: Optional[str] = None,
    ):
        self.amount = float(amount or 0)
        self.date = date
        self.principal = principal
        self.interest = interest
        self.penalty = float(penalty or 0)
        self.discount = float(discount or 0)
        self.category = category
        self.account_id = account_id
        self.notes = notes

    def validate(self, settings: Settings) -> None:
        if not isinstance(self.category, PaymentCategory):
            raise ValidationError(f"unknown payment category: {self.category}", "category")
        check_date(self.date, "date")
        for field in ("amount", "principal", "interest", "penalty", "discount"):
            check_non_negative(getattr(self, field), field)
        _check_account(self.amount, self.account_id, settings)
        if self.amount <= 0 and (self.penalty > 0 or self.discount > 0):
            warn_consistency(
                f"penalty/discount given with non-positive amount {self.amount}"
            )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "date": self.date,
            "principal": self.principal,
            "interest": self.interest,
            "penalty": self.penalty,
            "discount": self.discount,
            "category": self.category.value,
            "accountId": self.account_id,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, dct: Dict[str, Any]) -> "PaymentDetails":
        return cls(
            dct["amount"],
            dct["date"],
            dct.get("principal"),
            dct.get("interest"),
            dct.get("penalty", 0),
            dct.get("discount", 0),
            PaymentCategory(dct.get("category", "EMI")),
            dct.get("accountId"),
            dct.get("notes"),
        )
