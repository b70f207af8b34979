"""Loan and Payment classes for vehicle financing."""

from datetime import date
from typing import List, Optional

from .status import InterestConvention, LoanState, PaymentCategory


class Payment:
    """One posted loan payment. Payments are append-only."""

    def __init__(
        self,
        date: str,
        amount: float,
        principal: float = 0,
        interest: float = 0,
        penalty: float = 0,
        discount: float = 0,
        category: PaymentCategory = PaymentCategory.EMI,
        account_id: Optional[str] = None,
        notes: Optional[str] = None,
        finance_tx_id: Optional[str] = None,
        id: Optional[str] = None,
    ):
        self.id = id
        self.date = date
        self.amount = float(amount or 0)
        self.principal = float(principal or 0)
        self.interest = float(interest or 0)
        self.penalty = float(penalty or 0)
        self.discount = float(discount or 0)
        self.category = category
        self.account_id = account_id
        self.notes = notes
        self.finance_tx_id = finance_tx_id


class Loan:
    """A vehicle loan with fixed EMI terms and its payment history."""

    def __init__(
        self,
        vehicle_id: str,
        lender: str,
        principal: float,
        annual_rate: float,
        tenure_months: int,
        start_date: str,
        due_day: int = 1,
        convention: InterestConvention = InterestConvention.REDUCING,
        emi: float = 0,
        total_payable: float = 0,
        total_interest: float = 0,
        remaining_principal: Optional[float] = None,
        status: LoanState = LoanState.ACTIVE,
        payments: Optional[List[Payment]] = None,
        id: Optional[str] = None,
        version: int = 0,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.lender = lender
        self.principal = float(principal)
        self.annual_rate = float(annual_rate)
        self.tenure_months = int(tenure_months)
        self.start_date = start_date
        self.due_day = int(due_day)
        self.convention = convention
        self.emi = emi
        self.total_payable = total_payable
        self.total_interest = total_interest
        self.remaining_principal = (
            float(remaining_principal) if remaining_principal is not None else self.principal
        )
        self.status = status
        self.payments = payments or []
        self.version = version

    @property
    def start_date_value(self) -> date:
        return date.fromisoformat(str(self.start_date)[:10])

    @property
    def is_closed(self) -> bool:
        return self.status == LoanState.CLOSED

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 1200
