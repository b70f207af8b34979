"""
EMI, amortization schedule and prepayment calculations.

Two interest conventions are supported:
- reducing: interest each month on the outstanding balance
- flat: interest on the original principal for the whole tenure, spread evenly

Amounts are floats rounded to whole currency units where the result is
quoted to a borrower (EMI, totals); schedule rows keep fractional values.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .errors import ValidationError
from .loan import Loan
from .status import InterestConvention, PaymentCategory

MAX_SIMULATION_MONTHS = 120


@dataclass
class EmiQuote:
    """Installment and totals for a set of loan terms."""

    emi: float
    total_payable: float
    total_interest: float


@dataclass
class ScheduleRow:
    """One month of an amortization schedule."""

    month: int
    date: date
    payment: float
    principal: float
    interest: float
    balance: float


@dataclass
class PrepaymentResult:
    """Outcome of applying a lump sum against the outstanding principal."""

    full_closure: bool
    interest_saved: float = 0
    months_saved: int = 0
    baseline_months: int = 0
    baseline_interest: float = 0
    new_months: int = 0
    new_interest: float = 0


def round_currency(value: float) -> float:
    """Round half up to a whole currency unit."""
    return float(math.floor(value + 0.5))


def calculate_emi(
    principal: float,
    annual_rate: float,
    tenure_months: int,
    convention: InterestConvention = InterestConvention.REDUCING,
) -> EmiQuote:
    """
    Calculate the equated monthly installment.

    Reducing: EMI = P*r*(1+r)^N / ((1+r)^N - 1) with r = R/1200.
    Flat: interest = P*R/100*N/12, EMI = (P + interest) / N.
    Any non-positive input yields an all-zero quote.
    """
    if principal <= 0 or annual_rate <= 0 or tenure_months <= 0:
        return EmiQuote(emi=0, total_payable=0, total_interest=0)

    if convention == InterestConvention.FLAT:
        total_interest = principal * (annual_rate / 100) * (tenure_months / 12)
        emi = round_currency((principal + total_interest) / tenure_months)
        return EmiQuote(
            emi=emi,
            total_payable=round_currency(principal + total_interest),
            total_interest=round_currency(total_interest),
        )

    r = annual_rate / 1200
    growth = (1 + r) ** tenure_months
    emi = round_currency(principal * r * growth / (growth - 1))
    total_payable = emi * tenure_months
    return EmiQuote(
        emi=emi,
        total_payable=total_payable,
        total_interest=total_payable - principal,
    )


def installment_date(start: date, month: int, due_day: Optional[int]) -> date:
    """Date of the given 1-based installment; due days past 28 keep the start day."""
    paid_on = start + relativedelta(months=month - 1)
    if due_day and due_day <= 28:
        paid_on = paid_on.replace(day=due_day)
    return paid_on


def generate_schedule(
    principal: float,
    annual_rate: float,
    tenure_months: int,
    start_date: date,
    due_day: Optional[int] = None,
    convention: InterestConvention = InterestConvention.REDUCING,
    emi: Optional[float] = None,
) -> List[ScheduleRow]:
    """
    Build the month-by-month repayment schedule.

    The final month, or any month whose principal would exceed the remaining
    balance, pays exactly the remaining balance so the schedule closes at 0.
    Only the principal is clamped; flat interest stays totalInterest / N.
    """
    if principal <= 0 or tenure_months <= 0:
        return []
    quote = calculate_emi(principal, annual_rate, tenure_months, convention)
    if emi is None:
        emi = quote.emi
    if emi <= 0:
        return []

    r = annual_rate / 1200
    flat_interest = quote.total_interest / tenure_months
    balance = principal
    rows = []

    for month in range(1, tenure_months + 1):
        if convention == InterestConvention.FLAT:
            interest = flat_interest
        else:
            interest = balance * r
        principal_part = emi - interest

        if principal_part > balance or month == tenure_months:
            principal_part = balance

        balance -= principal_part
        rows.append(
            ScheduleRow(
                month=month,
                date=installment_date(start_date, month, due_day),
                payment=principal_part + interest,
                principal=principal_part,
                interest=interest,
                balance=max(0.0, balance),
            )
        )
        if balance <= 0:
            break

    return rows


def schedule_for_loan(loan: Loan) -> List[ScheduleRow]:
    """Amortization schedule of a stored loan, using its quoted EMI."""
    return generate_schedule(
        principal=loan.principal,
        annual_rate=loan.annual_rate,
        tenure_months=loan.tenure_months,
        start_date=loan.start_date_value,
        due_day=loan.due_day,
        convention=loan.convention,
        emi=loan.emi or None,
    )


def _simulate_payoff(balance: float, monthly_rate: float, emi: float, max_months: int):
    """Months and total interest to clear a balance at a fixed EMI."""
    months = 0
    interest_paid = 0.0
    while balance > 0 and months < max_months:
        months += 1
        interest = balance * monthly_rate
        interest_paid += interest
        balance -= emi - interest
    return months, interest_paid


def simulate_prepayment(
    remaining_principal: float,
    extra: float,
    annual_rate: float,
    emi: float,
    max_months: int = MAX_SIMULATION_MONTHS,
) -> PrepaymentResult:
    """
    Compare paying off the balance with and without a lump-sum prepayment.

    Both trajectories use reducing-balance interest at an unchanged EMI and
    stop after max_months. A prepayment that covers the balance signals full
    closure without simulating.
    """
    if extra <= 0:
        raise ValidationError("prepayment amount must be positive", "amount")
    if extra >= remaining_principal:
        return PrepaymentResult(full_closure=True)

    monthly_rate = annual_rate / 1200
    base_months, base_interest = _simulate_payoff(
        remaining_principal, monthly_rate, emi, max_months
    )
    new_months, new_interest = _simulate_payoff(
        remaining_principal - extra, monthly_rate, emi, max_months
    )
    return PrepaymentResult(
        full_closure=False,
        interest_saved=max(0.0, base_interest - new_interest),
        months_saved=max(0, base_months - new_months),
        baseline_months=base_months,
        baseline_interest=base_interest,
        new_months=new_months,
        new_interest=new_interest,
    )


def split_installment(
    loan: Loan,
    amount: float,
    category: PaymentCategory = PaymentCategory.EMI,
    penalty: float = 0,
    discount: float = 0,
) -> Tuple[float, float]:
    """
    Split a payment into (principal, interest) when the payer gives no split.

    An EMI pays this month's interest first (on the outstanding balance, or
    the fixed monthly share for flat loans) and the rest goes to principal.
    Prepayments go wholly to principal; penalties to neither.
    """
    if category == PaymentCategory.PENALTY:
        return 0.0, 0.0
    payable = max(0.0, amount - penalty + discount)
    if category == PaymentCategory.PREPAYMENT:
        return payable, 0.0
    if loan.convention == InterestConvention.FLAT:
        interest = loan.total_interest / loan.tenure_months if loan.tenure_months else 0.0
    else:
        interest = loan.remaining_principal * loan.monthly_rate
    interest = min(round(interest, 2), payable)
    return round(payable - interest, 2), interest
