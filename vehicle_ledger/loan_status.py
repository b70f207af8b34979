"""Resolve a loan's live status from its terms, its payments and today's date."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from .amortization import calculate_emi
from .loan import Loan, Payment
from .status import LoanHealth, PaymentCategory


@dataclass
class LoanStatus:
    """Calculated repayment status for a loan as of a given day."""

    loan_id: Optional[str]
    status: LoanHealth
    emi: float
    total_payable: float
    total_paid: float
    installments_paid: int
    expected_installments: int
    remaining_balance: float
    remaining_principal: float
    remaining_interest: float
    is_overdue: bool
    days_late: int = 0
    next_installment_date: Optional[date] = None

    @property
    def is_closed(self) -> bool:
        return self.status == LoanHealth.CLOSED


def months_elapsed(start: date, today: date) -> int:
    """Whole calendar months from start to today, never negative."""
    return max(0, (today.year - start.year) * 12 + (today.month - start.month))


def expected_installments(start: date, today: date, due_day: int) -> int:
    """
    Installments that should have been paid by today.

    One per elapsed month, plus this month's once its due day is reached.
    """
    if today < start:
        return 0
    months = months_elapsed(start, today)
    if today.day >= due_day:
        return months + 1
    return months


def installment_due_date(start: date, number: int, due_day: int) -> date:
    """Due date of the 1-based installment, clamped to the month's last day."""
    first_of_month = start.replace(day=1)
    return first_of_month + relativedelta(months=number - 1, day=due_day)


def resolve_from_totals(
    loan: Loan, total_paid: float, installments_paid: int, today: date
) -> LoanStatus:
    """
    Resolve status from aggregate payment totals.

    Used directly when payments are tracked outside the loan record;
    resolve_loan_status feeds it from the loan's own history.
    """
    total_payable = loan.total_payable
    emi = loan.emi
    if not total_payable:
        quote = calculate_emi(
            loan.principal, loan.annual_rate, loan.tenure_months, loan.convention
        )
        total_payable = quote.total_payable
        emi = emi or quote.emi

    start = loan.start_date_value
    expected = expected_installments(start, today, loan.due_day)
    remaining_balance = max(0.0, total_payable - total_paid)
    closed = remaining_balance <= 0 or loan.is_closed
    is_overdue = not closed and installments_paid < min(expected, loan.tenure_months)

    next_date = None
    days_late = 0
    if not closed:
        next_date = installment_due_date(start, installments_paid + 1, loan.due_day)
        if is_overdue:
            days_late = max(0, (today - next_date).days)

    if closed:
        status = LoanHealth.CLOSED
    elif is_overdue:
        status = LoanHealth.OVERDUE
    else:
        status = LoanHealth.ACTIVE

    return LoanStatus(
        loan_id=loan.id,
        status=status,
        emi=emi,
        total_payable=total_payable,
        total_paid=total_paid,
        installments_paid=installments_paid,
        expected_installments=expected,
        remaining_balance=remaining_balance,
        remaining_principal=loan.remaining_principal,
        remaining_interest=max(0.0, remaining_balance - loan.remaining_principal),
        is_overdue=is_overdue,
        days_late=days_late,
        next_installment_date=next_date,
    )


def resolve_loan_status(
    loan: Loan, today: date, payments: Optional[Iterable[Payment]] = None
) -> LoanStatus:
    """Resolve status from the loan's payment history (or the given payments)."""
    history = list(payments if payments is not None else loan.payments)
    total_paid = sum(p.amount for p in history)
    installments_paid = sum(1 for p in history if p.category == PaymentCategory.EMI)
    return resolve_from_totals(loan, total_paid, installments_paid, today)
