"""
Derived ownership views: spend totals, trend, breakdown, health and risks.

Everything here is a pure function of a snapshot (vehicle, obligations,
entries, loans, today) and is recomputed in full on every call. Missing
optional data (no purchase date, unparseable entry dates, no loan) yields
zero or empty values rather than errors.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from .amortization import round_currency
from .config import Settings
from .due_state import DueInfo, assess_obligation
from .entry import LedgerEntry
from .loan import Loan
from .loan_status import LoanStatus, months_elapsed, resolve_loan_status
from .obligation import MaintenanceObligation
from .status import DueState, EntryCategory, InterestConvention, LoanHealth, RiskSeverity
from .vehicle import Vehicle

TREND_MONTHS = 6


@dataclass
class TrendPoint:
    label: str
    month: date
    cost: float


@dataclass
class VehicleStats:
    """Rolled-up ownership cost and upkeep figures for one vehicle."""

    total_spend: float
    month_spend: float
    trend: List[TrendPoint]
    breakdown: Dict[str, float]
    months_owned: int
    cost_per_month: float
    cost_per_km: float
    overdue_count: int
    due_soon_count: int
    health_score: int
    last_service_date: Optional[str] = None
    last_service_type: Optional[str] = None


@dataclass
class Risk:
    severity: RiskSeverity
    title: str
    detail: str


@dataclass
class VehicleView:
    """Everything the dashboard derives for a vehicle at one instant."""

    vehicle: Vehicle
    stats: VehicleStats
    risks: List[Risk]
    loan: Optional[Loan] = None
    loan_status: Optional[LoanStatus] = None
    due: List[DueInfo] = field(default_factory=list)


# =============================================================================
# Spend
# =============================================================================


def entry_date(entry: LedgerEntry) -> Optional[date]:
    """Entry date as a date, or None when missing or malformed."""
    try:
        return date.fromisoformat(str(entry.date)[:10])
    except (TypeError, ValueError):
        return None


def total_spend(entries: Iterable[LedgerEntry]) -> float:
    return sum(e.amount for e in entries)


def spend_in_month(entries: Iterable[LedgerEntry], month: date) -> float:
    """Sum of entries dated in the calendar month containing month."""
    total = 0.0
    for e in entries:
        d = entry_date(e)
        if d is not None and d.year == month.year and d.month == month.month:
            total += e.amount
    return total


def build_trend(
    entries: List[LedgerEntry], today: date, months: int = TREND_MONTHS
) -> List[TrendPoint]:
    """Monthly totals, oldest first, ending with the current month."""
    first = today.replace(day=1)
    points = []
    for back in range(months - 1, -1, -1):
        month = first - relativedelta(months=back)
        points.append(
            TrendPoint(
                label=calendar.month_abbr[month.month],
                month=month,
                cost=spend_in_month(entries, month),
            )
        )
    return points


def build_breakdown(entries: Iterable[LedgerEntry]) -> Dict[str, float]:
    """Spend per entry category; every category is present."""
    breakdown = {c.value: 0.0 for c in EntryCategory}
    for e in entries:
        breakdown[e.category.value] += e.amount
    return breakdown


def months_owned(purchase_date: Optional[str], today: date) -> int:
    if not purchase_date:
        return 1
    try:
        purchased = date.fromisoformat(str(purchase_date)[:10])
    except ValueError:
        return 1
    return max(1, months_elapsed(purchased, today))


# =============================================================================
# Stats
# =============================================================================


def build_vehicle_stats(
    vehicle: Vehicle,
    entries: List[LedgerEntry],
    obligations: List[MaintenanceObligation],
    today: date,
    settings: Optional[Settings] = None,
) -> VehicleStats:
    settings = settings or Settings()
    total = total_spend(entries)
    owned = months_owned(vehicle.purchase_date, today)

    states = [
        assess_obligation(
            o, today, vehicle.odometer, settings.due_soon_days, settings.due_soon_km
        ).state
        for o in obligations
        if o.is_pending
    ]
    overdue = sum(1 for s in states if s == DueState.OVERDUE)
    due_soon = sum(1 for s in states if s == DueState.DUE_SOON)

    dated = [e for e in entries if entry_date(e) is not None]
    last = max(dated, key=lambda e: entry_date(e)) if dated else None

    return VehicleStats(
        total_spend=total,
        month_spend=spend_in_month(entries, today),
        trend=build_trend(entries, today),
        breakdown=build_breakdown(entries),
        months_owned=owned,
        cost_per_month=round_currency(total / owned),
        cost_per_km=round(total / vehicle.odometer, 2) if vehicle.odometer else 0.0,
        overdue_count=overdue,
        due_soon_count=due_soon,
        health_score=max(0, 100 - 10 * overdue),
        last_service_date=last.date if last else None,
        last_service_type=last.type if last else None,
    )


# =============================================================================
# Risks
# =============================================================================


def _money(amount: float, settings: Settings) -> str:
    return f"{settings.currency_symbol}{amount:,.0f}"


def _first_matching(
    obligations: List[MaintenanceObligation], keyword: str
) -> Optional[MaintenanceObligation]:
    for o in obligations:
        if o.is_pending and o.matches(keyword):
            return o
    return None


def build_risks(
    vehicle: Vehicle,
    obligations: List[MaintenanceObligation],
    stats: VehicleStats,
    today: date,
    loan: Optional[Loan] = None,
    loan_status: Optional[LoanStatus] = None,
    settings: Optional[Settings] = None,
) -> List[Risk]:
    """
    Prioritized risk alerts, critical first.

    Checks run in a fixed order (loan, insurance, oil change, monthly cost,
    rising cost) and the sort is stable, so alerts of equal severity keep
    that order.
    """
    settings = settings or Settings()
    risks = []

    if loan is not None and loan_status is not None:
        if loan_status.is_overdue:
            risks.append(
                Risk(
                    RiskSeverity.CRITICAL,
                    f"EMI overdue by {loan_status.days_late} days",
                    "Immediate payment required to avoid penalties.",
                )
            )
        elif loan_status.status == LoanHealth.ACTIVE:
            convention = (
                "Reducing balance"
                if loan.convention == InterestConvention.REDUCING
                else "Flat rate"
            )
            risks.append(
                Risk(
                    RiskSeverity.INFO,
                    f"Interest remaining: {_money(loan_status.remaining_interest, settings)}",
                    f"{convention} interest",
                )
            )

    insurance = _first_matching(obligations, "insurance")
    if insurance is not None and insurance.due_date_value is not None:
        days_left = (insurance.due_date_value - today).days
        if days_left < 0:
            risks.append(
                Risk(
                    RiskSeverity.CRITICAL,
                    "Insurance expired",
                    f"Expired {abs(days_left)} days ago. Do not drive.",
                )
            )
        elif days_left <= settings.insurance_warning_days:
            risks.append(
                Risk(
                    RiskSeverity.WARNING,
                    "Insurance expiring soon",
                    f"Renew within {days_left} days.",
                )
            )

    oil = _first_matching(obligations, "oil")
    if oil is not None and oil.due_odometer and vehicle.odometer >= oil.due_odometer:
        over_km = vehicle.odometer - oil.due_odometer
        risks.append(
            Risk(
                RiskSeverity.WARNING,
                f"Oil change overdue by {over_km:,} km",
                "Engine health at risk.",
            )
        )

    risks.append(
        Risk(
            RiskSeverity.INFO,
            f"Monthly cost: {_money(stats.cost_per_month, settings)}",
            "Average cost of ownership per month.",
        )
    )

    if (
        stats.month_spend > stats.cost_per_month * settings.rising_cost_factor
        and stats.month_spend > settings.rising_cost_floor
    ):
        risks.append(
            Risk(
                RiskSeverity.WARNING,
                "Rising monthly cost",
                f"This month's spend ({_money(stats.month_spend, settings)}) is more than "
                f"{settings.rising_cost_factor:g}x the monthly average.",
            )
        )

    return sorted(risks, key=lambda r: r.severity.value)


def active_loan(loans: Iterable[Loan]) -> Optional[Loan]:
    """The loan treated as the vehicle's current loan: the first one not closed."""
    for loan in loans:
        if not loan.is_closed:
            return loan
    return None


def derive_vehicle_view(
    vehicle: Vehicle,
    obligations: List[MaintenanceObligation],
    entries: List[LedgerEntry],
    loans: List[Loan],
    today: date,
    settings: Optional[Settings] = None,
) -> VehicleView:
    """Recompute stats, risks and loan status from one consistent snapshot."""
    settings = settings or Settings()
    stats = build_vehicle_stats(vehicle, entries, obligations, today, settings)
    loan = active_loan(loans)
    loan_status = resolve_loan_status(loan, today) if loan is not None else None
    risks = build_risks(vehicle, obligations, stats, today, loan, loan_status, settings)
    due = [
        assess_obligation(
            o, today, vehicle.odometer, settings.due_soon_days, settings.due_soon_km
        )
        for o in obligations
        if o.is_pending
    ]
    return VehicleView(
        vehicle=vehicle,
        stats=stats,
        risks=risks,
        loan=loan,
        loan_status=loan_status,
        due=due,
    )
