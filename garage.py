#!/usr/bin/env python3
"""
Unified CLI for the vehicle ownership ledger.

Commands:
  vehicles        - List vehicles
  add-vehicle     - Register a vehicle and seed its maintenance schedule
  update-odometer - Record a new odometer reading
  status          - Show what maintenance is overdue, due soon, or later
  history         - View logged expenses and services
  log             - Log an expense or service
  complete        - Complete a pending maintenance obligation
  stats           - Show ownership cost figures
  risks           - Show prioritized risk alerts
  add-loan        - Add a loan to a vehicle
  loan            - Show the vehicle's loan status
  schedule        - Show the loan's amortization schedule
  prepay          - Simulate a prepayment against the loan
  pay             - Record a loan payment
  add-account     - Add a finance account to pay from
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from vehicle_ledger import (
    CompletionDetails,
    DueInfo,
    DueState,
    EntryCategory,
    InterestConvention,
    LedgerEntry,
    LedgerError,
    NotFoundError,
    OwnershipLedgerService,
    PaymentCategory,
    PaymentDetails,
    ScheduleRow,
    ServiceRecordDetails,
    StoreError,
    StoreLedgerWriter,
    ValidationError,
    Vehicle,
    YamlDocumentStore,
    load_settings,
)

DEFAULT_OWNER = "me"

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format an odometer reading for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_money(amount: Optional[float], symbol: str = "₹") -> str:
    """Format an amount for display."""
    return f"{symbol}{amount:,.2f}" if amount is not None else "-"


def format_remaining_km(info: DueInfo) -> str:
    if info.km_remaining is None:
        return "-"
    if info.km_remaining < 0:
        return f"-{abs(info.km_remaining):,}"
    return f"{info.km_remaining:,}"


def format_time_remaining(days: Optional[int]) -> str:
    """Format remaining time for display (e.g., '3mo 15d' or '-2mo 5d')."""
    if days is None:
        return "-"
    sign = "-" if days < 0 else ""
    days = abs(days)
    months = days // 30
    if months > 0:
        return f"{sign}{months}mo {days % 30}d"
    return f"{sign}{days}d"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


# =============================================================================
# Lookup helpers
# =============================================================================


def resolve_vehicle(
    service: OwnershipLedgerService, owner_id: str, ref: Optional[str]
) -> Vehicle:
    """Find a vehicle by id or name; without a reference use the active one."""
    if not ref:
        vehicle = service.get_active_vehicle(owner_id)
        if vehicle is None:
            raise ValidationError("no active vehicle; pass --vehicle", "vehicle")
        return vehicle
    for vehicle in service.list_vehicles(owner_id, include_archived=True):
        if vehicle.id == ref or vehicle.name.lower() == ref.lower():
            return vehicle
    raise NotFoundError("vehicle", ref)


def resolve_obligation_id(service: OwnershipLedgerService, vehicle: Vehicle, ref: str) -> str:
    """Match a pending obligation by id or by type name."""
    for obligation in service.list_obligations(vehicle.id):
        if obligation.id == ref or obligation.type.lower() == ref.lower():
            return obligation.id
    raise NotFoundError("obligation", ref)


def require_loan(service: OwnershipLedgerService, vehicle: Vehicle):
    loan = service.get_loan_for_vehicle(vehicle.id)
    if loan is None:
        raise NotFoundError("loan", f"for {vehicle.name}")
    return loan


# =============================================================================
# Vehicles
# =============================================================================


def cmd_vehicles(service, args):
    """List vehicles."""
    active = service.get_active_vehicle(args.owner)
    vehicles = service.list_vehicles(args.owner, include_archived=args.all)
    if not vehicles:
        print("No vehicles found.")
        return 0

    rows = []
    for v in vehicles:
        rows.append(
            [
                "*" if active is not None and v.id == active.id else "",
                v.display_name,
                v.type,
                format_km(v.odometer),
                v.reg_number or "-",
                "yes" if v.archived else "",
                v.id,
            ]
        )
    headers = ["", "Vehicle", "Type", "Odometer", "Reg", "Archived", "Id"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_add_vehicle(service, args):
    """Register a vehicle."""
    vehicle = service.create_vehicle(
        args.owner,
        args.name,
        type=args.type,
        odometer=args.odometer,
        purchase_date=args.purchase_date,
        brand_model=args.model,
        reg_number=args.reg,
        fuel_type=args.fuel,
    )
    obligations = service.list_obligations(vehicle.id)
    print(f"Added {vehicle.display_name} ({vehicle.id})")
    print(f"Seeded maintenance items: {len(obligations)}")
    return 0


def cmd_update_odometer(service, args):
    """Record a new odometer reading."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)

    print(f"Vehicle: {vehicle.display_name}")
    print(f"Current odometer: {format_km(vehicle.odometer)}")
    print(f"New odometer:     {format_km(args.odometer)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    service.update_odometer(vehicle.id, args.odometer)
    print("Odometer updated.")
    return 0


# =============================================================================
# Status command
# =============================================================================


def make_due_table(infos: List[DueInfo]) -> List[List[str]]:
    """Convert due states to table rows."""
    rows = []
    for info in infos:
        o = info.obligation
        rows.append(
            [
                o.type,
                o.trigger.value,
                o.due_date or "-",
                format_km(o.due_odometer),
                format_time_remaining(info.days_remaining),
                format_remaining_km(info),
            ]
        )
    return rows


def cmd_status(service, args):
    """Show what maintenance is overdue, due soon, or later."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    view = service.get_vehicle_view(vehicle.id)

    print(f"Vehicle: {vehicle.display_name}")
    print(f"Odometer: {format_km(vehicle.odometer)} km")
    print(f"Pending items: {len(view.due)}")
    print()

    headers = ["Item", "Trigger", "Due (date)", "Due (km)", "Remaining (time)", "Remaining (km)"]
    sections = [
        (DueState.OVERDUE, "OVERDUE:"),
        (DueState.DUE_SOON, "DUE SOON:"),
        (DueState.LATER, "LATER:"),
    ]
    for state, title in sections:
        infos = sorted(
            [i for i in view.due if i.state == state],
            key=lambda i: (i.obligation.due_date or "9999", i.obligation.type),
        )
        if infos:
            print(title)
            print(tabulate(make_due_table(infos), headers=headers, tablefmt="simple"))
            print()

    return 0


# =============================================================================
# History command
# =============================================================================


def make_history_table(entries: List[LedgerEntry], symbol: str = "₹") -> List[List[str]]:
    """Convert entries to table rows."""
    rows = []
    for entry in entries:
        rows.append(
            [
                entry.date,
                entry.category.value,
                entry.type or "-",
                format_km(entry.odometer),
                format_money(entry.amount, symbol),
                "yes" if entry.is_finance_linked else "",
                truncate(entry.notes),
            ]
        )
    return rows


def cmd_history(service, args):
    """View logged expenses and services."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    category = EntryCategory(args.category) if args.category else None
    entries = service.list_entries(vehicle.id, category=category)
    if args.since:
        entries = [e for e in entries if e.date >= args.since]

    symbol = service.settings.currency_symbol
    total = sum(e.amount for e in entries)

    print(f"Vehicle: {vehicle.display_name}")
    print(f"Entries: {len(entries)}")
    if total > 0:
        print(f"Total: {format_money(total, symbol)}")
    print()

    if not entries:
        print("No entries found.")
        return 0

    headers = ["Date", "Category", "Type", "Odometer", "Amount", "Paid", "Notes"]
    print(tabulate(make_history_table(entries, symbol), headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Log / complete commands
# =============================================================================


def cmd_log(service, args):
    """Log an expense or service."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    details = ServiceRecordDetails(
        vehicle.id,
        args.amount,
        args.date or date.today().isoformat(),
        type=args.type,
        category=EntryCategory(args.category) if args.category else None,
        odometer=args.odometer,
        notes=args.notes,
        account_id=args.account,
    )

    symbol = service.settings.currency_symbol
    print(f"Adding entry to {vehicle.display_name}:")
    print(f"  Type:     {details.type}")
    print(f"  Date:     {details.date}")
    print(f"  Amount:   {format_money(details.amount, symbol)}")
    if details.odometer:
        print(f"  Odometer: {format_km(details.odometer)}")
    if details.notes:
        print(f"  Notes:    {details.notes}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    result = service.add_service_record(details, idempotency_key=args.key)
    print(f"Entry saved ({result.entry_id}).")
    if result.transaction_id:
        print(f"Posted to finance as {result.transaction_id}.")
    return 0


def cmd_complete(service, args):
    """Complete a pending maintenance obligation."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    obligation_id = resolve_obligation_id(service, vehicle, args.obligation)
    details = CompletionDetails(
        args.date or date.today().isoformat(),
        odometer=args.odometer,
        cost=args.cost or 0,
        account_id=args.account,
        notes=args.notes,
    )
    result = service.complete_obligation(obligation_id, details, idempotency_key=args.key)
    print(f"Completed ({result.entry_id}).")
    if result.successor_id:
        successor = service.get_obligation(result.successor_id)
        next_due = " / ".join(
            part
            for part in (
                successor.due_date,
                f"{successor.due_odometer:,} km" if successor.due_odometer else None,
            )
            if part
        )
        print(f"Next due: {next_due}")
    return 0


# =============================================================================
# Stats / risks commands
# =============================================================================


def cmd_stats(service, args):
    """Show ownership cost figures."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    stats = service.get_vehicle_stats(vehicle.id)
    symbol = service.settings.currency_symbol

    print(f"Vehicle: {vehicle.display_name}")
    print(f"Total spend:    {format_money(stats.total_spend, symbol)}")
    print(f"This month:     {format_money(stats.month_spend, symbol)}")
    print(f"Cost per month: {format_money(stats.cost_per_month, symbol)}")
    print(f"Cost per km:    {format_money(stats.cost_per_km, symbol)}")
    print(f"Health score:   {stats.health_score}")
    print(f"Overdue: {stats.overdue_count}  Due soon: {stats.due_soon_count}")
    if stats.last_service_date:
        print(f"Last entry: {stats.last_service_date} ({stats.last_service_type or '-'})")
    print()

    trend = [[p.label, format_money(p.cost, symbol)] for p in stats.trend]
    print(tabulate(trend, headers=["Month", "Spend"], tablefmt="simple"))
    print()
    breakdown = [[k, format_money(v, symbol)] for k, v in stats.breakdown.items()]
    print(tabulate(breakdown, headers=["Category", "Spend"], tablefmt="simple"))
    return 0


def cmd_risks(service, args):
    """Show prioritized risk alerts."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    risks = service.get_vehicle_risks(vehicle.id)

    print(f"Vehicle: {vehicle.display_name}")
    print()
    rows = [[r.severity.name, r.title, r.detail] for r in risks]
    print(tabulate(rows, headers=["Severity", "Risk", "Detail"], tablefmt="simple"))
    return 0


# =============================================================================
# Loan commands
# =============================================================================


def make_schedule_table(rows: List[ScheduleRow], symbol: str = "₹") -> List[List[str]]:
    return [
        [
            r.month,
            r.date.isoformat(),
            format_money(r.payment, symbol),
            format_money(r.principal, symbol),
            format_money(r.interest, symbol),
            format_money(r.balance, symbol),
        ]
        for r in rows
    ]


def cmd_add_loan(service, args):
    """Add a loan to a vehicle."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    loan = service.add_loan(
        vehicle.id,
        args.lender,
        args.principal,
        args.rate,
        args.tenure,
        args.start or date.today().isoformat(),
        due_day=args.due_day,
        convention=InterestConvention.FLAT if args.flat else InterestConvention.REDUCING,
    )
    symbol = service.settings.currency_symbol
    print(f"Added loan {loan.id} from {loan.lender}")
    print(f"  EMI:            {format_money(loan.emi, symbol)}")
    print(f"  Total payable:  {format_money(loan.total_payable, symbol)}")
    print(f"  Total interest: {format_money(loan.total_interest, symbol)}")
    return 0


def cmd_loan(service, args):
    """Show the vehicle's loan status."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    loan = require_loan(service, vehicle)
    status = service.get_loan_detailed_status(loan.id)
    symbol = service.settings.currency_symbol

    print(f"Vehicle: {vehicle.display_name}")
    print(f"Lender: {loan.lender} ({loan.convention.value}, {loan.annual_rate:g}%)")
    print(f"Status: {status.status.value.upper()}")
    rows = [
        ["EMI", format_money(status.emi, symbol)],
        ["Installments paid", f"{status.installments_paid} of {loan.tenure_months}"],
        ["Installments expected", status.expected_installments],
        ["Total paid", format_money(status.total_paid, symbol)],
        ["Remaining balance", format_money(status.remaining_balance, symbol)],
        ["Remaining principal", format_money(status.remaining_principal, symbol)],
        ["Remaining interest", format_money(status.remaining_interest, symbol)],
        ["Next installment", status.next_installment_date or "-"],
    ]
    if status.is_overdue:
        rows.append(["Days late", status.days_late])
    print(tabulate(rows, tablefmt="simple"))
    return 0


def cmd_schedule(service, args):
    """Show the loan's amortization schedule."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    loan = require_loan(service, vehicle)
    rows = service.get_amortization_schedule(loan.id)
    headers = ["#", "Date", "Payment", "Principal", "Interest", "Balance"]
    print(
        tabulate(
            make_schedule_table(rows, service.settings.currency_symbol),
            headers=headers,
            tablefmt="simple",
        )
    )
    return 0


def cmd_prepay(service, args):
    """Simulate a prepayment against the loan."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    loan = require_loan(service, vehicle)
    result = service.simulate_prepayment(loan.id, args.amount)
    symbol = service.settings.currency_symbol

    if result.full_closure:
        print(f"A prepayment of {format_money(args.amount, symbol)} closes the loan.")
        return 0
    print(f"Prepayment: {format_money(args.amount, symbol)}")
    print(f"Interest saved: {format_money(result.interest_saved, symbol)}")
    print(f"Months saved:   {result.months_saved}")
    print(f"Payoff: {result.baseline_months} -> {result.new_months} months")
    return 0


def cmd_pay(service, args):
    """Record a loan payment."""
    vehicle = resolve_vehicle(service, args.owner, args.vehicle)
    loan = require_loan(service, vehicle)
    payment = PaymentDetails(
        args.amount,
        args.date or date.today().isoformat(),
        principal=args.principal,
        interest=args.interest,
        penalty=args.penalty,
        discount=args.discount,
        category=PaymentCategory(args.category),
        account_id=args.account,
        notes=args.notes,
    )
    result = service.record_emi_payment(loan.id, payment, idempotency_key=args.key)
    symbol = service.settings.currency_symbol
    print(f"Payment recorded ({result.payment_id}).")
    print(f"Remaining principal: {format_money(result.remaining_principal, symbol)}")
    if result.closed:
        print("Loan closed.")
    return 0


def cmd_add_account(service, args):
    """Add a finance account to pay from."""
    account_id = service.ledger_writer.add_account(args.name, args.balance, args.id)
    print(f"Added account {args.name} ({account_id})")
    return 0


# =============================================================================
# Main
# =============================================================================


COMMANDS = {
    "vehicles": cmd_vehicles,
    "add-vehicle": cmd_add_vehicle,
    "update-odometer": cmd_update_odometer,
    "status": cmd_status,
    "history": cmd_history,
    "log": cmd_log,
    "complete": cmd_complete,
    "stats": cmd_stats,
    "risks": cmd_risks,
    "add-loan": cmd_add_loan,
    "loan": cmd_loan,
    "schedule": cmd_schedule,
    "prepay": cmd_prepay,
    "pay": cmd_pay,
    "add-account": cmd_add_account,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vehicle ownership ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s garage.yaml add-vehicle "City Car" --odometer 12000 --model "Honda City"
  %(prog)s garage.yaml status
  %(prog)s garage.yaml complete "Oil Change" --odometer 15000 --cost 2500 \\
      --account acc_savings
  %(prog)s garage.yaml log Fuel 3000 --odometer 15200
  %(prog)s garage.yaml add-loan "HDFC Bank" 200000 8.5 60 --start 2024-01-05 --due-day 5
  %(prog)s garage.yaml pay 4103 --account acc_savings
  %(prog)s garage.yaml prepay 50000
""",
    )
    parser.add_argument("store_file", type=Path, help="Path to ledger YAML file")
    parser.add_argument("--owner", default=DEFAULT_OWNER, help="Owner id (default: me)")
    parser.add_argument("--config", type=Path, help="Settings YAML file")

    vehicle_opt = argparse.ArgumentParser(add_help=False)
    vehicle_opt.add_argument(
        "--vehicle", type=str, help="Vehicle id or name (default: active vehicle)"
    )
    key_opt = argparse.ArgumentParser(add_help=False)
    key_opt.add_argument(
        "--key", type=str, help="Idempotency key; repeat it to retry a failed attempt"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    vehicles_parser = subparsers.add_parser("vehicles", help="List vehicles")
    vehicles_parser.add_argument("--all", action="store_true", help="Include archived vehicles")

    add_vehicle_parser = subparsers.add_parser("add-vehicle", help="Register a vehicle")
    add_vehicle_parser.add_argument("name", type=str, help="Vehicle name")
    add_vehicle_parser.add_argument(
        "--type", default="car", help="car, bike, scooter, commercial (default: car)"
    )
    add_vehicle_parser.add_argument("--odometer", type=int, default=0, help="Current odometer (km)")
    add_vehicle_parser.add_argument("--purchase-date", type=str, help="Purchase date (YYYY-MM-DD)")
    add_vehicle_parser.add_argument("--model", type=str, help="Brand and model")
    add_vehicle_parser.add_argument("--reg", type=str, help="Registration number")
    add_vehicle_parser.add_argument("--fuel", type=str, help="Fuel type")

    odometer_parser = subparsers.add_parser(
        "update-odometer", parents=[vehicle_opt], help="Record a new odometer reading"
    )
    odometer_parser.add_argument("odometer", type=int, help="Current odometer (km)")
    odometer_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be updated without saving"
    )

    subparsers.add_parser("status", parents=[vehicle_opt], help="Show due maintenance")

    history_parser = subparsers.add_parser(
        "history", parents=[vehicle_opt], help="View logged expenses and services"
    )
    history_parser.add_argument(
        "--category", choices=[c.value for c in EntryCategory], help="Filter by category"
    )
    history_parser.add_argument("--since", type=str, help="Only entries since date (YYYY-MM-DD)")

    log_parser = subparsers.add_parser(
        "log", parents=[vehicle_opt, key_opt], help="Log an expense or service"
    )
    log_parser.add_argument("type", type=str, help="What was done or bought (e.g., 'Fuel')")
    log_parser.add_argument("amount", type=float, help="Amount spent")
    log_parser.add_argument(
        "--category", choices=[c.value for c in EntryCategory], help="Ledger category"
    )
    log_parser.add_argument("--date", type=str, help="Date in YYYY-MM-DD format (default: today)")
    log_parser.add_argument("--odometer", type=int, help="Odometer at the time")
    log_parser.add_argument("--notes", type=str, help="Notes")
    log_parser.add_argument("--account", type=str, help="Finance account paying for it")
    log_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    complete_parser = subparsers.add_parser(
        "complete", parents=[vehicle_opt, key_opt], help="Complete a maintenance obligation"
    )
    complete_parser.add_argument("obligation", type=str, help="Obligation id or type name")
    complete_parser.add_argument("--date", type=str, help="Date in YYYY-MM-DD format (default: today)")
    complete_parser.add_argument("--odometer", type=int, help="Odometer at completion")
    complete_parser.add_argument("--cost", type=float, help="Cost")
    complete_parser.add_argument("--account", type=str, help="Finance account paying for it")
    complete_parser.add_argument("--notes", type=str, help="Notes")

    subparsers.add_parser("stats", parents=[vehicle_opt], help="Show ownership cost figures")
    subparsers.add_parser("risks", parents=[vehicle_opt], help="Show risk alerts")

    add_loan_parser = subparsers.add_parser(
        "add-loan", parents=[vehicle_opt], help="Add a loan to a vehicle"
    )
    add_loan_parser.add_argument("lender", type=str, help="Lender name")
    add_loan_parser.add_argument("principal", type=float, help="Amount borrowed")
    add_loan_parser.add_argument("rate", type=float, help="Annual interest rate (percent)")
    add_loan_parser.add_argument("tenure", type=int, help="Tenure in months")
    add_loan_parser.add_argument("--start", type=str, help="Start date (default: today)")
    add_loan_parser.add_argument("--due-day", type=int, default=1, help="Day of month EMI is due")
    add_loan_parser.add_argument("--flat", action="store_true", help="Flat-rate interest")

    subparsers.add_parser("loan", parents=[vehicle_opt], help="Show loan status")
    subparsers.add_parser("schedule", parents=[vehicle_opt], help="Show amortization schedule")

    prepay_parser = subparsers.add_parser(
        "prepay", parents=[vehicle_opt], help="Simulate a prepayment"
    )
    prepay_parser.add_argument("amount", type=float, help="Lump sum to prepay")

    pay_parser = subparsers.add_parser(
        "pay", parents=[vehicle_opt, key_opt], help="Record a loan payment"
    )
    pay_parser.add_argument("amount", type=float, help="Amount paid")
    pay_parser.add_argument("--date", type=str, help="Date in YYYY-MM-DD format (default: today)")
    pay_parser.add_argument("--principal", type=float, help="Principal component")
    pay_parser.add_argument("--interest", type=float, help="Interest component")
    pay_parser.add_argument("--penalty", type=float, default=0, help="Penalty component")
    pay_parser.add_argument("--discount", type=float, default=0, help="Discount component")
    pay_parser.add_argument(
        "--category",
        choices=[c.value for c in PaymentCategory],
        default=PaymentCategory.EMI.value,
        help="Payment category (default: EMI)",
    )
    pay_parser.add_argument("--account", type=str, help="Finance account paying for it")
    pay_parser.add_argument("--notes", type=str, help="Notes")

    account_parser = subparsers.add_parser("add-account", help="Add a finance account")
    account_parser.add_argument("name", type=str, help="Account name")
    account_parser.add_argument("--balance", type=float, default=0, help="Opening balance")
    account_parser.add_argument("--id", type=str, help="Account id (default: generated)")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config and not args.config.exists():
        print(f"Error: File not found: {args.config}")
        return 1

    try:
        settings = load_settings(args.config)
        logging.basicConfig(
            level=settings.log_level,
            format="%(levelname)s %(name)s: %(message)s",
        )
        store = YamlDocumentStore(args.store_file)
        service = OwnershipLedgerService(store, StoreLedgerWriter(store), settings)
        return COMMANDS[args.command](service, args)
    except (LedgerError, StoreError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
