"""
Ownership ledger service: vehicles, maintenance obligations, ledger entries
and loans over a document store, plus the multi-step write workflows.

Multi-step writes (completing an obligation, recording a loan payment,
logging a service) run as resumable workflows (see workflow.py). Reads and
derived views are recomputed from the store on every call.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from .aggregation import (
    Risk,
    VehicleStats,
    VehicleView,
    active_loan,
    derive_vehicle_view,
)
from .amortization import (
    PrepaymentResult,
    ScheduleRow,
    calculate_emi,
    schedule_for_loan,
    simulate_prepayment,
    split_installment,
)
from .catalog import (
    ObligationTemplate,
    find_template,
    load_catalog,
    seedable_templates,
)
from .config import Settings
from .details import (
    CompletionDetails,
    PaymentDetails,
    ServiceRecordDetails,
    check_date,
    warn_consistency,
)
from .entry import LedgerEntry
from .errors import CollaboratorError, NotFoundError, StoreError, ValidationError
from .finance import ExpensePosting, LedgerWriter
from .loan import Loan, Payment
from .loan_status import LoanStatus, resolve_loan_status
from .obligation import MaintenanceObligation, infer_category
from .records import (
    entry_to_record,
    loan_to_record,
    obligation_to_record,
    parse_entry,
    parse_loan,
    parse_obligation,
    parse_vehicle,
    payment_to_record,
    vehicle_to_record,
)
from .recurrence import next_occurrence, seed_from_template
from .status import EntryCategory, InterestConvention, LoanState, TriggerKind
from .store import DocumentStore
from .vehicle import Vehicle
from .workflow import WorkflowRun, WorkflowRunner

logger = logging.getLogger(__name__)

VEHICLES = "vehicles"
OBLIGATIONS = "obligations"
ENTRIES = "entries"
LOANS = "loans"
PREFERENCES = "preferences"

COMPLETE_OBLIGATION = "complete_obligation"
RECORD_EMI_PAYMENT = "record_emi_payment"
ADD_SERVICE_RECORD = "add_service_record"

VEHICLE_FIELDS = (
    "name",
    "type",
    "odometer",
    "purchase_date",
    "brand_model",
    "reg_number",
    "fuel_type",
)
OBLIGATION_FIELDS = (
    "type",
    "trigger",
    "due_date",
    "due_odometer",
    "recurring",
    "interval_value",
    "interval_unit",
    "interval_km",
    "category",
    "notes",
)
LOAN_FIELDS = ("lender", "due_day")


@dataclass
class CompletionResult:
    entry_id: str
    successor_id: Optional[str] = None
    transaction_id: Optional[str] = None
    odometer_updated: bool = False


@dataclass
class ServiceRecordResult:
    entry_id: str
    transaction_id: Optional[str] = None
    odometer_updated: bool = False


@dataclass
class PaymentResult:
    payment_id: str
    remaining_principal: float
    closed: bool
    transaction_id: Optional[str] = None
    entry_id: Optional[str] = None


class OwnershipLedgerService:
    """
    Orchestrates the vehicle ownership ledger.

    store is the document store holding every collection; ledger_writer
    posts expenses to the finance domain; clock returns "today" and is
    injectable for tests.
    """

    def __init__(
        self,
        store: DocumentStore,
        ledger_writer: LedgerWriter,
        settings: Optional[Settings] = None,
        catalog: Optional[List[ObligationTemplate]] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.store = store
        self.ledger_writer = ledger_writer
        self.settings = settings or Settings()
        self.catalog = catalog if catalog is not None else load_catalog(self.settings.catalog_path)
        self.clock = clock
        self.workflows = WorkflowRunner(store)

    # =========================================================================
    # Store helpers
    # =========================================================================

    def _call(self, step: str, fn: Callable, *args, **kwargs) -> Any:
        """Run a store call, surfacing transport failures as CollaboratorError."""
        try:
            return fn(*args, **kwargs)
        except StoreError as e:
            logger.error("Store call failed at %s: %s", step, e)
            raise CollaboratorError(step, e) from e

    def _get_record(self, collection: str, record_id: str, kind: str) -> Dict[str, Any]:
        record = self._call(f"get_{kind}", self.store.get, collection, record_id)
        if record is None:
            raise NotFoundError(kind, record_id)
        return record

    def _create_once(self, collection: str, record_id: str, record: Dict[str, Any]) -> str:
        """Create a record under a fixed id unless an earlier attempt already did."""
        if self.store.get(collection, record_id) is not None:
            return record_id
        return self.store.create(collection, dict(record, id=record_id))

    def _find_run(
        self, key: Optional[str], kind: str, target_field: str, target_id: str
    ) -> Optional[WorkflowRun]:
        """Earlier run under key; a key belongs to one workflow kind and target."""
        if not key:
            return None
        run = self.workflows.find(key)
        if run is not None and (run.kind != kind or run.payload.get(target_field) != target_id):
            raise ValidationError(
                f"idempotency key {key} already used by {run.kind} on "
                f"{run.payload.get(target_field) or 'another record'}",
                "idempotency_key",
            )
        return run

    # =========================================================================
    # Vehicles
    # =========================================================================

    def create_vehicle(
        self,
        owner_id: str,
        name: str,
        type: str = "car",
        odometer: int = 0,
        purchase_date: Optional[str] = None,
        brand_model: Optional[str] = None,
        reg_number: Optional[str] = None,
        fuel_type: Optional[str] = None,
    ) -> Vehicle:
        """
        Register a vehicle and seed its standard maintenance obligations.

        Seeded obligations are anchored at today and the initial odometer.
        The owner's first vehicle becomes the active one.
        """
        if not owner_id:
            raise ValidationError("owner id is required", "owner_id")
        if not name:
            raise ValidationError("vehicle name is required", "name")
        if odometer is None or odometer < 0:
            raise ValidationError("odometer must not be negative", "odometer")
        today = self.clock()
        if purchase_date:
            check_date(purchase_date, "purchase_date")
        else:
            purchase_date = today.isoformat()

        vehicle = Vehicle(
            owner_id,
            name,
            type,
            odometer,
            purchase_date,
            brand_model,
            reg_number,
            fuel_type,
        )
        vehicle_id = self._call("create_vehicle", self.store.create, VEHICLES, vehicle_to_record(vehicle))

        templates = seedable_templates(self.catalog, type)
        for template in templates:
            obligation = seed_from_template(template, vehicle_id, today, vehicle.odometer)
            self._call("seed_obligations", self.store.create, OBLIGATIONS, obligation_to_record(obligation))
        logger.info(
            "Created vehicle %s (%s) with %d seeded obligations",
            vehicle_id, name, len(templates),
        )

        if self.get_active_vehicle(owner_id) is None:
            self.set_active_vehicle(owner_id, vehicle_id)
        return self.get_vehicle(vehicle_id)

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        return parse_vehicle(self._get_record(VEHICLES, vehicle_id, "vehicle"))

    def list_vehicles(self, owner_id: str, include_archived: bool = False) -> List[Vehicle]:
        records = self._call(
            "list_vehicles", self.store.list, VEHICLES, filter={"ownerId": owner_id}, order="name"
        )
        vehicles = [parse_vehicle(r) for r in records]
        if include_archived:
            return vehicles
        return [v for v in vehicles if not v.archived]

    def update_vehicle(
        self, vehicle_id: str, changes: Dict[str, Any], expected_version: Optional[int] = None
    ) -> Vehicle:
        """
        Apply field changes to a vehicle.

        The odometer may only move forward. Without an expected_version the
        update is checked against the version just read.
        """
        vehicle = self.get_vehicle(vehicle_id)
        for key, value in changes.items():
            if key not in VEHICLE_FIELDS:
                raise ValidationError(f"cannot update vehicle field: {key}", key)
            if key == "odometer" and (value is None or value < vehicle.odometer):
                raise ValidationError(
                    f"odometer cannot go down from {vehicle.odometer} to {value}", "odometer"
                )
            if key == "name" and not value:
                raise ValidationError("vehicle name is required", "name")
            if key == "purchase_date" and value:
                check_date(value, "purchase_date")
            setattr(vehicle, key, value)
        self._call(
            "update_vehicle",
            self.store.update,
            VEHICLES,
            vehicle_id,
            vehicle_to_record(vehicle),
            expected_version=expected_version if expected_version is not None else vehicle.version,
        )
        return self.get_vehicle(vehicle_id)

    def update_odometer(self, vehicle_id: str, odometer: int) -> Vehicle:
        """Record a new odometer reading. A reading that is not an increase is refused."""
        vehicle = self.get_vehicle(vehicle_id)
        if odometer < vehicle.odometer:
            raise ValidationError(
                f"odometer cannot go down from {vehicle.odometer} to {odometer}", "odometer"
            )
        if odometer == vehicle.odometer:
            warn_consistency(f"odometer of {vehicle_id} already at {odometer}")
            return vehicle
        self._raise_odometer(vehicle_id, odometer)
        return self.get_vehicle(vehicle_id)

    def _raise_odometer(self, vehicle_id: str, odometer: Optional[int]) -> bool:
        """Compare-and-swap the odometer upward. Returns True when it moved."""
        if odometer is None:
            return False
        vehicle = self.get_vehicle(vehicle_id)
        if odometer <= vehicle.odometer:
            warn_consistency(
                f"odometer update skipped for {vehicle_id}: "
                f"{odometer} is not above {vehicle.odometer}"
            )
            return False
        self.store.update(
            VEHICLES, vehicle_id, {"odometer": int(odometer)}, expected_version=vehicle.version
        )
        logger.info("Odometer of %s raised to %d", vehicle_id, odometer)
        return True

    def archive_vehicle(self, vehicle_id: str, archived: bool = True) -> Vehicle:
        """Archive or restore a vehicle; archiving the active one clears the selection."""
        vehicle = self.get_vehicle(vehicle_id)
        self._call(
            "archive_vehicle",
            self.store.update,
            VEHICLES,
            vehicle_id,
            {"archived": archived},
            expected_version=vehicle.version,
        )
        if archived:
            self._clear_active_if(vehicle.owner_id, vehicle_id)
        return self.get_vehicle(vehicle_id)

    def toggle_archive(self, vehicle_id: str) -> Vehicle:
        return self.archive_vehicle(vehicle_id, not self.get_vehicle(vehicle_id).archived)

    def set_active_vehicle(self, owner_id: str, vehicle_id: str) -> None:
        vehicle = self.get_vehicle(vehicle_id)
        if vehicle.owner_id != owner_id:
            raise ValidationError(f"vehicle {vehicle_id} does not belong to {owner_id}", "vehicle_id")
        if vehicle.archived:
            raise ValidationError("an archived vehicle cannot be active", "vehicle_id")
        if self._call("get_preference", self.store.get, PREFERENCES, owner_id) is None:
            self._call(
                "set_active_vehicle",
                self.store.create,
                PREFERENCES,
                {"id": owner_id, "ownerId": owner_id, "activeVehicleId": vehicle_id},
            )
        else:
            self._call(
                "set_active_vehicle",
                self.store.update,
                PREFERENCES,
                owner_id,
                {"activeVehicleId": vehicle_id},
            )
        logger.debug("Active vehicle of %s is now %s", owner_id, vehicle_id)

    def get_active_vehicle(self, owner_id: str) -> Optional[Vehicle]:
        preference = self._call("get_preference", self.store.get, PREFERENCES, owner_id)
        if not preference or not preference.get("activeVehicleId"):
            return None
        record = self._call("get_vehicle", self.store.get, VEHICLES, preference["activeVehicleId"])
        if record is None or record.get("archived"):
            return None
        return parse_vehicle(record)

    def _clear_active_if(self, owner_id: str, vehicle_id: str) -> None:
        preference = self._call("get_preference", self.store.get, PREFERENCES, owner_id)
        if preference and preference.get("activeVehicleId") == vehicle_id:
            self._call(
                "clear_active_vehicle",
                self.store.update,
                PREFERENCES,
                owner_id,
                {"activeVehicleId": None},
            )

    def delete_vehicle(self, vehicle_id: str, cascade: bool = False) -> None:
        """
        Delete a vehicle. Referenced obligations, entries and loans block the
        delete unless cascade is set, in which case they are deleted first.
        """
        vehicle = self.get_vehicle(vehicle_id)
        references = {
            collection: self._call(
                "list_references", self.store.list, collection, filter={"vehicleId": vehicle_id}
            )
            for collection in (OBLIGATIONS, ENTRIES, LOANS)
        }
        count = sum(len(records) for records in references.values())
        if count and not cascade:
            raise ValidationError(
                f"vehicle {vehicle_id} is referenced by {count} records; "
                "archive it or delete with cascade",
                "vehicle_id",
            )
        for collection, records in references.items():
            for record in records:
                self._call("purge_vehicle", self.store.delete, collection, record["id"])
        self._call("delete_vehicle", self.store.delete, VEHICLES, vehicle_id)
        self._clear_active_if(vehicle.owner_id, vehicle_id)
        logger.info("Deleted vehicle %s and %d referencing records", vehicle_id, count)

    # =========================================================================
    # Maintenance obligations
    # =========================================================================

    def add_obligation(
        self,
        vehicle_id: str,
        type: str,
        trigger: TriggerKind,
        due_date: Optional[str] = None,
        due_odometer: Optional[int] = None,
        recurring: bool = False,
        interval_value: Optional[int] = None,
        interval_unit: Optional[str] = None,
        interval_km: Optional[int] = None,
        category: Optional[EntryCategory] = None,
        notes: Optional[str] = None,
    ) -> MaintenanceObligation:
        self.get_vehicle(vehicle_id)
        obligation = MaintenanceObligation(
            vehicle_id=vehicle_id,
            type=type,
            trigger=trigger,
            due_date=due_date,
            due_odometer=due_odometer,
            recurring=recurring,
            interval_value=interval_value,
            interval_unit=interval_unit,
            interval_km=interval_km,
            category=category,
            notes=notes,
        )
        obligation.validate()
        obligation_id = self._call(
            "add_obligation", self.store.create, OBLIGATIONS, obligation_to_record(obligation)
        )
        return self.get_obligation(obligation_id)

    def get_obligation(self, obligation_id: str) -> MaintenanceObligation:
        return parse_obligation(self._get_record(OBLIGATIONS, obligation_id, "obligation"))

    def list_obligations(self, vehicle_id: str, pending_only: bool = True) -> List[MaintenanceObligation]:
        records = self._call(
            "list_obligations",
            self.store.list,
            OBLIGATIONS,
            filter={"vehicleId": vehicle_id},
            order=["dueDate", "dueOdometer"],
        )
        obligations = [parse_obligation(r) for r in records]
        if pending_only:
            return [o for o in obligations if o.is_pending]
        return obligations

    def update_obligation(self, obligation_id: str, changes: Dict[str, Any]) -> MaintenanceObligation:
        obligation = self.get_obligation(obligation_id)
        for key, value in changes.items():
            if key not in OBLIGATION_FIELDS:
                raise ValidationError(f"cannot update obligation field: {key}", key)
            if key == "category" and value is not None and not isinstance(value, EntryCategory):
                raise ValidationError(f"unknown category: {value}", "category")
            setattr(obligation, key, value)
        obligation.validate()
        record = obligation_to_record(obligation)
        # Cleared optional fields are removed from the stored record
        for key in ("dueDate", "dueOdometer", "intervalValue", "intervalUnit", "intervalKm", "category", "notes"):
            record.setdefault(key, None)
        self._call(
            "update_obligation",
            self.store.update,
            OBLIGATIONS,
            obligation_id,
            record,
            expected_version=obligation.version,
        )
        return self.get_obligation(obligation_id)

    def delete_obligation(self, obligation_id: str) -> None:
        """Dismiss an obligation without logging anything."""
        if not self._call("delete_obligation", self.store.delete, OBLIGATIONS, obligation_id):
            raise NotFoundError("obligation", obligation_id)
        logger.info("Dismissed obligation %s", obligation_id)

    def toggle_maintenance_item(
        self, vehicle_id: str, template_name: str
    ) -> Optional[MaintenanceObligation]:
        """
        Add the pending obligation for a catalogue item, or remove it if present.

        Returns the added obligation, or None when one was removed.
        """
        vehicle = self.get_vehicle(vehicle_id)
        template = find_template(self.catalog, template_name)
        if template is None:
            raise NotFoundError("template", template_name)
        if template.ad_hoc:
            raise ValidationError(f"{template.name} has no schedule to track", "template_name")

        for obligation in self.list_obligations(vehicle_id):
            if obligation.type.lower() == template.name.lower():
                self.delete_obligation(obligation.id)
                return None

        obligation = seed_from_template(template, vehicle_id, self.clock(), vehicle.odometer)
        obligation_id = self._call(
            "add_obligation", self.store.create, OBLIGATIONS, obligation_to_record(obligation)
        )
        logger.info("Tracking %s for vehicle %s", template.name, vehicle_id)
        return self.get_obligation(obligation_id)

    def complete_obligation(
        self,
        obligation_id: str,
        details: CompletionDetails,
        idempotency_key: Optional[str] = None,
    ) -> CompletionResult:
        """
        Fulfil an obligation: post its cost, log an entry, raise the odometer,
        remove the obligation and schedule its successor if recurring.

        Repeating a call with the same idempotency_key resumes an interrupted
        attempt or returns the result of a finished one.
        """
        run = self._find_run(idempotency_key, COMPLETE_OBLIGATION, "obligationId", obligation_id)
        if run is None:
            details.validate(self.settings)
            obligation = self.get_obligation(obligation_id)
            if not obligation.is_pending:
                raise ValidationError(f"obligation {obligation_id} is already completed", "obligation_id")
            self.get_vehicle(obligation.vehicle_id)
            run = self.workflows.begin(
                COMPLETE_OBLIGATION,
                idempotency_key,
                {
                    "obligationId": obligation_id,
                    "obligation": obligation_to_record(obligation),
                    "details": details.as_dict(),
                },
            )
        elif run.completed:
            return CompletionResult(**run.result)
        else:
            logger.info("Resuming workflow %s (%s)", run.id, run.kind)
        return self._run_completion(run)

    def _run_completion(self, run: WorkflowRun) -> CompletionResult:
        obligation = parse_obligation(dict(run.payload["obligation"], id=run.payload["obligationId"]))
        details = CompletionDetails.from_dict(run.payload["details"])
        vehicle = self.get_vehicle(obligation.vehicle_id)

        tx_id = None
        if details.cost > 0 and details.account_id:
            posting = ExpensePosting(
                details.account_id,
                details.cost,
                self.settings.finance_category_id,
                f"Vehicle: {vehicle.name} - {obligation.type}",
                details.date,
                idempotency_key=run.key,
            )
            tx_id = run.step("post_expense", lambda: self.ledger_writer.post_expense(posting))

        entry = LedgerEntry(
            vehicle_id=vehicle.id,
            category=obligation.entry_category,
            amount=details.cost,
            date=details.date,
            type=obligation.type,
            odometer=details.odometer,
            notes=details.notes,
            obligation_id=obligation.id,
            finance_tx_id=tx_id,
        )
        entry_id = run.step(
            "append_entry",
            lambda: self._create_once(ENTRIES, f"{run.id}-entry", entry_to_record(entry)),
        )
        odometer_updated = run.step(
            "update_odometer", lambda: self._raise_odometer(vehicle.id, details.odometer)
        )
        run.step("delete_obligation", lambda: self.store.delete(OBLIGATIONS, obligation.id))

        successor_id = None
        if obligation.recurring:
            odometer = max(details.odometer or 0, vehicle.odometer)
            successor = next_occurrence(obligation, date.fromisoformat(details.date[:10]), odometer)
            successor_id = run.step(
                "create_successor",
                lambda: self._create_once(OBLIGATIONS, f"{run.id}-next", obligation_to_record(successor)),
            )

        result = CompletionResult(entry_id, successor_id, tx_id, odometer_updated)
        run.finish(asdict(result))
        logger.info(
            "Completed %s on vehicle %s (entry %s, next %s)",
            obligation.type, vehicle.id, entry_id, successor_id,
        )
        return result

    # =========================================================================
    # Ledger entries
    # =========================================================================

    def add_service_record(
        self, details: ServiceRecordDetails, idempotency_key: Optional[str] = None
    ) -> ServiceRecordResult:
        """Log an ad-hoc expense or service without a prior obligation."""
        run = self._find_run(idempotency_key, ADD_SERVICE_RECORD, "vehicleId", details.vehicle_id)
        if run is None:
            details.validate(self.settings)
            self.get_vehicle(details.vehicle_id)
            run = self.workflows.begin(
                ADD_SERVICE_RECORD,
                idempotency_key,
                {"vehicleId": details.vehicle_id, "details": details.as_dict()},
            )
        elif run.completed:
            return ServiceRecordResult(**run.result)
        else:
            logger.info("Resuming workflow %s (%s)", run.id, run.kind)
        return self._run_service_record(run)

    def _run_service_record(self, run: WorkflowRun) -> ServiceRecordResult:
        details = ServiceRecordDetails.from_dict(run.payload["details"])
        vehicle = self.get_vehicle(details.vehicle_id)
        category = details.category or infer_category(details.type)
        label = details.type or category.value.capitalize()

        tx_id = None
        if details.amount > 0 and details.account_id:
            posting = ExpensePosting(
                details.account_id,
                details.amount,
                self.settings.finance_category_id,
                f"Vehicle: {vehicle.name} - {label}",
                details.date,
                idempotency_key=run.key,
            )
            tx_id = run.step("post_expense", lambda: self.ledger_writer.post_expense(posting))

        entry = LedgerEntry(
            vehicle_id=vehicle.id,
            category=category,
            amount=details.amount,
            date=details.date,
            type=label,
            odometer=details.odometer,
            notes=details.notes,
            finance_tx_id=tx_id,
        )
        entry_id = run.step(
            "append_entry",
            lambda: self._create_once(ENTRIES, f"{run.id}-entry", entry_to_record(entry)),
        )
        odometer_updated = run.step(
            "update_odometer", lambda: self._raise_odometer(vehicle.id, details.odometer)
        )
        result = ServiceRecordResult(entry_id, tx_id, odometer_updated)
        run.finish(asdict(result))
        logger.info("Logged %s of %.2f for vehicle %s", label, details.amount, vehicle.id)
        return result

    def get_entry(self, entry_id: str) -> LedgerEntry:
        return parse_entry(self._get_record(ENTRIES, entry_id, "entry"))

    def list_entries(
        self,
        vehicle_id: str,
        category: Optional[EntryCategory] = None,
        limit: Optional[int] = None,
    ) -> List[LedgerEntry]:
        """Entries for a vehicle, newest first."""
        filter = {"vehicleId": vehicle_id}
        if category is not None:
            filter["category"] = category.value
        records = self._call(
            "list_entries", self.store.list, ENTRIES, filter=filter, order="-date", limit=limit
        )
        return [parse_entry(r) for r in records]

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry. A linked finance transaction is left in place."""
        entry = self.get_entry(entry_id)
        self._call("delete_entry", self.store.delete, ENTRIES, entry_id)
        if entry.is_finance_linked:
            logger.warning(
                "Deleted entry %s; finance transaction %s was not reversed",
                entry_id, entry.finance_tx_id,
            )
        else:
            logger.info("Deleted entry %s", entry_id)

    def get_latest_record(self, vehicle_id: str, kind: str) -> Optional[LedgerEntry]:
        """Newest entry whose category or type name is kind, or None."""
        for entry in self.list_entries(vehicle_id):
            if entry.matches(kind):
                return entry
        return None

    # =========================================================================
    # Loans
    # =========================================================================

    def add_loan(
        self,
        vehicle_id: str,
        lender: str,
        principal: float,
        annual_rate: float,
        tenure_months: int,
        start_date: str,
        due_day: int = 1,
        convention: InterestConvention = InterestConvention.REDUCING,
    ) -> Loan:
        """Create a loan with its EMI and totals computed from the terms."""
        self.get_vehicle(vehicle_id)
        if not lender:
            raise ValidationError("lender is required", "lender")
        if principal is None or principal <= 0:
            raise ValidationError("principal must be positive", "principal")
        if annual_rate is None or annual_rate <= 0:
            raise ValidationError("interest rate must be positive", "annual_rate")
        if tenure_months is None or tenure_months <= 0:
            raise ValidationError("tenure must be positive", "tenure_months")
        if not 1 <= due_day <= 31:
            raise ValidationError("due day must be between 1 and 31", "due_day")
        if not isinstance(convention, InterestConvention):
            raise ValidationError(f"unknown interest convention: {convention}", "convention")
        check_date(start_date, "start_date")

        quote = calculate_emi(principal, annual_rate, tenure_months, convention)
        loan = Loan(
            vehicle_id=vehicle_id,
            lender=lender,
            principal=principal,
            annual_rate=annual_rate,
            tenure_months=tenure_months,
            start_date=start_date,
            due_day=due_day,
            convention=convention,
            emi=quote.emi,
            total_payable=quote.total_payable,
            total_interest=quote.total_interest,
        )
        loan_id = self._call("add_loan", self.store.create, LOANS, loan_to_record(loan))
        logger.info("Added loan %s for vehicle %s, EMI %.0f", loan_id, vehicle_id, quote.emi)
        return self.get_loan(loan_id)

    def get_loan(self, loan_id: str) -> Loan:
        return parse_loan(self._get_record(LOANS, loan_id, "loan"))

    def list_loans(self, vehicle_id: str) -> List[Loan]:
        records = self._call(
            "list_loans", self.store.list, LOANS, filter={"vehicleId": vehicle_id}, order="startDate"
        )
        return [parse_loan(r) for r in records]

    def get_loan_for_vehicle(self, vehicle_id: str) -> Optional[Loan]:
        """The vehicle's current (first not closed) loan."""
        return active_loan(self.list_loans(vehicle_id))

    def update_loan(self, loan_id: str, changes: Dict[str, Any]) -> Loan:
        """Edit descriptive loan fields. Terms and balances are not editable."""
        loan = self.get_loan(loan_id)
        record = {}
        for key, value in changes.items():
            if key not in LOAN_FIELDS:
                raise ValidationError(f"cannot update loan field: {key}", key)
            if key == "due_day" and not 1 <= value <= 31:
                raise ValidationError("due day must be between 1 and 31", "due_day")
            record["dueDay" if key == "due_day" else key] = value
        self._call(
            "update_loan", self.store.update, LOANS, loan_id, record, expected_version=loan.version
        )
        return self.get_loan(loan_id)

    def delete_loan(self, loan_id: str) -> None:
        if not self._call("delete_loan", self.store.delete, LOANS, loan_id):
            raise NotFoundError("loan", loan_id)
        logger.info("Deleted loan %s", loan_id)

    def record_emi_payment(
        self,
        loan_id: str,
        payment: PaymentDetails,
        idempotency_key: Optional[str] = None,
    ) -> PaymentResult:
        """
        Record a loan payment: post it to finance, log an EMI entry for the
        vehicle, then append it to the loan and reduce the remaining principal.

        A loan whose principal reaches zero is closed and stays closed.
        """
        run = self._find_run(idempotency_key, RECORD_EMI_PAYMENT, "loanId", loan_id)
        if run is None:
            payment = PaymentDetails.from_dict(payment.as_dict())
            payment.validate(self.settings)
            loan = self.get_loan(loan_id)
            if loan.is_closed:
                logger.warning("Recording a payment against closed loan %s", loan_id)
            if payment.principal is None or payment.interest is None:
                principal, interest = split_installment(
                    loan, payment.amount, payment.category, payment.penalty, payment.discount
                )
                if payment.principal is None:
                    payment.principal = principal
                if payment.interest is None:
                    payment.interest = interest
            run = self.workflows.begin(
                RECORD_EMI_PAYMENT, idempotency_key, {"loanId": loan_id, "payment": payment.as_dict()}
            )
        elif run.completed:
            return PaymentResult(**run.result)
        else:
            logger.info("Resuming workflow %s (%s)", run.id, run.kind)
        return self._run_payment(run)

    def _run_payment(self, run: WorkflowRun) -> PaymentResult:
        loan = self.get_loan(run.payload["loanId"])
        details = PaymentDetails.from_dict(run.payload["payment"])
        label = f"Loan {details.category.value}"

        tx_id = None
        entry_id = None
        if details.amount > 0 and details.account_id:
            vehicle_record = self.store.get(VEHICLES, loan.vehicle_id)
            vehicle_name = vehicle_record["name"] if vehicle_record else loan.vehicle_id
            posting = ExpensePosting(
                details.account_id,
                details.amount,
                self.settings.finance_category_id,
                f"Vehicle: {vehicle_name} - {label} - {loan.lender}",
                details.date,
                idempotency_key=run.key,
            )
            tx_id = run.step("post_expense", lambda: self.ledger_writer.post_expense(posting))
            entry = LedgerEntry(
                vehicle_id=loan.vehicle_id,
                category=EntryCategory.EMI,
                amount=details.amount,
                date=details.date,
                type=label,
                notes=details.notes,
                finance_tx_id=tx_id,
            )
            entry_id = run.step(
                "append_entry",
                lambda: self._create_once(ENTRIES, f"{run.id}-entry", entry_to_record(entry)),
            )

        payment_id = f"{run.id}-payment"
        outcome = run.step(
            "update_loan", lambda: self._apply_payment(loan.id, payment_id, details, tx_id)
        )
        result = PaymentResult(
            payment_id=payment_id,
            remaining_principal=outcome["remainingPrincipal"],
            closed=outcome["closed"],
            transaction_id=tx_id,
            entry_id=entry_id,
        )
        run.finish(asdict(result))
        logger.info(
            "Recorded %s of %.2f on loan %s, remaining principal %.2f",
            label, details.amount, loan.id, result.remaining_principal,
        )
        return result

    def _apply_payment(
        self, loan_id: str, payment_id: str, details: PaymentDetails, tx_id: Optional[str]
    ) -> Dict[str, Any]:
        """Append the payment and compare-and-swap the loan balance."""
        loan = self.get_loan(loan_id)
        if not any(p.id == payment_id for p in loan.payments):
            remaining = max(0.0, loan.remaining_principal - (details.principal or 0))
            status = LoanState.CLOSED if remaining <= 0 or loan.is_closed else LoanState.ACTIVE
            loan.payments.append(
                Payment(
                    date=details.date,
                    amount=details.amount,
                    principal=details.principal,
                    interest=details.interest,
                    penalty=details.penalty,
                    discount=details.discount,
                    category=details.category,
                    account_id=details.account_id,
                    notes=details.notes,
                    finance_tx_id=tx_id,
                    id=payment_id,
                )
            )
            self.store.update(
                LOANS,
                loan_id,
                {
                    "payments": [payment_to_record(p) for p in loan.payments],
                    "remainingPrincipal": remaining,
                    "status": status.value,
                },
                expected_version=loan.version,
            )
            loan.remaining_principal = remaining
            loan.status = status
            if status == LoanState.CLOSED:
                logger.info("Loan %s closed", loan_id)
        return {"remainingPrincipal": loan.remaining_principal, "closed": loan.is_closed}

    def get_loan_detailed_status(self, loan_id: str, today: Optional[date] = None) -> LoanStatus:
        return resolve_loan_status(self.get_loan(loan_id), today or self.clock())

    def get_amortization_schedule(self, loan_id: str) -> List[ScheduleRow]:
        return schedule_for_loan(self.get_loan(loan_id))

    def simulate_prepayment(self, loan_id: str, amount: float) -> PrepaymentResult:
        """Effect of prepaying amount against the loan's remaining principal."""
        loan = self.get_loan(loan_id)
        if loan.is_closed:
            raise ValidationError(f"loan {loan_id} is already closed", "loan_id")
        return simulate_prepayment(
            loan.remaining_principal,
            amount,
            loan.annual_rate,
            loan.emi,
            self.settings.prepayment_max_months,
        )

    # =========================================================================
    # Derived views
    # =========================================================================

    def get_vehicle_view(self, vehicle_id: str, today: Optional[date] = None) -> VehicleView:
        """Stats, risks, loan status and due states from a fresh read of the store."""
        return derive_vehicle_view(
            self.get_vehicle(vehicle_id),
            self.list_obligations(vehicle_id),
            self.list_entries(vehicle_id),
            self.list_loans(vehicle_id),
            today or self.clock(),
            self.settings,
        )

    def get_vehicle_stats(self, vehicle_id: str, today: Optional[date] = None) -> VehicleStats:
        return self.get_vehicle_view(vehicle_id, today).stats

    def get_vehicle_risks(self, vehicle_id: str, today: Optional[date] = None) -> List[Risk]:
        return self.get_vehicle_view(vehicle_id, today).risks

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def pending_workflows(self) -> List[WorkflowRun]:
        """Workflows that started but never finished."""
        return self._call("pending_workflows", self.workflows.pending)

    def resume_workflow(self, workflow_id: str) -> Any:
        """Finish an interrupted workflow from its stored payload."""
        run = self._call("get_workflow", self.workflows.get, workflow_id)
        if run is None:
            raise NotFoundError("workflow", workflow_id)
        runners = {
            COMPLETE_OBLIGATION: (self._run_completion, CompletionResult),
            RECORD_EMI_PAYMENT: (self._run_payment, PaymentResult),
            ADD_SERVICE_RECORD: (self._run_service_record, ServiceRecordResult),
        }
        if run.kind not in runners:
            raise ValidationError(f"unknown workflow kind: {run.kind}", "workflow_id")
        execute, result_type = runners[run.kind]
        if run.completed:
            return result_type(**run.result)
        logger.info("Resuming workflow %s (%s)", run.id, run.kind)
        return execute(run)
