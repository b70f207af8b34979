#!/usr/bin/env python3
"""Tests for OwnershipLedgerService workflows, CRUD and derived views."""
import logging
from datetime import date

import pytest

from vehicle_ledger import (
    CollaboratorError,
    CompletionDetails,
    ConflictError,
    ConsistencyWarning,
    EntryCategory,
    InMemoryDocumentStore,
    LedgerWriterError,
    LoanHealth,
    NotFoundError,
    OwnershipLedgerService,
    PaymentCategory,
    PaymentDetails,
    ServiceRecordDetails,
    Settings,
    StoreError,
    StoreLedgerWriter,
    TriggerKind,
    ValidationError,
)
from vehicle_ledger.finance import ACCOUNTS, TRANSACTIONS
from vehicle_ledger.service import ENTRIES, LOANS, OBLIGATIONS

from conftest import TODAY


def find_obligation(service, vehicle_id, type):
    for obligation in service.list_obligations(vehicle_id):
        if obligation.type == type:
            return obligation
    raise AssertionError(f"no pending {type}")


class FlakyStore(InMemoryDocumentStore):
    """In-memory store whose entry writes fail while fail_entries is set."""

    def __init__(self):
        super().__init__()
        self.fail_entries = False

    def create(self, collection, record):
        if collection == ENTRIES and self.fail_entries:
            raise StoreError("connection reset")
        return super().create(collection, record)


class ConcurrentEditStore(InMemoryDocumentStore):
    """In-memory store where another writer edits a loan just before the next versioned update."""

    def __init__(self):
        super().__init__()
        self.interleave = False

    def update(self, collection, record_id, changes, expected_version=None):
        if collection == LOANS and expected_version is not None and self.interleave:
            self.interleave = False
            super().update(collection, record_id, {"lender": "HDFC Bank Ltd"})
        return super().update(collection, record_id, changes, expected_version)


# =============================================================================
# Vehicles
# =============================================================================


class TestCreateVehicle:
    """Tests for vehicle creation and seeding."""

    def test_seeds_standard_obligations(self, service, car):
        obligations = service.list_obligations(car.id)
        assert len(obligations) == 14
        assert all(o.standard and o.recurring for o in obligations)

    def test_seeded_oil_change_anchored_at_creation(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        assert oil.trigger == TriggerKind.BOTH
        assert oil.due_date == "2024-12-15"
        assert oil.due_odometer == 25000

    def test_bike_gets_chain_lubrication(self, service):
        bike = service.create_vehicle("owner1", "Commuter", type="bike", odometer=800)
        chain = find_obligation(service, bike.id, "Chain Lubrication")
        assert chain.due_odometer == 1300

    def test_first_vehicle_becomes_active(self, service, car):
        second = service.create_vehicle("owner1", "Weekend Bike", type="bike")
        assert service.get_active_vehicle("owner1").id == car.id
        assert second.id != car.id

    def test_purchase_date_defaults_to_today(self, service):
        vehicle = service.create_vehicle("owner1", "New Car")
        assert vehicle.purchase_date == TODAY.isoformat()

    def test_requires_name(self, service):
        with pytest.raises(ValidationError) as exc:
            service.create_vehicle("owner1", "")
        assert exc.value.field == "name"

    def test_rejects_negative_odometer(self, service):
        with pytest.raises(ValidationError):
            service.create_vehicle("owner1", "Car", odometer=-5)

    def test_get_unknown_vehicle(self, service):
        with pytest.raises(NotFoundError):
            service.get_vehicle("nope")


class TestVehicleUpdates:
    """Tests for odometer, archive, active selection and deletion."""

    def test_update_odometer(self, service, car):
        assert service.update_odometer(car.id, 16000).odometer == 16000

    def test_odometer_cannot_go_down(self, service, car):
        with pytest.raises(ValidationError) as exc:
            service.update_odometer(car.id, 14000)
        assert exc.value.field == "odometer"
        assert service.get_vehicle(car.id).odometer == 15000

    def test_same_odometer_warns(self, service, car):
        with pytest.warns(ConsistencyWarning):
            service.update_odometer(car.id, 15000)

    def test_update_vehicle_fields(self, service, car):
        updated = service.update_vehicle(car.id, {"name": "Family Car", "reg_number": "KA01AB1234"})
        assert updated.name == "Family Car"
        assert updated.reg_number == "KA01AB1234"
        assert updated.version == car.version + 1

    def test_update_vehicle_rejects_downward_odometer(self, service, car):
        with pytest.raises(ValidationError):
            service.update_vehicle(car.id, {"odometer": 100})

    def test_update_vehicle_rejects_unknown_field(self, service, car):
        with pytest.raises(ValidationError):
            service.update_vehicle(car.id, {"owner_id": "someone-else"})

    def test_update_vehicle_stale_version(self, service, car):
        service.update_vehicle(car.id, {"name": "First"})
        with pytest.raises(ConflictError):
            service.update_vehicle(car.id, {"name": "Second"}, expected_version=car.version)

    def test_archive_active_clears_selection(self, service, car):
        archived = service.archive_vehicle(car.id)
        assert archived.archived
        assert service.get_active_vehicle("owner1") is None
        assert service.list_vehicles("owner1") == []
        assert len(service.list_vehicles("owner1", include_archived=True)) == 1

    def test_toggle_archive(self, service, car):
        assert service.toggle_archive(car.id).archived
        assert not service.toggle_archive(car.id).archived

    def test_set_active_vehicle(self, service, car):
        bike = service.create_vehicle("owner1", "Bike", type="bike")
        service.set_active_vehicle("owner1", bike.id)
        assert service.get_active_vehicle("owner1").id == bike.id

    def test_archived_vehicle_cannot_be_active(self, service, car):
        bike = service.create_vehicle("owner1", "Bike", type="bike")
        service.archive_vehicle(bike.id)
        with pytest.raises(ValidationError):
            service.set_active_vehicle("owner1", bike.id)

    def test_other_owners_vehicle_cannot_be_active(self, service, car):
        with pytest.raises(ValidationError):
            service.set_active_vehicle("owner2", car.id)

    def test_delete_refuses_while_referenced(self, service, car):
        with pytest.raises(ValidationError):
            service.delete_vehicle(car.id)
        assert service.get_vehicle(car.id)

    def test_delete_with_cascade(self, service, store, car):
        service.add_loan(car.id, "Bank", 100000, 9, 24, "2024-01-01")
        service.delete_vehicle(car.id, cascade=True)
        with pytest.raises(NotFoundError):
            service.get_vehicle(car.id)
        assert store.list(OBLIGATIONS, filter={"vehicleId": car.id}) == []
        assert service.list_loans(car.id) == []
        assert service.get_active_vehicle("owner1") is None

    def test_delete_unreferenced(self, service):
        vehicle = service.create_vehicle("owner1", "Cart", type="cart")
        for obligation in service.list_obligations(vehicle.id):
            service.delete_obligation(obligation.id)
        service.delete_vehicle(vehicle.id)
        with pytest.raises(NotFoundError):
            service.get_vehicle(vehicle.id)


# =============================================================================
# Obligations
# =============================================================================


class TestObligations:
    """Tests for obligation CRUD and the maintenance item toggle."""

    def test_add_obligation(self, service, car):
        obligation = service.add_obligation(
            car.id, "Seat Covers", TriggerKind.DATE, due_date="2024-07-01",
            category=EntryCategory.OTHER,
        )
        assert obligation.id
        assert obligation.is_pending
        assert service.get_obligation(obligation.id).category == EntryCategory.OTHER

    def test_add_obligation_validates(self, service, car):
        with pytest.raises(ValidationError):
            service.add_obligation(car.id, "Seat Covers", TriggerKind.DATE)

    def test_add_obligation_unknown_vehicle(self, service):
        with pytest.raises(NotFoundError):
            service.add_obligation("nope", "Wash", TriggerKind.DATE, due_date="2024-07-01")

    def test_update_obligation(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        updated = service.update_obligation(oil.id, {"due_odometer": 24000, "notes": "synthetic"})
        assert updated.due_odometer == 24000
        assert updated.notes == "synthetic"

    def test_update_obligation_keeps_invariants(self, service, car):
        insurance = find_obligation(service, car.id, "Insurance Renewal")
        with pytest.raises(ValidationError):
            service.update_obligation(insurance.id, {"due_date": None})

    def test_delete_obligation(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        service.delete_obligation(oil.id)
        with pytest.raises(NotFoundError):
            service.get_obligation(oil.id)
        with pytest.raises(NotFoundError):
            service.delete_obligation(oil.id)

    def test_toggle_maintenance_item(self, service, car):
        assert service.toggle_maintenance_item(car.id, "Wheel Alignment") is None
        assert all(o.type != "Wheel Alignment" for o in service.list_obligations(car.id))

        added = service.toggle_maintenance_item(car.id, "wheel alignment")
        assert added.type == "Wheel Alignment"
        assert added.due_date == "2025-06-15"

    def test_toggle_unknown_template(self, service, car):
        with pytest.raises(NotFoundError):
            service.toggle_maintenance_item(car.id, "Flux Capacitor")

    def test_toggle_ad_hoc_template(self, service, car):
        with pytest.raises(ValidationError):
            service.toggle_maintenance_item(car.id, "Accident Repair")


# =============================================================================
# Completing obligations
# =============================================================================


class TestCompleteObligation:
    """Tests for the completion workflow."""

    def test_full_completion(self, service, store, car):
        oil = find_obligation(service, car.id, "Oil Change")
        result = service.complete_obligation(
            oil.id,
            CompletionDetails("2024-06-15", odometer=16000, cost=2500, account_id="acc_savings"),
        )

        entry = service.get_entry(result.entry_id)
        assert entry.category == EntryCategory.SERVICE
        assert entry.amount == 2500
        assert entry.obligation_id == oil.id
        assert entry.finance_tx_id == result.transaction_id
        assert store.get(ACCOUNTS, "acc_savings")["balance"] == 97500

        assert result.odometer_updated
        assert service.get_vehicle(car.id).odometer == 16000

        with pytest.raises(NotFoundError):
            service.get_obligation(oil.id)
        successor = service.get_obligation(result.successor_id)
        assert successor.type == "Oil Change"
        assert successor.due_date == "2024-12-15"
        assert successor.due_odometer == 26000
        assert successor.is_pending

    def test_insurance_entry_category(self, service, car):
        insurance = find_obligation(service, car.id, "Insurance Renewal")
        result = service.complete_obligation(insurance.id, CompletionDetails("2024-06-15", cost=15000))
        assert service.get_entry(result.entry_id).category == EntryCategory.INSURANCE

    def test_cost_without_account_logs_entry_only(self, service, store, car):
        oil = find_obligation(service, car.id, "Oil Change")
        result = service.complete_obligation(oil.id, CompletionDetails("2024-06-15", cost=2500))
        assert result.transaction_id is None
        assert not service.get_entry(result.entry_id).is_finance_linked
        assert store.list(TRANSACTIONS) == []

    def test_cost_requires_account_when_configured(self, store, writer, car):
        strict = OwnershipLedgerService(
            store, writer, Settings(require_account_for_cost=True), clock=lambda: TODAY
        )
        oil = find_obligation(strict, car.id, "Oil Change")
        with pytest.raises(ValidationError) as exc:
            strict.complete_obligation(oil.id, CompletionDetails("2024-06-15", cost=2500))
        assert exc.value.field == "account_id"
        assert strict.pending_workflows() == []
        assert strict.list_entries(car.id) == []

    def test_lower_odometer_is_skipped(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        with pytest.warns(ConsistencyWarning):
            result = service.complete_obligation(oil.id, CompletionDetails("2024-06-15", odometer=14000))
        assert not result.odometer_updated
        assert service.get_vehicle(car.id).odometer == 15000
        assert service.get_obligation(result.successor_id).due_odometer == 25000

    def test_non_recurring_has_no_successor(self, service, car):
        one_off = service.add_obligation(car.id, "Seat Covers", TriggerKind.DATE, due_date="2024-07-01")
        result = service.complete_obligation(one_off.id, CompletionDetails("2024-06-20"))
        assert result.successor_id is None

    def test_invalid_date(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        with pytest.raises(ValidationError):
            service.complete_obligation(oil.id, CompletionDetails("yesterday"))

    def test_unknown_obligation(self, service):
        with pytest.raises(NotFoundError):
            service.complete_obligation("nope", CompletionDetails("2024-06-15"))

    def test_same_key_completes_once(self, service, store, car):
        oil = find_obligation(service, car.id, "Oil Change")
        details = CompletionDetails("2024-06-15", odometer=16000, cost=2500, account_id="acc_savings")
        first = service.complete_obligation(oil.id, details, idempotency_key="svc-1")
        second = service.complete_obligation(oil.id, details, idempotency_key="svc-1")
        assert first == second
        assert len(store.list(TRANSACTIONS)) == 1
        assert len(service.list_entries(car.id)) == 1

    def test_unknown_account_fails_before_writes(self, service, writer, car):
        oil = find_obligation(service, car.id, "Oil Change")
        with pytest.raises(CollaboratorError) as exc:
            service.complete_obligation(
                oil.id, CompletionDetails("2024-06-15", cost=2500, account_id="acc_card")
            )
        assert exc.value.step == "post_expense"
        assert isinstance(exc.value.cause, LedgerWriterError)
        assert service.list_entries(car.id) == []
        assert service.get_obligation(oil.id)
        assert [r.id for r in service.pending_workflows()] == [exc.value.workflow_id]

        writer.add_account("Card", balance=5000, account_id="acc_card")
        result = service.resume_workflow(exc.value.workflow_id)
        assert result.transaction_id
        assert service.pending_workflows() == []
        with pytest.raises(NotFoundError):
            service.get_obligation(oil.id)


class TestPartialFailure:
    """A retry after a failure mid-workflow must not post twice."""

    def test_retry_after_entry_write_fails(self):
        store = FlakyStore()
        writer = StoreLedgerWriter(store)
        writer.add_account("Savings", balance=100000, account_id="acc_savings")
        service = OwnershipLedgerService(store, writer, clock=lambda: TODAY)
        car = service.create_vehicle("owner1", "City Car", odometer=15000)
        oil = find_obligation(service, car.id, "Oil Change")
        details = CompletionDetails("2024-06-15", odometer=16000, cost=2500, account_id="acc_savings")

        store.fail_entries = True
        with pytest.raises(CollaboratorError) as exc:
            service.complete_obligation(oil.id, details, idempotency_key="oil-june")
        assert exc.value.step == "append_entry"
        assert len(store.list(TRANSACTIONS)) == 1
        assert store.list(ENTRIES) == []
        assert len(service.pending_workflows()) == 1

        store.fail_entries = False
        result = service.complete_obligation(oil.id, details, idempotency_key="oil-june")
        assert len(store.list(TRANSACTIONS)) == 1
        assert store.get(ACCOUNTS, "acc_savings")["balance"] == 97500
        assert service.get_entry(result.entry_id).finance_tx_id == result.transaction_id
        assert service.get_vehicle(car.id).odometer == 16000
        assert service.pending_workflows() == []

    def test_retry_after_loan_edited_concurrently(self):
        store = ConcurrentEditStore()
        writer = StoreLedgerWriter(store)
        writer.add_account("Savings", balance=100000, account_id="acc_savings")
        service = OwnershipLedgerService(store, writer, clock=lambda: TODAY)
        car = service.create_vehicle("owner1", "City Car", odometer=15000)
        loan = service.add_loan(car.id, "HDFC Bank", 200000, 8.5, 60, "2024-01-05", due_day=5)
        payment = PaymentDetails(4103, "2024-06-05", account_id="acc_savings")

        store.interleave = True
        with pytest.raises(ConflictError):
            service.record_emi_payment(loan.id, payment, idempotency_key="emi-june")
        assert service.get_loan(loan.id).payments == []
        assert len(store.list(TRANSACTIONS)) == 1
        assert [r.key for r in service.pending_workflows()] == ["emi-june"]

        result = service.record_emi_payment(loan.id, payment, idempotency_key="emi-june")
        stored = service.get_loan(loan.id)
        assert stored.lender == "HDFC Bank Ltd"
        assert len(stored.payments) == 1
        assert stored.remaining_principal == pytest.approx(197313.67)
        assert result.remaining_principal == pytest.approx(197313.67)
        assert len(store.list(TRANSACTIONS)) == 1
        assert len(store.list(ENTRIES)) == 1
        assert store.get(ACCOUNTS, "acc_savings")["balance"] == 95897
        assert service.pending_workflows() == []

    def test_resume_unknown_workflow(self, service):
        with pytest.raises(NotFoundError):
            service.resume_workflow("nope")


class TestIdempotencyKeys:
    """An idempotency key is bound to one workflow kind and one target."""

    def test_key_reused_for_another_obligation(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        air = find_obligation(service, car.id, "Air Filter")
        service.complete_obligation(oil.id, CompletionDetails("2024-06-15"), idempotency_key="svc-1")
        with pytest.raises(ValidationError) as exc:
            service.complete_obligation(air.id, CompletionDetails("2024-06-15"), idempotency_key="svc-1")
        assert exc.value.field == "idempotency_key"
        assert service.get_obligation(air.id).is_pending

    def test_key_reused_for_a_payment(self, service, car, loan):
        oil = find_obligation(service, car.id, "Oil Change")
        service.complete_obligation(oil.id, CompletionDetails("2024-06-15"), idempotency_key="svc-1")
        with pytest.raises(ValidationError):
            service.record_emi_payment(loan.id, PaymentDetails(4103, "2024-06-05"), idempotency_key="svc-1")
        assert service.get_loan(loan.id).payments == []

    def test_key_reused_for_another_vehicle(self, service, car):
        bike = service.create_vehicle("owner1", "Commuter", type="bike")
        service.add_service_record(ServiceRecordDetails(car.id, 3000, "2024-06-10", type="Fuel"), idempotency_key="fuel-1")
        with pytest.raises(ValidationError):
            service.add_service_record(
                ServiceRecordDetails(bike.id, 500, "2024-06-10", type="Fuel"), idempotency_key="fuel-1"
            )
        assert service.list_entries(bike.id) == []
        assert len(service.list_entries(car.id)) == 1


# =============================================================================
# Ledger entries
# =============================================================================


class TestServiceRecords:
    """Tests for ad-hoc entries."""

    def test_fuel_entry_with_account(self, service, store, car):
        result = service.add_service_record(
            ServiceRecordDetails(car.id, 3000, "2024-06-10", type="Fuel", odometer=15400, account_id="acc_savings")
        )
        entry = service.get_entry(result.entry_id)
        assert entry.category == EntryCategory.FUEL
        assert entry.finance_tx_id == result.transaction_id
        assert store.get(TRANSACTIONS, result.transaction_id)["note"] == "Vehicle: City Car - Fuel"
        assert service.get_vehicle(car.id).odometer == 15400

    def test_explicit_category(self, service, car):
        result = service.add_service_record(
            ServiceRecordDetails(car.id, 1500, "2024-06-10", type="Dashcam", category=EntryCategory.OTHER)
        )
        assert service.get_entry(result.entry_id).category == EntryCategory.OTHER

    def test_rejects_negative_amount(self, service, car):
        with pytest.raises(ValidationError):
            service.add_service_record(ServiceRecordDetails(car.id, -1, "2024-06-10", type="Fuel"))

    def test_unknown_vehicle(self, service):
        with pytest.raises(NotFoundError):
            service.add_service_record(ServiceRecordDetails("nope", 10, "2024-06-10", type="Fuel"))

    def test_latest_record(self, service, car):
        service.add_service_record(ServiceRecordDetails(car.id, 3000, "2024-05-10", type="Fuel"))
        service.add_service_record(ServiceRecordDetails(car.id, 2800, "2024-06-10", type="Fuel"))
        service.add_service_record(ServiceRecordDetails(car.id, 900, "2024-06-12", type="Wash"))
        assert service.get_latest_record(car.id, "fuel").amount == 2800
        assert service.get_latest_record(car.id, "wash").amount == 900
        assert service.get_latest_record(car.id, "insurance") is None

    def test_list_entries_newest_first(self, service, car):
        service.add_service_record(ServiceRecordDetails(car.id, 1, "2024-05-10", type="Fuel"))
        service.add_service_record(ServiceRecordDetails(car.id, 2, "2024-06-10", type="Wash"))
        assert [e.amount for e in service.list_entries(car.id)] == [2, 1]
        assert [e.amount for e in service.list_entries(car.id, EntryCategory.FUEL)] == [1]

    def test_delete_entry_keeps_transaction(self, service, store, car, caplog):
        result = service.add_service_record(
            ServiceRecordDetails(car.id, 3000, "2024-06-10", type="Fuel", account_id="acc_savings")
        )
        with caplog.at_level(logging.WARNING, logger="vehicle_ledger.service"):
            service.delete_entry(result.entry_id)
        assert "not reversed" in caplog.text
        assert service.list_entries(car.id) == []
        assert store.get(TRANSACTIONS, result.transaction_id) is not None


# =============================================================================
# Loans
# =============================================================================


@pytest.fixture
def loan(service, car):
    return service.add_loan(car.id, "HDFC Bank", 200000, 8.5, 60, "2024-01-05", due_day=5)


class TestLoans:
    """Tests for loan creation and payments."""

    def test_add_loan_computes_quote(self, loan):
        assert loan.emi == 4103
        assert loan.total_payable == 246180
        assert loan.total_interest == 46180
        assert loan.remaining_principal == 200000
        assert not loan.is_closed

    @pytest.mark.parametrize(
        "principal, rate, tenure, due_day",
        [(0, 8.5, 60, 5), (200000, 0, 60, 5), (200000, 8.5, 0, 5), (200000, 8.5, 60, 32)],
    )
    def test_add_loan_validates(self, service, car, principal, rate, tenure, due_day):
        with pytest.raises(ValidationError):
            service.add_loan(car.id, "Bank", principal, rate, tenure, "2024-01-05", due_day=due_day)

    def test_loan_for_vehicle(self, service, car, loan):
        assert service.get_loan_for_vehicle(car.id).id == loan.id

    def test_update_loan(self, service, loan):
        assert service.update_loan(loan.id, {"due_day": 10}).due_day == 10
        with pytest.raises(ValidationError):
            service.update_loan(loan.id, {"principal": 1})

    def test_emi_payment(self, service, store, car, loan):
        result = service.record_emi_payment(
            loan.id, PaymentDetails(4103, "2024-06-05", account_id="acc_savings")
        )
        assert result.remaining_principal == pytest.approx(197313.67)
        assert not result.closed

        stored = service.get_loan(loan.id)
        assert len(stored.payments) == 1
        assert stored.payments[0].interest == pytest.approx(1416.67)
        assert stored.payments[0].finance_tx_id == result.transaction_id

        emi_entries = service.list_entries(car.id, EntryCategory.EMI)
        assert len(emi_entries) == 1
        assert emi_entries[0].amount == 4103
        assert store.get(ACCOUNTS, "acc_savings")["balance"] == 95897

    def test_explicit_split(self, service, loan):
        result = service.record_emi_payment(
            loan.id, PaymentDetails(4103, "2024-06-05", principal=3000, interest=1103)
        )
        assert result.remaining_principal == 197000

    def test_payment_without_account_has_no_entry(self, service, car, loan):
        result = service.record_emi_payment(loan.id, PaymentDetails(4103, "2024-06-05"))
        assert result.transaction_id is None
        assert result.entry_id is None
        assert service.list_entries(car.id) == []

    def test_full_prepayment_closes_loan(self, service, car, loan):
        result = service.record_emi_payment(
            loan.id, PaymentDetails(200000, "2024-06-05", category=PaymentCategory.PREPAYMENT)
        )
        assert result.closed
        assert result.remaining_principal == 0
        assert service.get_loan(loan.id).is_closed
        assert service.get_loan_for_vehicle(car.id) is None
        assert service.get_loan_detailed_status(loan.id).status == LoanHealth.CLOSED

    def test_closed_loan_stays_closed(self, service, loan):
        service.record_emi_payment(
            loan.id, PaymentDetails(200000, "2024-06-05", category=PaymentCategory.PREPAYMENT)
        )
        result = service.record_emi_payment(loan.id, PaymentDetails(4103, "2024-07-05"))
        assert result.closed
        assert service.get_loan(loan.id).is_closed

    def test_penalty_with_zero_amount_warns(self, service, loan):
        with pytest.warns(ConsistencyWarning):
            service.record_emi_payment(loan.id, PaymentDetails(0, "2024-06-05", penalty=100))

    def test_negative_amount_rejected(self, service, loan):
        with pytest.raises(ValidationError):
            service.record_emi_payment(loan.id, PaymentDetails(-1, "2024-06-05"))

    def test_same_key_records_once(self, service, store, loan):
        payment = PaymentDetails(4103, "2024-06-05", account_id="acc_savings")
        first = service.record_emi_payment(loan.id, payment, idempotency_key="emi-june")
        second = service.record_emi_payment(loan.id, payment, idempotency_key="emi-june")
        assert first == second
        assert len(service.get_loan(loan.id).payments) == 1
        assert len(store.list(TRANSACTIONS)) == 1

    def test_detailed_status(self, service, loan):
        status = service.get_loan_detailed_status(loan.id)
        assert status.is_overdue
        assert status.days_late == 162
        assert status.expected_installments == 6

    def test_schedule(self, service, loan):
        rows = service.get_amortization_schedule(loan.id)
        assert len(rows) <= 60
        assert rows[0].date == date(2024, 1, 5)
        assert rows[-1].balance == 0

    def test_simulate_prepayment(self, service, loan):
        result = service.simulate_prepayment(loan.id, 50000)
        assert not result.full_closure
        assert result.interest_saved > 0
        assert service.simulate_prepayment(loan.id, 250000).full_closure

    def test_simulate_on_closed_loan(self, service, loan):
        service.record_emi_payment(
            loan.id, PaymentDetails(200000, "2024-06-05", category=PaymentCategory.PREPAYMENT)
        )
        with pytest.raises(ValidationError):
            service.simulate_prepayment(loan.id, 1000)

    def test_delete_loan(self, service, loan):
        service.delete_loan(loan.id)
        with pytest.raises(NotFoundError):
            service.get_loan(loan.id)


# =============================================================================
# Derived views
# =============================================================================


class TestViews:
    """Tests for stats and risks read through the service."""

    def test_stats(self, service, car):
        service.add_service_record(ServiceRecordDetails(car.id, 3000, "2024-06-10", type="Fuel"))
        stats = service.get_vehicle_stats(car.id)
        assert stats.total_spend == 3000
        assert stats.month_spend == 3000
        assert stats.months_owned == 12
        assert stats.cost_per_month == 250
        assert stats.overdue_count == 0
        assert stats.health_score == 100

    def test_risks_lead_with_overdue_loan(self, service, car, loan):
        risks = service.get_vehicle_risks(car.id)
        assert risks[0].title == "EMI overdue by 162 days"

    def test_view_reflects_latest_state(self, service, car):
        oil = find_obligation(service, car.id, "Oil Change")
        assert len(service.get_vehicle_view(car.id).due) == 14
        service.update_odometer(car.id, 25000)
        view = service.get_vehicle_view(car.id)
        assert view.stats.overdue_count > 0
        assert any(r.title == "Oil change overdue by 0 km" for r in view.risks)
        assert oil.id in [i.obligation.id for i in view.due]
