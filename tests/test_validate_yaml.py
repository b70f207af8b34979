#!/usr/bin/env python3
"""Tests for validate_yaml schema validation."""

from validate_yaml import check_references, load_schema, main, validate_store_file
from vehicle_ledger import (
    CompletionDetails,
    OwnershipLedgerService,
    PaymentDetails,
    StoreLedgerWriter,
    YamlDocumentStore,
)

from conftest import TODAY


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        schema = load_schema()
        collections = schema["properties"]["collections"]["properties"]
        assert "vehicles" in collections
        assert "obligations" in collections
        assert "workflows" in collections


class TestValidateStoreFile:
    """Tests for validate_store_file function."""

    def test_valid_minimal_returns_no_errors(self, tmp_path):
        """Valid minimal ledger file returns empty error list."""
        path = tmp_path / "valid.yaml"
        path.write_text("""
collections:
  vehicles:
    - id: v1
      version: 1
      ownerId: me
      name: City Car
      odometer: 15000
  obligations:
    - id: o1
      version: 1
      vehicleId: v1
      type: Oil Change
      trigger: both
      dueOdometer: 25000
""")
        errors = validate_store_file(path, load_schema())
        assert errors == []

    def test_file_written_by_service_is_valid(self, tmp_path):
        """A ledger produced through the service validates cleanly."""
        path = tmp_path / "garage.yaml"
        store = YamlDocumentStore(path)
        writer = StoreLedgerWriter(store)
        writer.add_account("Savings", balance=100000, account_id="acc_savings")
        service = OwnershipLedgerService(store, writer, clock=lambda: TODAY)
        car = service.create_vehicle("me", "City Car", odometer=15000)
        oil = [o for o in service.list_obligations(car.id) if o.type == "Oil Change"][0]
        service.complete_obligation(
            oil.id, CompletionDetails("2024-06-15", odometer=16000, cost=2500, account_id="acc_savings")
        )
        loan = service.add_loan(car.id, "HDFC Bank", 200000, 8.5, 60, "2024-01-05", due_day=5)
        service.record_emi_payment(loan.id, PaymentDetails(4103, "2024-06-05", account_id="acc_savings"))

        errors = validate_store_file(path, load_schema())
        assert errors == []

    def test_date_trigger_without_due_date_returns_errors(self, tmp_path):
        """A date-triggered obligation must carry a due date."""
        path = tmp_path / "invalid.yaml"
        path.write_text("""
collections:
  obligations:
    - id: o1
      version: 1
      vehicleId: v1
      type: Insurance Renewal
      trigger: date
""")
        errors = validate_store_file(path, load_schema())
        assert len(errors) >= 1
        assert any("Schema validation" in e for e in errors)

    def test_unknown_category_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
collections:
  entries:
    - id: e1
      version: 1
      vehicleId: v1
      category: parking
      amount: 100
      date: '2024-06-10'
""")
        errors = validate_store_file(path, load_schema())
        assert any("Schema validation" in e for e in errors)
        assert any("at path" in e for e in errors)

    def test_invalid_yaml_returns_parse_error(self, tmp_path):
        """Invalid YAML syntax returns YAML parse error."""
        path = tmp_path / "bad.yaml"
        path.write_text("""
collections:
  vehicles: [unclosed
""")
        errors = validate_store_file(path, load_schema())
        assert len(errors) >= 1
        assert any("YAML" in e for e in errors)

    def test_nonexistent_file_returns_errors(self, tmp_path):
        """Nonexistent file returns error (caught by validate_store_file)."""
        path = tmp_path / "does_not_exist.yaml"
        errors = validate_store_file(path, load_schema())
        assert len(errors) >= 1
        assert any("Error" in e for e in errors)



class TestCheckReferences:
    """Tests for cross-collection reference checks."""

    def test_consistent_file_has_no_errors(self):
        data = {
            "collections": {
                "vehicles": [{"id": "v1"}],
                "obligations": [{"id": "o1", "vehicleId": "v1"}],
                "accounts": [{"id": "acc"}],
                "transactions": [{"id": "t1", "accountId": "acc"}],
                "entries": [{"id": "e1", "vehicleId": "v1", "financeTxId": "t1"}],
                "preferences": [{"id": "me", "activeVehicleId": "v1"}],
            }
        }
        assert check_references(data) == []

    def test_missing_vehicle(self):
        data = {
            "collections": {
                "vehicles": [{"id": "v1"}],
                "obligations": [{"id": "o1", "vehicleId": "v9"}],
                "loans": [{"id": "l1", "vehicleId": "v1"}],
            }
        }
        assert check_references(data) == [
            "Reference error: obligations o1 points to missing vehicle v9"
        ]

    def test_missing_account_and_transaction(self):
        data = {
            "collections": {
                "vehicles": [{"id": "v1"}],
                "transactions": [{"id": "t1", "accountId": "acc_card"}],
                "entries": [{"id": "e1", "vehicleId": "v1", "financeTxId": "t2"}],
                "preferences": [{"id": "me", "activeVehicleId": "v2"}],
            }
        }
        errors = check_references(data)
        assert "Reference error: transactions t1 points to missing account acc_card" in errors
        assert "Reference error: entries e1 points to missing transaction t2" in errors
        assert "Reference error: preferences me points to missing vehicle v2" in errors

    def test_duplicate_ids(self):
        data = {"collections": {"vehicles": [{"id": "v1"}, {"id": "v1"}]}}
        assert check_references(data) == ["Reference error: vehicles has duplicate id v1"]

    def test_reported_for_schema_valid_file(self, tmp_path):
        path = tmp_path / "orphan.yaml"
        path.write_text("""
collections:
  obligations:
    - id: o1
      version: 1
      vehicleId: v9
      type: Oil Change
      trigger: odometer
      dueOdometer: 25000
""")
        errors = validate_store_file(path, load_schema())
        assert errors == ["Reference error: obligations o1 points to missing vehicle v9"]

class TestMain:
    """Tests for the command-line entry point."""

    def test_no_paths_prints_usage(self, capsys):
        assert main([]) == 1
        assert "Usage" in capsys.readouterr().out

    def test_reports_each_file(self, tmp_path, capsys):
        good = tmp_path / "good.yaml"
        good.write_text("collections: {}\n")
        bad = tmp_path / "bad.yaml"
        bad.write_text("collections: []\n")
        assert main([str(good), str(bad)]) == 1
        out = capsys.readouterr().out
        assert "OK: good.yaml" in out
        assert "FAIL: bad.yaml" in out
