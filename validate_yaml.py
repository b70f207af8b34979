#!/usr/bin/env python3
"""Validate ledger YAML files against the schema."""
import sys
from pathlib import Path
from typing import List, Optional, Set

import yaml
from jsonschema import validate, ValidationError


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def _ids(collections: dict, name: str) -> Set[str]:
    return {str(r.get("id")) for r in collections.get(name) or [] if isinstance(r, dict)}


def check_references(data: dict) -> List[str]:
    """Check that records point at vehicles, accounts and transactions that exist."""
    errors = []
    collections = (data or {}).get("collections") or {}

    for name, records in collections.items():
        seen = set()
        for record in records or []:
            record_id = record.get("id")
            if record_id in seen:
                errors.append(f"Reference error: {name} has duplicate id {record_id}")
            seen.add(record_id)

    vehicles = _ids(collections, "vehicles")
    accounts = _ids(collections, "accounts")
    transactions = _ids(collections, "transactions")

    for name in ("obligations", "entries", "loans"):
        for record in collections.get(name) or []:
            if str(record.get("vehicleId")) not in vehicles:
                errors.append(
                    f"Reference error: {name} {record.get('id')} points to "
                    f"missing vehicle {record.get('vehicleId')}"
                )
    for preference in collections.get("preferences") or []:
        active = preference.get("activeVehicleId")
        if active is not None and str(active) not in vehicles:
            errors.append(
                f"Reference error: preferences {preference.get('id')} points to "
                f"missing vehicle {active}"
            )
    for transaction in collections.get("transactions") or []:
        if str(transaction.get("accountId")) not in accounts:
            errors.append(
                f"Reference error: transactions {transaction.get('id')} points to "
                f"missing account {transaction.get('accountId')}"
            )
    for entry in collections.get("entries") or []:
        tx_id = entry.get("financeTxId")
        if tx_id is not None and str(tx_id) not in transactions:
            errors.append(
                f"Reference error: entries {entry.get('id')} points to "
                f"missing transaction {tx_id}"
            )
    return errors


def validate_store_file(filepath: Path, schema: dict) -> List[str]:
    """Validate a single ledger YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validate(instance=data, schema=schema)
        errors.extend(check_references(data))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv: Optional[List[str]] = None):
    """Validate the ledger YAML files named on the command line."""
    paths = [Path(p) for p in (sys.argv[1:] if argv is None else argv)]
    if not paths:
        print("Usage: validate_yaml.py LEDGER.yaml [LEDGER.yaml ...]")
        return 1

    schema = load_schema()
    all_valid = True
    for filepath in paths:
        errors = validate_store_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
