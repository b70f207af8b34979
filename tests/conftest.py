"""Shared fixtures: an in-memory store, a finance writer and a service pinned to a fixed day."""

from datetime import date

import pytest

from vehicle_ledger import InMemoryDocumentStore, OwnershipLedgerService, StoreLedgerWriter

TODAY = date(2024, 6, 15)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def writer(store):
    writer = StoreLedgerWriter(store)
    writer.add_account("Savings", balance=100000, account_id="acc_savings")
    return writer


@pytest.fixture
def service(store, writer):
    return OwnershipLedgerService(store, writer, clock=lambda: TODAY)


@pytest.fixture
def car(service):
    return service.create_vehicle(
        "owner1", "City Car", odometer=15000, purchase_date="2023-06-15"
    )
