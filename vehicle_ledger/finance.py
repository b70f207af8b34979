"""Ledger writer: posts vehicle expenses into the finance domain's accounts."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .errors import LedgerWriterError
from .store import DocumentStore

logger = logging.getLogger(__name__)

ACCOUNTS = "accounts"
TRANSACTIONS = "transactions"


class ExpensePosting:
    """An expense to post against a finance account."""

    def __init__(
        self,
        account_id: str,
        amount: float,
        category_id: str,
        note: str,
        date: str,
        idempotency_key: Optional[str] = None,
    ):
        self.account_id = account_id
        self.amount = amount
        self.category_id = category_id
        self.note = note
        self.date = date
        self.idempotency_key = idempotency_key


class LedgerWriter(ABC):
    @abstractmethod
    def post_expense(self, posting: ExpensePosting) -> str:
        """Record an expense and return its transaction id."""


class StoreLedgerWriter(LedgerWriter):
    """
    Ledger writer backed by the "accounts" and "transactions" collections.

    Rejects unknown accounts and non-positive amounts. A posting that repeats
    an idempotency key returns the transaction created the first time.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def add_account(self, name: str, balance: float = 0, account_id: Optional[str] = None) -> str:
        record = {"name": name, "balance": balance}
        if account_id:
            record["id"] = account_id
        return self.store.create(ACCOUNTS, record)

    def post_expense(self, posting: ExpensePosting) -> str:
        if posting.amount is None or posting.amount <= 0:
            raise LedgerWriterError(
                f"amount must be positive, got {posting.amount}", code="invalid-amount"
            )
        account = self.store.get(ACCOUNTS, posting.account_id)
        if account is None:
            raise LedgerWriterError(
                f"account not found: {posting.account_id}", code="unknown-account"
            )

        if posting.idempotency_key:
            existing = self.store.list(
                TRANSACTIONS, filter={"idempotencyKey": posting.idempotency_key}, limit=1
            )
            if existing:
                logger.info(
                    "Expense already posted for key %s as %s",
                    posting.idempotency_key,
                    existing[0]["id"],
                )
                return existing[0]["id"]

        balance_after = float(account.get("balance", 0)) - posting.amount
        record = {
            "accountId": posting.account_id,
            "type": "expense",
            "amount": posting.amount,
            "categoryId": posting.category_id,
            "note": posting.note,
            "date": posting.date,
            "balanceAfter": balance_after,
        }
        if posting.idempotency_key:
            record["idempotencyKey"] = posting.idempotency_key
        tx_id = self.store.create(TRANSACTIONS, record)
        self.store.update(
            ACCOUNTS, posting.account_id, {"balance": balance_after},
            expected_version=account["version"],
        )
        logger.info(
            "Posted expense %s of %.2f against account %s",
            tx_id, posting.amount, posting.account_id,
        )
        return tx_id
