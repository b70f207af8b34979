"""Error types raised by the ownership ledger.

Workflow functions validate before writing and raise ValidationError.
Failures of the document store or the finance ledger writer surface as
CollaboratorError, naming the workflow step that failed so a caller can
retry with the same idempotency key.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ownership ledger errors."""


class ValidationError(LedgerError):
    """A required field is missing or invalid."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(LedgerError):
    """A vehicle, obligation, loan or entry id could not be resolved."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class ConflictError(LedgerError):
    """A compare-and-swap update saw a different version than expected."""

    def __init__(self, collection: str, record_id: str, expected: int, actual: int):
        super().__init__(
            f"{collection}/{record_id} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.collection = collection
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


class CollaboratorError(LedgerError):
    """A document store or ledger writer call failed during a workflow."""

    def __init__(
        self, step: str, cause: Exception, workflow_id: Optional[str] = None
    ):
        super().__init__(f"step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
        self.workflow_id = workflow_id


class StoreError(Exception):
    """Transport-level failure inside a document store."""


class LedgerWriterError(Exception):
    """The finance ledger writer rejected or failed to post a transaction."""

    def __init__(self, message: str, code: str = "failed"):
        super().__init__(message)
        self.code = code


class ConsistencyWarning(UserWarning):
    """Non-fatal: a step was skipped because its input would not change state."""
