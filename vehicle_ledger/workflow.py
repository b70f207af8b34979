"""
Resumable multi-step workflows.

A workflow writes a marker record to the "workflows" collection before its
first step and records each finished step's result on it. Re-running a
workflow with the same key skips the finished steps, so a retry after a
partial failure cannot post the same finance transaction twice. Markers
left in "pending" status are what a reconciliation pass resumes.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from .errors import CollaboratorError, LedgerWriterError, StoreError
from .store import DocumentStore

logger = logging.getLogger(__name__)

WORKFLOWS = "workflows"
PENDING = "pending"
COMPLETED = "completed"


class WorkflowRun:
    """One execution (or resumed execution) of a named workflow."""

    def __init__(self, store: DocumentStore, record: Dict[str, Any]):
        self.store = store
        self.id = record["id"]
        self.kind = record["kind"]
        self.key = record["key"]
        self.payload = record.get("payload") or {}
        self.steps: Dict[str, Any] = dict(record.get("steps") or {})
        self.status = record.get("status", PENDING)
        self.result = record.get("result")

    @property
    def completed(self) -> bool:
        return self.status == COMPLETED

    def has_step(self, name: str) -> bool:
        return name in self.steps

    def step(self, name: str, action: Callable[[], Any]) -> Any:
        """
        Run a step once. A step already recorded returns its stored result.

        Store and ledger writer failures abort the workflow as a
        CollaboratorError naming this step; the marker stays pending.
        """
        if name in self.steps:
            logger.debug("Workflow %s: step %s already done", self.id, name)
            return self.steps[name]
        try:
            result = action()
            steps = dict(self.steps, **{name: result})
            self.store.update(WORKFLOWS, self.id, {"steps": steps, "failedStep": None})
            self.steps = steps
        except (StoreError, LedgerWriterError) as e:
            logger.error("Workflow %s (%s) failed at step %s: %s", self.id, self.kind, name, e)
            self._mark_failed(name, e)
            raise CollaboratorError(name, e, workflow_id=self.id) from e
        return result

    def finish(self, result: Any = None) -> Any:
        try:
            self.store.update(
                WORKFLOWS, self.id, {"status": COMPLETED, "result": result}
            )
        except StoreError as e:
            logger.error("Workflow %s could not be marked complete: %s", self.id, e)
            raise CollaboratorError("finish", e, workflow_id=self.id) from e
        self.status = COMPLETED
        self.result = result
        return result

    def _mark_failed(self, step: str, error: Exception) -> None:
        try:
            self.store.update(
                WORKFLOWS, self.id, {"failedStep": step, "lastError": str(error)}
            )
        except StoreError:
            logger.exception("Workflow %s: could not record failure of %s", self.id, step)


class WorkflowRunner:
    """Opens workflow runs and finds unfinished ones."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def find(self, key: str) -> Optional[WorkflowRun]:
        try:
            records = self.store.list(WORKFLOWS, filter={"key": key}, limit=1)
        except StoreError as e:
            raise CollaboratorError("open_workflow", e) from e
        return WorkflowRun(self.store, records[0]) if records else None

    def begin(self, kind: str, key: Optional[str], payload: Dict[str, Any]) -> WorkflowRun:
        record = {
            "kind": kind,
            "key": key or uuid.uuid4().hex,
            "status": PENDING,
            "payload": payload,
            "steps": {},
        }
        try:
            record["id"] = self.store.create(WORKFLOWS, record)
        except StoreError as e:
            raise CollaboratorError("open_workflow", e) from e
        logger.debug("Workflow %s (%s) started with key %s", record["id"], kind, record["key"])
        return WorkflowRun(self.store, record)

    def get(self, workflow_id: str) -> Optional[WorkflowRun]:
        record = self.store.get(WORKFLOWS, workflow_id)
        return WorkflowRun(self.store, record) if record else None

    def pending(self) -> List[WorkflowRun]:
        return [
            WorkflowRun(self.store, r)
            for r in self.store.list(WORKFLOWS, filter={"status": PENDING})
        ]
