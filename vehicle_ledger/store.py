"""
Document store used by the ownership ledger.

Records are plain dicts with camelCase keys plus two store-managed keys:
"id" and "version". Every write bumps the version; update and delete take
an optional expected_version and raise ConflictError when the stored record
has moved on (compare-and-swap).

Subscribers receive the full filtered snapshot of a collection immediately
and again after every write to that collection.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import yaml

from .errors import ConflictError, NotFoundError, StoreError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
OnChange = Callable[[List[Record]], None]
OnError = Callable[[Exception], None]
Order = Optional[Union[str, Sequence[str]]]

MANAGED_KEYS = ("id", "version")


class DocumentStore(ABC):
    """Create/read/update/delete, filtered listing and live change notification."""

    @abstractmethod
    def create(self, collection: str, record: Record) -> str:
        """Store a new record and return its id."""

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[Record]:
        """Return a record by id, or None."""

    @abstractmethod
    def update(
        self,
        collection: str,
        record_id: str,
        changes: Record,
        expected_version: Optional[int] = None,
    ) -> int:
        """Merge changes into a record and return its new version."""

    @abstractmethod
    def delete(
        self, collection: str, record_id: str, expected_version: Optional[int] = None
    ) -> bool:
        """Remove a record. Returns False when it did not exist."""

    @abstractmethod
    def list(
        self,
        collection: str,
        filter: Optional[Record] = None,
        order: Order = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        """Records matching every key/value in filter, optionally ordered and limited."""

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        on_change: OnChange,
        on_error: Optional[OnError] = None,
        filter: Optional[Record] = None,
        order: Order = None,
    ) -> Callable[[], None]:
        """Watch a collection; returns a function that cancels the subscription."""


def _matches(record: Record, filter: Optional[Record]) -> bool:
    if not filter:
        return True
    return all(record.get(key) == value for key, value in filter.items())


def apply_query(
    records: List[Record],
    filter: Optional[Record] = None,
    order: Order = None,
    limit: Optional[int] = None,
) -> List[Record]:
    """
    Filter, order and limit a list of records.

    Order is a field name or a list of them; a leading "-" sorts descending.
    Records missing the field sort first in ascending order.
    """
    result = [r for r in records if _matches(r, filter)]
    if order:
        keys = [order] if isinstance(order, str) else list(order)
        # Stable sorts applied from the least significant key
        for key in reversed(keys):
            descending = key.startswith("-")
            field = key.lstrip("-")
            result.sort(
                key=lambda r: (r.get(field) is not None, r.get(field)),
                reverse=descending,
            )
    if limit is not None:
        result = result[:limit]
    return result


class _Subscription:
    def __init__(self, collection, on_change, on_error, filter, order):
        self.collection = collection
        self.on_change = on_change
        self.on_error = on_error
        self.filter = filter
        self.order = order
        self.active = True


class InMemoryDocumentStore(DocumentStore):
    """Document store held in process memory."""

    def __init__(self, data: Optional[Dict[str, List[Record]]] = None):
        self._collections: Dict[str, Dict[str, Record]] = {}
        self._subscriptions: List[_Subscription] = []
        for collection, records in (data or {}).items():
            self._collections[collection] = {
                r["id"]: copy.deepcopy(r) for r in records or []
            }

    # -------------------------------------------------------------------------
    # Persistence hook
    # -------------------------------------------------------------------------

    def _persist(self) -> None:
        """Write current state to backing storage. Raises StoreError on failure."""

    def _commit(self, collection: str, previous: Dict[str, Record]) -> None:
        try:
            self._persist()
        except StoreError:
            self._collections[collection] = previous
            raise
        self._notify(collection)

    def snapshot(self) -> Dict[str, List[Record]]:
        """All collections as plain lists, for serialization."""
        return {
            name: [copy.deepcopy(r) for r in records.values()]
            for name, records in self._collections.items()
        }

    # -------------------------------------------------------------------------
    # DocumentStore
    # -------------------------------------------------------------------------

    def create(self, collection: str, record: Record) -> str:
        records = self._collections.setdefault(collection, {})
        previous = copy.deepcopy(records)
        record_id = record.get("id") or uuid.uuid4().hex[:16]
        if record_id in records:
            raise StoreError(f"{collection}/{record_id} already exists")
        stored = copy.deepcopy(record)
        stored["id"] = record_id
        stored["version"] = 1
        records[record_id] = stored
        self._commit(collection, previous)
        return record_id

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        record = self._collections.get(collection, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def update(
        self,
        collection: str,
        record_id: str,
        changes: Record,
        expected_version: Optional[int] = None,
    ) -> int:
        records = self._collections.get(collection, {})
        if record_id not in records:
            raise NotFoundError(collection, record_id)
        previous = copy.deepcopy(records)
        record = records[record_id]
        if expected_version is not None and record["version"] != expected_version:
            raise ConflictError(collection, record_id, expected_version, record["version"])
        for key, value in changes.items():
            if key in MANAGED_KEYS:
                continue
            if value is None:
                record.pop(key, None)
            else:
                record[key] = copy.deepcopy(value)
        record["version"] += 1
        self._commit(collection, previous)
        return record["version"]

    def delete(
        self, collection: str, record_id: str, expected_version: Optional[int] = None
    ) -> bool:
        records = self._collections.get(collection, {})
        if record_id not in records:
            return False
        record = records[record_id]
        if expected_version is not None and record["version"] != expected_version:
            raise ConflictError(collection, record_id, expected_version, record["version"])
        previous = copy.deepcopy(records)
        del records[record_id]
        self._commit(collection, previous)
        return True

    def list(
        self,
        collection: str,
        filter: Optional[Record] = None,
        order: Order = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        records = [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]
        return apply_query(records, filter, order, limit)

    def subscribe(
        self,
        collection: str,
        on_change: OnChange,
        on_error: Optional[OnError] = None,
        filter: Optional[Record] = None,
        order: Order = None,
    ) -> Callable[[], None]:
        sub = _Subscription(collection, on_change, on_error, filter, order)
        self._subscriptions.append(sub)
        self._deliver(sub)

        def unsubscribe() -> None:
            sub.active = False
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        for sub in list(self._subscriptions):
            if sub.active and sub.collection == collection:
                self._deliver(sub)

    def _deliver(self, sub: _Subscription) -> None:
        snapshot = self.list(sub.collection, sub.filter, sub.order)
        try:
            sub.on_change(snapshot)
        except Exception as exc:
            # A failing listener must not fail the write that triggered it
            logger.exception("Subscriber on %s failed", sub.collection)
            if sub.on_error is not None:
                sub.on_error(exc)


class YamlDocumentStore(InMemoryDocumentStore):
    """
    Document store persisted to a single YAML file.

    The whole file is loaded on open and rewritten after every write:

        collections:
          vehicles:
            - id: ...
              version: 1
              name: ...
    """

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)
        data = {}
        if self.filename.exists():
            try:
                with open(self.filename, "r") as fp:
                    raw = yaml.load(fp, Loader=yaml.SafeLoader) or {}
            except (OSError, yaml.YAMLError) as e:
                raise StoreError(f"cannot read {self.filename}: {e}") from e
            data = raw.get("collections") or {}
        super().__init__(data)

    def _persist(self) -> None:
        try:
            with open(self.filename, "w") as fp:
                yaml.dump(
                    {"collections": self.snapshot()},
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to write %s: %s", self.filename, e)
            raise StoreError(f"cannot write {self.filename}: {e}") from e
