"""Live vehicle views: re-derive a vehicle's view whenever its data changes."""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional

from .aggregation import VehicleView, derive_vehicle_view
from .errors import NotFoundError
from .records import parse_entry, parse_loan, parse_obligation, parse_vehicle
from .service import ENTRIES, LOANS, OBLIGATIONS, VEHICLES, OwnershipLedgerService

logger = logging.getLogger(__name__)


class VehicleWatch:
    """
    Subscribes to one vehicle's records and pushes a fresh VehicleView to
    on_update after every change.

    Each collection's latest snapshot is kept as delivered; the view is
    always derived from all four snapshots in full. Call close() (or use the
    watch as a context manager) to tear the subscriptions down.
    """

    def __init__(
        self,
        service: OwnershipLedgerService,
        vehicle_id: str,
        on_update: Callable[[VehicleView], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.service = service
        self.vehicle_id = vehicle_id
        self.on_update = on_update
        self.on_error = on_error
        self.today = today or service.clock
        self.view: Optional[VehicleView] = None
        self._snapshots: Dict[str, List[dict]] = {}
        self._unsubscribers: List[Callable[[], None]] = []
        self._started = False

    def start(self) -> "VehicleWatch":
        if self._started:
            return self
        self._started = True
        store = self.service.store
        self._unsubscribers.append(
            store.subscribe(
                VEHICLES,
                lambda records: self._changed(VEHICLES, records),
                self._failed,
                filter={"id": self.vehicle_id},
            )
        )
        for collection in (OBLIGATIONS, ENTRIES, LOANS):
            self._unsubscribers.append(
                store.subscribe(
                    collection,
                    lambda records, c=collection: self._changed(c, records),
                    self._failed,
                    filter={"vehicleId": self.vehicle_id},
                )
            )
        self._publish()
        return self

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._started = False

    def __enter__(self) -> "VehicleWatch":
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _changed(self, collection: str, records: List[dict]) -> None:
        self._snapshots[collection] = records
        # Subscriptions deliver their initial snapshots one by one during start()
        if len(self._snapshots) == 4 and len(self._unsubscribers) == 4:
            self._publish()

    def _publish(self) -> None:
        vehicles = self._snapshots.get(VEHICLES) or []
        if not vehicles:
            self._failed(NotFoundError("vehicle", self.vehicle_id))
            return
        view = derive_vehicle_view(
            parse_vehicle(vehicles[0]),
            [parse_obligation(r) for r in self._snapshots.get(OBLIGATIONS, [])],
            [parse_entry(r) for r in self._snapshots.get(ENTRIES, [])],
            sorted(
                (parse_loan(r) for r in self._snapshots.get(LOANS, [])),
                key=lambda loan: loan.start_date,
            ),
            self.today(),
            self.service.settings,
        )
        self.view = view
        self.on_update(view)

    def _failed(self, error: Exception) -> None:
        logger.error("Watch on vehicle %s failed: %s", self.vehicle_id, error)
        if self.on_error is not None:
            self.on_error(error)
