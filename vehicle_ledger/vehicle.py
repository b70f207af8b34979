"""Vehicle class for owned vehicle identification and odometer state."""

from typing import Optional


class Vehicle:
    """An owned vehicle. Odometer readings only ever move forward."""

    def __init__(
        self,
        owner_id: str,
        name: str,
        type: str = "car",
        odometer: int = 0,
        purchase_date: Optional[str] = None,
        brand_model: Optional[str] = None,
        reg_number: Optional[str] = None,
        fuel_type: Optional[str] = None,
        archived: bool = False,
        id: Optional[str] = None,
        version: int = 0,
    ):
        self.id = id
        self.owner_id = owner_id
        self.name = name
        self.type = type
        self.odometer = int(odometer or 0)
        self.purchase_date = purchase_date
        self.brand_model = brand_model
        self.reg_number = reg_number
        self.fuel_type = fuel_type
        self.archived = archived or False
        self.version = version

    @property
    def display_name(self) -> str:
        """Human-readable vehicle name."""
        if self.brand_model:
            return f"{self.name} ({self.brand_model})"
        return self.name
