"""Maintenance template catalogue, loaded from YAML and checked against a schema."""

from pathlib import Path
from typing import List, Optional, Union

import jsonschema
import yaml

from .errors import ValidationError
from .status import EntryCategory, TriggerKind

CATALOG_PATH = Path(__file__).parent / "catalog.yaml"
CATALOG_SCHEMA_PATH = Path(__file__).parent / "catalog_schema.yaml"


class ObligationTemplate:
    """A standard maintenance task that vehicles are seeded with."""

    def __init__(
        self,
        name: str,
        trigger: Optional[TriggerKind],
        interval_value: Optional[int] = None,
        interval_unit: Optional[str] = None,
        interval_km: Optional[int] = None,
        mandatory: bool = False,
        applicable: Optional[List[str]] = None,
        category: Optional[EntryCategory] = None,
    ):
        self.name = name
        self.trigger = trigger
        self.interval_value = interval_value
        self.interval_unit = interval_unit
        self.interval_km = interval_km
        self.mandatory = mandatory or False
        self.applicable = applicable
        self.category = category

    @property
    def ad_hoc(self) -> bool:
        """Ad-hoc templates have no trigger and are never seeded."""
        return self.trigger is None

    def applies_to(self, vehicle_type: str) -> bool:
        if not self.applicable:
            return True
        return vehicle_type in self.applicable


def _parse_template(dct: dict) -> ObligationTemplate:
    trigger = dct["trigger"]
    category = dct.get("category")
    return ObligationTemplate(
        dct["name"],
        None if trigger == "none" else TriggerKind(trigger),
        dct.get("intervalValue"),
        dct.get("intervalUnit"),
        dct.get("intervalKm"),
        dct.get("mandatory"),
        dct.get("applicable"),
        EntryCategory(category) if category else None,
    )


def load_catalog(filename: Optional[Union[str, Path]] = None) -> List[ObligationTemplate]:
    """Load templates from a catalogue YAML file (the bundled one by default)."""
    with open(CATALOG_SCHEMA_PATH) as fp:
        schema = yaml.safe_load(fp)
    with open(filename or CATALOG_PATH) as fp:
        data = yaml.safe_load(fp)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.path)
        raise ValidationError(f"invalid catalogue at {path or '<root>'}: {e.message}")
    return [_parse_template(t) for t in data["templates"]]


def seedable_templates(
    catalog: List[ObligationTemplate], vehicle_type: str
) -> List[ObligationTemplate]:
    """Templates that apply to a vehicle type and have a trigger."""
    return [t for t in catalog if not t.ad_hoc and t.applies_to(vehicle_type)]


def find_template(
    catalog: List[ObligationTemplate], name: str
) -> Optional[ObligationTemplate]:
    """Find a template by name (case-insensitive)."""
    for template in catalog:
        if template.name.lower() == name.lower():
            return template
    return None
