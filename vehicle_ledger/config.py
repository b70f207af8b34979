"""
Settings for the ownership ledger.

Defaults can be overridden from a YAML file (camelCase keys) and then from
environment variables named VEHICLE_LEDGER_<FIELD>, e.g.
VEHICLE_LEDGER_DUE_SOON_DAYS=7.
"""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ValidationError

ENV_PREFIX = "VEHICLE_LEDGER_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Thresholds and knobs used by the ledger core."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="forbid", frozen=True)

    due_soon_days: int = Field(default=14, ge=0, description="Days ahead an item counts as due soon")
    due_soon_km: int = Field(default=500, ge=0, description="Kilometres ahead an item counts as due soon")
    insurance_warning_days: int = Field(default=15, ge=0)
    rising_cost_factor: float = Field(
        default=1.5, gt=0, description="This month vs last month ratio that raises a cost risk"
    )
    rising_cost_floor: float = Field(default=2000, ge=0)
    prepayment_max_months: int = Field(default=120, ge=1)
    finance_category_id: str = "cat_vehicle"
    currency_symbol: str = "₹"
    require_account_for_cost: bool = False
    log_level: str = "INFO"
    catalog_path: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"invalid log level: {v}")
        return level

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        # Environment wins over values read from the settings file
        return env_settings, init_settings


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Build Settings from defaults, an optional YAML file and the environment."""
    overrides = {}
    if path is not None:
        with open(path) as fp:
            data = yaml.safe_load(fp) or {}
        overrides = {to_snake(key): value for key, value in data.items()}

    try:
        return Settings(**overrides)
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else None
        raise ValidationError(f"invalid setting {field}: {error['msg']}", field) from e
