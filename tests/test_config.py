#!/usr/bin/env python3
"""Tests for settings loading."""
import pydantic
import pytest

from vehicle_ledger import Settings, ValidationError, load_settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(Settings.model_fields):
        monkeypatch.delenv("VEHICLE_LEDGER_" + name.upper(), raising=False)


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self):
        settings = load_settings()
        assert settings == Settings()
        assert settings.due_soon_days == 14
        assert settings.currency_symbol == "₹"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("dueSoonDays: 7\nrisingCostFactor: 2\nrequireAccountForCost: true\n")
        settings = load_settings(path)
        assert settings.due_soon_days == 7
        assert settings.rising_cost_factor == 2.0
        assert settings.require_account_for_cost is True

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("dueSoonDays: 7\ncurrencySymbol: $\n")
        monkeypatch.setenv("VEHICLE_LEDGER_DUE_SOON_DAYS", "3")
        monkeypatch.setenv("VEHICLE_LEDGER_LOG_LEVEL", "debug")
        settings = load_settings(path)
        assert settings.due_soon_days == 3
        assert settings.currency_symbol == "$"
        assert settings.log_level == "DEBUG"

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("colour: red\n")
        with pytest.raises(ValidationError) as exc:
            load_settings(path)
        assert exc.value.field == "colour"

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("VEHICLE_LEDGER_DUE_SOON_KM", "far")
        with pytest.raises(ValidationError) as exc:
            load_settings()
        assert exc.value.field == "due_soon_km"

    def test_negative_threshold(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("dueSoonDays: -1\n")
        with pytest.raises(ValidationError) as exc:
            load_settings(path)
        assert exc.value.field == "due_soon_days"

    def test_bad_boolean(self, monkeypatch):
        monkeypatch.setenv("VEHICLE_LEDGER_REQUIRE_ACCOUNT_FOR_COST", "maybe")
        with pytest.raises(ValidationError):
            load_settings()

    def test_bad_log_level(self, monkeypatch):
        monkeypatch.setenv("VEHICLE_LEDGER_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError) as exc:
            load_settings()
        assert exc.value.field == "log_level"

    def test_settings_are_frozen(self):
        settings = Settings()
        with pytest.raises(pydantic.ValidationError):
            settings.due_soon_days = 1
