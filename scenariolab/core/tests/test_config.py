"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from scenariolab.core.config import Settings, get_settings


def test_settings_has_defaults():
    """Settings should have sensible defaults."""
    settings = Settings()

    assert settings.app_name == "ScenarioLab"
    assert settings.debug is False
    assert settings.log_level == "INFO"
    assert settings.log_format == "json"
    assert settings.scenario_registry == "scenariolab.catalog:build_registry"
    assert settings.scenario_unit_of_work == "scenariolab.catalog:CatalogUnitOfWork"


def test_settings_is_development_property():
    """is_development should return True for development env."""
    settings = Settings(app_env="development")
    assert settings.is_development is True
    assert settings.is_production is False


def test_settings_is_testing_property():
    """is_testing should return True for testing env."""
    settings = Settings(app_env="testing")
    assert settings.is_testing is True
    assert settings.is_development is False


def test_get_settings_returns_singleton():
    """get_settings should return cached singleton."""
    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2


def test_settings_from_environment(monkeypatch):
    """Settings should load from environment variables."""
    monkeypatch.setenv("SCENARIO_CACHE_DIR", "/tmp/scenario-cache")
    monkeypatch.setenv("SCENARIO_LOCK_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings()

    assert settings.scenario_cache_dir == "/tmp/scenario-cache"
    assert settings.scenario_lock_timeout_seconds == 5.0
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("value", [0, -1.5])
def test_lock_timeout_must_be_positive(value):
    """Non-positive lock timings are rejected."""
    with pytest.raises(ValidationError):
        Settings(scenario_lock_timeout_seconds=value)


@pytest.mark.parametrize("path", ["scenariolab.catalog", ":build_registry", "scenariolab.catalog:"])
def test_registry_path_requires_module_and_attribute(path):
    """Import paths must look like 'package.module:attribute'."""
    with pytest.raises(ValidationError, match="Invalid import path"):
        Settings(scenario_registry=path)
