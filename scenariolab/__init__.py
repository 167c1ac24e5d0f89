"""ScenarioLab: scenario-based database fixtures for integration tests."""

__version__ = "0.1.0"
