"""Core infrastructure: config, database, logging, exceptions."""

from scenariolab.core.config import Settings, get_settings
from scenariolab.core.database import Base, get_engine, get_session_maker
from scenariolab.core.logging import get_logger, run_context, run_id_ctx

__all__ = [
    "Base",
    "Settings",
    "get_engine",
    "get_logger",
    "get_session_maker",
    "get_settings",
    "run_context",
    "run_id_ctx",
]
