"""Persistence for automation records."""

from typing import Optional

from automation_flows.config import Settings, get_settings
from automation_flows.storage.interface import AutomationStore
from automation_flows.storage.records import Automation, AutomationDraft, AutomationUpdate
from automation_flows.storage.backends.memory import MemoryAutomationStore
from automation_flows.storage.backends.sqlite import SQLiteAutomationStore


def create_store(settings: Optional[Settings] = None) -> AutomationStore:
    """Build the backend named by ``settings.storage_backend``."""
    settings = settings or get_settings()
    backend = settings.storage_backend.lower()

    if backend == "memory":
        return MemoryAutomationStore()
    if backend == "sqlite":
        return SQLiteAutomationStore(settings.database_url)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


__all__ = [
    "Automation",
    "AutomationDraft",
    "AutomationUpdate",
    "AutomationStore",
    "MemoryAutomationStore",
    "SQLiteAutomationStore",
    "create_store",
]
