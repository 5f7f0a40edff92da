"""Storage backend implementations."""

from automation_flows.storage.backends.memory import MemoryAutomationStore
from automation_flows.storage.backends.sqlite import SQLiteAutomationStore

__all__ = ["MemoryAutomationStore", "SQLiteAutomationStore"]
