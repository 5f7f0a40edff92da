"""Storage backend interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from automation_flows.storage.records import Automation, AutomationDraft, AutomationUpdate


class AutomationStore(ABC):
    """Abstract base class for automation storage backends.

    Backends raise :class:`automation_flows.errors.PersistenceError` for
    any failure, including updates, toggles and deletes of unknown ids.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the storage backend."""
        pass

    @abstractmethod
    async def create_automation(self, draft: AutomationDraft) -> Automation:
        """Store a new automation and return it with its assigned id."""
        pass

    @abstractmethod
    async def update_automation(self, update: AutomationUpdate) -> Automation:
        """Apply a partial update and return the stored automation."""
        pass

    @abstractmethod
    async def get_automation(self, automation_id: str) -> Optional[Automation]:
        """Load one automation, or None."""
        pass

    @abstractmethod
    async def list_automations(self, active_only: bool = False) -> List[Automation]:
        """List automations, newest first."""
        pass

    @abstractmethod
    async def set_active(self, automation_id: str, is_active: bool) -> Automation:
        """Activate or pause an automation."""
        pass

    @abstractmethod
    async def delete_automation(self, automation_id: str) -> None:
        """Delete an automation."""
        pass
