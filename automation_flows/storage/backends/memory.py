"""In-memory storage backend."""

import itertools
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from automation_flows.errors import PersistenceError
from automation_flows.storage.interface import AutomationStore
from automation_flows.storage.records import Automation, AutomationDraft, AutomationUpdate


class MemoryAutomationStore(AutomationStore):
    """Dict-backed store; contents live as long as the instance."""

    def __init__(self):
        self._automations: Dict[str, Automation] = {}
        self._order: Dict[str, int] = {}
        self._counter = itertools.count()

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def create_automation(self, draft: AutomationDraft) -> Automation:
        now = datetime.utcnow()
        automation = Automation(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **draft.model_dump(),
        )
        self._automations[automation.id] = automation
        self._order[automation.id] = next(self._counter)
        return automation.model_copy(deep=True)

    async def update_automation(self, update: AutomationUpdate) -> Automation:
        current = self._require(update.id)
        changes = update.changes()
        changes["updated_at"] = datetime.utcnow()
        automation = current.model_copy(update=changes, deep=True)
        self._automations[automation.id] = automation
        return automation.model_copy(deep=True)

    async def get_automation(self, automation_id: str) -> Optional[Automation]:
        automation = self._automations.get(automation_id)
        return automation.model_copy(deep=True) if automation else None

    async def list_automations(self, active_only: bool = False) -> List[Automation]:
        automations = [
            a for a in self._automations.values()
            if a.is_active or not active_only
        ]
        automations.sort(key=lambda a: (a.created_at, self._order[a.id]), reverse=True)
        return [a.model_copy(deep=True) for a in automations]

    async def set_active(self, automation_id: str, is_active: bool) -> Automation:
        return await self.update_automation(AutomationUpdate(id=automation_id, is_active=is_active))

    async def delete_automation(self, automation_id: str) -> None:
        self._require(automation_id)
        del self._automations[automation_id]
        del self._order[automation_id]

    def _require(self, automation_id: str) -> Automation:
        automation = self._automations.get(automation_id)
        if automation is None:
            raise PersistenceError(f"Automation not found: {automation_id}")
        return automation
