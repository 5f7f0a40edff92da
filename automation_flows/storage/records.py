"""Pydantic models for stored automations."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AutomationDraft(BaseModel):
    """Fields for creating an automation."""
    name: str
    description: Optional[str] = None
    trigger_type: str = "manual"
    trigger_config: Dict[str, Any] = Field(default_factory=dict)
    flow_data: List[Dict[str, Any]] = Field(default_factory=list)
    is_active: bool = False


class AutomationUpdate(BaseModel):
    """Partial update; fields left as None are not touched."""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    trigger_type: Optional[str] = None
    trigger_config: Optional[Dict[str, Any]] = None
    flow_data: Optional[List[Dict[str, Any]]] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)


class Automation(BaseModel):
    """A stored automation."""
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = False
    executions_count: int = 0
    last_executed_at: Optional[datetime] = None
    trigger_type: str = "manual"
    trigger_config: Dict[str, Any] = Field(default_factory=dict)
    flow_data: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
