"""Exception types for the automation flow builder."""

from typing import List, Optional


class AutomationError(Exception):
    """Base class for automation flow errors."""


class FlowValidationError(AutomationError):
    """A flow or its record failed validation."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class NodeNotFoundError(AutomationError):
    """An editor operation referenced a node id that is not in the graph."""

    def __init__(self, node_id: str):
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id


class PersistenceError(AutomationError):
    """The storage backend could not complete an operation."""
