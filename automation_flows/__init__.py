"""Automation flow builder core."""

__version__ = "1.0.0"

from automation_flows.errors import (
    AutomationError,
    FlowValidationError,
    NodeNotFoundError,
    PersistenceError,
)
from automation_flows.flow import (
    FlowEditor,
    FlowGraph,
    FlowNode,
    FlowSession,
    NodeKind,
    resolve,
)

__all__ = [
    "AutomationError",
    "FlowValidationError",
    "NodeNotFoundError",
    "PersistenceError",
    "FlowEditor",
    "FlowGraph",
    "FlowNode",
    "FlowSession",
    "NodeKind",
    "resolve",
]
