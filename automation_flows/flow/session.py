# automation_flows/flow/session.py
"""Single-owner editing session for one automation flow."""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import structlog

from automation_flows.config import get_features
from automation_flows.errors import FlowValidationError, PersistenceError
from automation_flows.flow.editor import FlowEditor
from automation_flows.flow.graph import FlowGraph, FlowNode, deserialize_graph, serialize_graph
from automation_flows.flow.mapping import to_record
from automation_flows.flow.nodes import NodeKind
from automation_flows.storage.interface import AutomationStore
from automation_flows.storage.records import Automation, AutomationDraft

logger = structlog.get_logger(__name__)


@dataclass
class SaveResult:
    """Outcome of handing a flow to the store."""
    success: bool
    automation: Optional[Automation] = None
    error: Optional[str] = None


@dataclass
class TestResult:
    """Outcome of a dry run. Nothing is sent or stored."""
    __test__ = False

    success: bool
    execution_id: Optional[str] = None
    nodes_processed: int = 0
    error: Optional[str] = None


class FlowSession:
    """Owns one graph while it is being edited.

    Every structural change goes through the session's :class:`FlowEditor`.
    The session additionally tracks which node is open in the node editor
    dialog and whether there are unsaved changes.
    """

    def __init__(
        self,
        name: str = "",
        graph: Optional[FlowGraph] = None,
        automation_id: Optional[str] = None,
        description: Optional[str] = None,
        editor: Optional[FlowEditor] = None,
        reject_multiple_triggers: Optional[bool] = None,
    ):
        self.name = name
        self.description = description
        self.graph = graph or FlowGraph()
        self.automation_id = automation_id
        self.editor = editor or FlowEditor.from_features()
        if reject_multiple_triggers is None:
            reject_multiple_triggers = get_features().reject_multiple_triggers
        self.reject_multiple_triggers = reject_multiple_triggers
        self.editing_node: Optional[FlowNode] = None
        self.dirty = False

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def insert(self, kind: Union[NodeKind, str], at_index: Optional[int] = None) -> FlowNode:
        """Add a node and open it for editing. Appends when no index is given."""
        if at_index is None:
            at_index = len(self.graph)
        index = max(0, min(at_index, len(self.graph)))

        self._replace(self.editor.insert(self.graph, kind, index))
        self.editing_node = self.graph.at(index)
        return self.editing_node

    def update(self, node_id: str, patch: Dict[str, Any]) -> None:
        self._replace(self.editor.update(self.graph, node_id, patch))
        self._refresh_editing_node()

    def delete(self, node_id: str) -> None:
        self._replace(self.editor.delete(self.graph, node_id))
        if self.editing_node is not None and self.editing_node.id == node_id:
            self.editing_node = None

    def duplicate(self, node_id: str) -> Optional[FlowNode]:
        """Copy a node; returns the copy, or None if ``node_id`` is unknown."""
        index = self.graph.index_of(node_id)
        self._replace(self.editor.duplicate(self.graph, node_id))
        if index < 0:
            return None
        return self.graph.at(index + 1)

    def move(self, node_id: str, to_index: int) -> Optional[FlowNode]:
        """Reorder a node; returns it at its new position, or None if unknown."""
        self._replace(self.editor.move(self.graph, node_id, to_index))
        self._refresh_editing_node()
        return self.graph.find(node_id)

    def set_split_ratio(self, node_id: str, ratio: Any) -> None:
        self._replace(self.editor.set_split_ratio(self.graph, node_id, ratio))
        self._refresh_editing_node()

    # ------------------------------------------------------------------
    # Node editor dialog
    # ------------------------------------------------------------------

    def open_node(self, node_id: str) -> Optional[FlowNode]:
        self.editing_node = self.graph.find(node_id)
        return self.editing_node

    def close_node(self) -> None:
        self.editing_node = None

    def apply_node_edit(self, node: FlowNode) -> None:
        """Apply the node returned by the dialog, then close it."""
        self.update(node.id, {"title": node.title, "config": node.config})
        self.close_node()

    # ------------------------------------------------------------------
    # Save / test
    # ------------------------------------------------------------------

    def build_record(self):
        if not self.name or not self.name.strip():
            raise FlowValidationError("Flow name is required")

        return to_record(
            self.name.strip(),
            self.graph,
            automation_id=self.automation_id,
            description=self.description,
            reject_multiple_triggers=self.reject_multiple_triggers,
        )

    async def save(self, store: AutomationStore) -> SaveResult:
        """Persist the flow. Creates the record on first save, updates after.

        Validation problems raise :class:`FlowValidationError`; storage
        failures are logged and returned as an unsuccessful result.
        """
        record = self.build_record()

        try:
            if isinstance(record, AutomationDraft):
                automation = await store.create_automation(record)
                self.automation_id = automation.id
            else:
                automation = await store.update_automation(record)
        except PersistenceError as e:
            logger.error(
                "automation_save_failed",
                automation_id=self.automation_id,
                name=self.name,
                error=str(e),
            )
            return SaveResult(success=False, error=str(e))

        self.dirty = False
        logger.info(
            "automation_saved",
            automation_id=automation.id,
            trigger_type=automation.trigger_type,
            nodes=len(self.graph),
        )
        return SaveResult(success=True, automation=automation)

    def dry_run(self) -> TestResult:
        """Check the flow could run, without side effects."""
        if len(self.graph) == 0:
            return TestResult(success=False, error="No nodes defined in automation flow")

        if not self.graph.trigger_nodes():
            return TestResult(success=False, error="Flow must have a trigger node")

        result = TestResult(
            success=True,
            execution_id=f"test_{int(time.time() * 1000)}",
            nodes_processed=len(self.graph),
        )
        logger.info("automation_dry_run", nodes_processed=result.nodes_processed)
        return result

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_record(cls, automation: Automation, **kwargs) -> "FlowSession":
        return cls(
            name=automation.name,
            graph=deserialize_graph(automation.flow_data),
            automation_id=automation.id,
            description=automation.description,
            **kwargs,
        )

    def to_document(self) -> Dict[str, Any]:
        """Flow-file representation used by the CLI."""
        return {
            "name": self.name,
            "description": self.description,
            "automation_id": self.automation_id,
            "nodes": serialize_graph(self.graph),
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any], **kwargs) -> "FlowSession":
        if not isinstance(data, dict):
            raise FlowValidationError("Flow document must be a mapping")
        return cls(
            name=data.get("name", ""),
            description=data.get("description"),
            graph=deserialize_graph(data.get("nodes") or []),
            automation_id=data.get("automation_id"),
            **kwargs,
        )

    def _replace(self, graph: FlowGraph) -> None:
        if graph is not self.graph:
            self.graph = graph
            self.dirty = True

    def _refresh_editing_node(self) -> None:
        if self.editing_node is not None:
            self.editing_node = self.graph.find(self.editing_node.id)
