# automation_flows/flow/editor.py
"""Structural edits on a flow graph.

Every operation takes a graph and returns a new one; the input is never
touched. Positions are renumbered before each operation returns, so
``graph.at(i).position == i`` always holds on the result.
"""

import copy
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

import structlog

from automation_flows.config import Features, get_features
from automation_flows.errors import FlowValidationError, NodeNotFoundError
from automation_flows.flow.graph import FlowBranch, FlowGraph, FlowNode
from automation_flows.flow.nodes import (
    DEFAULT_SPLIT_RATIO,
    NodeKind,
    NodeLibrary,
    clamp_split_ratio,
    get_node_library,
    split_branch_labels,
)

logger = structlog.get_logger(__name__)

IdFactory = Callable[[str], str]

EDITABLE_FIELDS = ("title", "config")
COPY_SUFFIX = " (Copy)"


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class FlowEditor:
    """The only surface that mutates flow structure.

    With ``strict=False`` (the default) an unknown node id is a logged
    no-op; callers are expected to pass ids that exist. With
    ``strict=True`` the same situation raises :class:`NodeNotFoundError`.
    """

    def __init__(
        self,
        id_factory: Optional[IdFactory] = None,
        strict: bool = False,
        library: Optional[NodeLibrary] = None,
        default_split_ratio: int = DEFAULT_SPLIT_RATIO,
    ):
        self._new_id = id_factory or generate_id
        self.strict = strict
        self.library = library or get_node_library()
        self.default_split_ratio = clamp_split_ratio(default_split_ratio)

    @classmethod
    def from_features(cls, features: Optional[Features] = None, **kwargs) -> "FlowEditor":
        """Build an editor from the configured switches.

        Keyword arguments win over the settings, so callers can pin e.g.
        ``strict=True`` while still picking up ``default_split_ratio``.
        """
        features = features or get_features()
        kwargs.setdefault("strict", features.strict_editing)
        kwargs.setdefault("default_split_ratio", features.default_split_ratio)
        return cls(**kwargs)

    # ------------------------------------------------------------------
    # Node construction
    # ------------------------------------------------------------------

    def create_node(self, kind: Union[NodeKind, str], position: int = 0) -> FlowNode:
        """Build a fresh node from the registry defaults for ``kind``."""
        node_type = self.library.describe(kind)
        node = FlowNode(
            id=self._new_id("node"),
            kind=node_type.kind,
            title=node_type.label,
            config=node_type.default_config(self.default_split_ratio),
            position=position,
        )
        if node_type.has_branches:
            labels = node_type.branch_labels(node.config)
            node.branches = [
                FlowBranch(id=self._new_id("branch"), label=labels[0], condition="true"),
                FlowBranch(id=self._new_id("branch"), label=labels[1], condition="false"),
            ]
        return node

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def insert(self, graph: FlowGraph, kind: Union[NodeKind, str], at_index: int) -> FlowGraph:
        """Splice a new node of ``kind`` in at ``at_index`` (clamped)."""
        nodes = self._copy_nodes(graph)
        index = max(0, min(at_index, len(nodes)))

        node = self.create_node(kind, position=index)
        nodes.insert(index, node)

        logger.debug("node_inserted", node_id=node.id, kind=node.kind.value, position=index)
        return self._finish(nodes)

    def update(self, graph: FlowGraph, node_id: str, patch: Dict[str, Any]) -> FlowGraph:
        """Shallow-merge ``title`` and/or ``config`` into a node.

        ``config`` replaces the node's config map as a whole. The node's id,
        kind, position and branches cannot be changed through a patch.
        """
        index = graph.index_of(node_id)
        if index < 0:
            return self._missing(graph, node_id, "update")

        ignored = sorted(key for key in patch if key not in EDITABLE_FIELDS)
        if ignored:
            logger.warning("node_patch_fields_ignored", node_id=node_id, fields=ignored)

        nodes = self._copy_nodes(graph)
        node = nodes[index]

        if "title" in patch and patch["title"] is not None:
            node.title = str(patch["title"])
        if "config" in patch and patch["config"] is not None:
            node.config = copy.deepcopy(dict(patch["config"]))

        if node.kind == NodeKind.SPLIT:
            self._sync_split(node, node.config.get("splitRatio"))

        logger.debug("node_updated", node_id=node_id)
        return self._finish(nodes)

    def delete(self, graph: FlowGraph, node_id: str) -> FlowGraph:
        """Remove a node; any branches it owns go with it."""
        index = graph.index_of(node_id)
        if index < 0:
            return self._missing(graph, node_id, "delete")

        nodes = self._copy_nodes(graph)
        del nodes[index]

        logger.debug("node_deleted", node_id=node_id, position=index)
        return self._finish(nodes)

    def duplicate(self, graph: FlowGraph, node_id: str) -> FlowGraph:
        """Insert a copy of a node directly after it."""
        index = graph.index_of(node_id)
        if index < 0:
            return self._missing(graph, node_id, "duplicate")

        nodes = self._copy_nodes(graph)
        clone = copy.deepcopy(nodes[index])
        clone.title = f"{clone.title}{COPY_SUFFIX}"
        self._reassign_ids(clone)
        nodes.insert(index + 1, clone)

        logger.debug("node_duplicated", node_id=node_id, clone_id=clone.id, position=index + 1)
        return self._finish(nodes)

    def move(self, graph: FlowGraph, node_id: str, to_index: int) -> FlowGraph:
        """Drag-reorder a node to ``to_index`` (clamped)."""
        index = graph.index_of(node_id)
        if index < 0:
            return self._missing(graph, node_id, "move")

        nodes = self._copy_nodes(graph)
        node = nodes.pop(index)
        target = max(0, min(to_index, len(nodes)))
        nodes.insert(target, node)

        logger.debug("node_moved", node_id=node_id, from_position=index, to_position=target)
        return self._finish(nodes)

    def set_split_ratio(self, graph: FlowGraph, node_id: str, ratio: Any) -> FlowGraph:
        """Clamp ``ratio`` into [1, 99] and relabel the split's two paths."""
        index = graph.index_of(node_id)
        if index < 0:
            return self._missing(graph, node_id, "set_split_ratio")

        if graph.at(index).kind != NodeKind.SPLIT:
            if self.strict:
                raise FlowValidationError(f"Node {node_id} is not a split node")
            logger.warning("split_ratio_on_non_split_node", node_id=node_id)
            return graph

        nodes = self._copy_nodes(graph)
        node = nodes[index]
        self._sync_split(node, ratio)

        logger.debug("split_ratio_set", node_id=node_id, ratio=node.config["splitRatio"])
        return self._finish(nodes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sync_split(self, node: FlowNode, ratio: Any):
        """Keep a split node's ratio and branch labels consistent."""
        if ratio is None:
            ratio = node.config.get("splitRatio")
        clamped = clamp_split_ratio(ratio)
        node.config["splitRatio"] = clamped
        label_a, label_b = split_branch_labels(clamped)

        branches = node.branches or []
        if len(branches) == 2 and all(branch is not None for branch in branches):
            branches[0].label = label_a
            branches[1].label = label_b
        else:
            node.branches = [
                FlowBranch(id=f"{node.id}_path_a", label=label_a, condition="true"),
                FlowBranch(id=f"{node.id}_path_b", label=label_b, condition="false"),
            ]

    def _reassign_ids(self, node: FlowNode):
        node.id = self._new_id("node")
        for branch in node.branches or []:
            branch.id = self._new_id("branch")
            for child in branch.nodes.nodes:
                self._reassign_ids(child)

    def _missing(self, graph: FlowGraph, node_id: str, operation: str) -> FlowGraph:
        if self.strict:
            raise NodeNotFoundError(node_id)
        logger.warning("node_not_found", node_id=node_id, operation=operation)
        return graph

    @staticmethod
    def _copy_nodes(graph: FlowGraph) -> List[FlowNode]:
        return copy.deepcopy(graph.nodes)

    @staticmethod
    def _finish(nodes: List[FlowNode]) -> FlowGraph:
        for position, node in enumerate(nodes):
            node.position = position
        return FlowGraph(nodes=nodes)


_default_editor: Optional[FlowEditor] = None


def _editor() -> FlowEditor:
    global _default_editor
    if _default_editor is None:
        _default_editor = FlowEditor()
    return _default_editor


def insert(graph: FlowGraph, kind: Union[NodeKind, str], at_index: int) -> FlowGraph:
    return _editor().insert(graph, kind, at_index)


def update(graph: FlowGraph, node_id: str, patch: Dict[str, Any]) -> FlowGraph:
    return _editor().update(graph, node_id, patch)


def delete(graph: FlowGraph, node_id: str) -> FlowGraph:
    return _editor().delete(graph, node_id)


def duplicate(graph: FlowGraph, node_id: str) -> FlowGraph:
    return _editor().duplicate(graph, node_id)


def move(graph: FlowGraph, node_id: str, to_index: int) -> FlowGraph:
    return _editor().move(graph, node_id, to_index)


def set_split_ratio(graph: FlowGraph, node_id: str, ratio: Any) -> FlowGraph:
    return _editor().set_split_ratio(graph, node_id, ratio)
