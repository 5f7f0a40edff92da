# automation_flows/flow/graph.py
"""Flow data models for automation flows."""

import copy
from dataclasses import dataclass, field
from typing import Dict, Any, Iterator, List, Optional, Set

from automation_flows.errors import FlowValidationError
from automation_flows.flow.nodes import (
    BRANCHING_KINDS,
    MAX_SPLIT_RATIO,
    MIN_SPLIT_RATIO,
    NodeKind,
    split_branch_labels,
)


def _require_id(data: Any, what: str) -> None:
    if not isinstance(data, dict):
        raise FlowValidationError(f"{what} must be a mapping, got {type(data).__name__}")
    if not data.get("id"):
        raise FlowValidationError(f"{what} has no id")


@dataclass
class FlowBranch:
    """One of the two outcomes of a condition or split node."""
    id: str
    label: str
    condition: str
    nodes: "FlowGraph" = field(default_factory=lambda: FlowGraph())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "condition": self.condition,
            "nodes": self.nodes.to_list(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlowBranch":
        _require_id(data, "Branch")
        return cls(
            id=data["id"],
            label=data.get("label", ""),
            condition=data.get("condition", ""),
            nodes=FlowGraph.from_list(data.get("nodes") or []),
        )


@dataclass
class FlowNode:
    """A single step in an automation flow."""
    id: str
    kind: NodeKind
    title: str
    config: Dict[str, Any] = field(default_factory=dict)
    position: int = 0
    branches: Optional[List[FlowBranch]] = None

    @property
    def has_branches(self) -> bool:
        return self.kind in BRANCHING_KINDS

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.kind.value,
            "title": self.title,
            "config": copy.deepcopy(self.config),
            "position": self.position,
        }
        if self.branches is not None:
            data["branches"] = [branch.to_dict() for branch in self.branches]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], position: int = 0) -> "FlowNode":
        _require_id(data, f"Node at position {position}")
        try:
            kind = NodeKind(data["type"])
        except (KeyError, ValueError):
            raise FlowValidationError(
                f"Node {data.get('id', '?')} has unknown type: {data.get('type')!r}"
            )

        branches = None
        if data.get("branches") is not None:
            if not isinstance(data["branches"], list):
                raise FlowValidationError(f"Node {data['id']} branches must be a list")
            branches = [FlowBranch.from_dict(b) for b in data["branches"]]

        return cls(
            id=data["id"],
            kind=kind,
            title=data.get("title", ""),
            config=copy.deepcopy(data.get("config") or {}),
            position=data.get("position", position),
            branches=branches,
        )


@dataclass
class FlowGraph:
    """Ordered sequence of nodes making up one automation's body.

    Read-only by convention; all structural changes go through
    :class:`automation_flows.flow.editor.FlowEditor`.
    """
    nodes: List[FlowNode] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[FlowNode]:
        return iter(self.nodes)

    def at(self, index: int) -> FlowNode:
        """Get node at a position."""
        return self.nodes[index]

    def find(self, node_id: str) -> Optional[FlowNode]:
        """Get node by ID."""
        return next((node for node in self.nodes if node.id == node_id), None)

    def index_of(self, node_id: str) -> int:
        """Position of a node, or -1."""
        for index, node in enumerate(self.nodes):
            if node.id == node_id:
                return index
        return -1

    def trigger_nodes(self) -> List[FlowNode]:
        return [node for node in self.nodes if node.kind == NodeKind.TRIGGER]

    def all_ids(self) -> List[str]:
        """Every node and branch id, including nested branch flows."""
        ids = []
        for node in self.nodes:
            ids.append(node.id)
            for branch in node.branches or []:
                ids.append(branch.id)
                ids.extend(branch.nodes.all_ids())
        return ids

    def to_list(self) -> List[Dict[str, Any]]:
        return [node.to_dict() for node in self.nodes]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> "FlowGraph":
        return cls(nodes=[
            FlowNode.from_dict(item, position=index)
            for index, item in enumerate(data)
        ])


def serialize_graph(graph: FlowGraph) -> List[Dict[str, Any]]:
    """Convert a graph to the JSON-ready shape stored as ``flow_data``."""
    return graph.to_list()


def deserialize_graph(data: Optional[List[Dict[str, Any]]]) -> FlowGraph:
    """Rebuild a graph from stored ``flow_data``."""
    if not data:
        return FlowGraph()
    if not isinstance(data, list):
        raise FlowValidationError("flow_data must be a list of nodes")
    return FlowGraph.from_list(data)


def validate_graph(graph: FlowGraph) -> List[str]:
    """Check structural invariants and return a list of problems."""
    errors = []
    seen: Set[str] = set()
    _validate_sequence(graph, errors, seen, path="")
    return errors


def _validate_sequence(graph: FlowGraph, errors: List[str], seen: Set[str], path: str):
    for index, node in enumerate(graph.nodes):
        where = f"{path}nodes[{index}]"

        if node.position != index:
            errors.append(f"{where} ({node.id}) has position {node.position}, expected {index}")

        if node.id in seen:
            errors.append(f"Duplicate id: {node.id}")
        seen.add(node.id)

        if node.kind in BRANCHING_KINDS:
            if node.branches is None or len(node.branches) != 2 or any(b is None for b in node.branches):
                errors.append(f"{where} ({node.id}) must have exactly 2 branches")
                continue
        elif node.branches is not None:
            errors.append(f"{where} ({node.id}) is a {node.kind.value} node and cannot have branches")
            continue

        if node.kind == NodeKind.SPLIT:
            ratio = node.config.get("splitRatio")
            if not isinstance(ratio, int) or not MIN_SPLIT_RATIO <= ratio <= MAX_SPLIT_RATIO:
                errors.append(f"{where} ({node.id}) splitRatio {ratio!r} is outside [1, 99]")
            else:
                expected = split_branch_labels(ratio)
                actual = tuple(branch.label for branch in node.branches)
                if actual != expected:
                    errors.append(f"{where} ({node.id}) branch labels {actual} do not match ratio {ratio}")

        for b_index, branch in enumerate(node.branches or []):
            if branch.id in seen:
                errors.append(f"Duplicate id: {branch.id}")
            seen.add(branch.id)
            _validate_sequence(branch.nodes, errors, seen, path=f"{where}.branches[{b_index}].")
