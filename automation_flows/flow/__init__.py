"""Automation flow graph: node registry, model, editor and trigger resolution."""

from automation_flows.flow.nodes import (
    NodeKind,
    NodeCategory,
    NodeType,
    NodeLibrary,
    describe,
    get_node_library,
)
from automation_flows.flow.graph import (
    FlowBranch,
    FlowNode,
    FlowGraph,
    serialize_graph,
    deserialize_graph,
    validate_graph,
)
from automation_flows.flow.editor import FlowEditor
from automation_flows.flow.trigger import (
    TriggerDefinition,
    resolve,
    match_keyword_triggers,
)
from automation_flows.flow.mapping import to_record, from_record
from automation_flows.flow.session import FlowSession, SaveResult, TestResult

__all__ = [
    # Registry
    "NodeKind",
    "NodeCategory",
    "NodeType",
    "NodeLibrary",
    "describe",
    "get_node_library",

    # Graph
    "FlowBranch",
    "FlowNode",
    "FlowGraph",
    "serialize_graph",
    "deserialize_graph",
    "validate_graph",

    # Editing
    "FlowEditor",
    "FlowSession",
    "SaveResult",
    "TestResult",

    # Triggers and records
    "TriggerDefinition",
    "resolve",
    "match_keyword_triggers",
    "to_record",
    "from_record",
]
