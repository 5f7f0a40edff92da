"""
Pytest configuration and fixtures for the automation flow builder.
"""

import sys
import itertools
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from automation_flows.config import get_features, get_settings
from automation_flows.flow.editor import FlowEditor
from automation_flows.flow.graph import FlowGraph
from automation_flows.flow.nodes import NodeKind
from automation_flows.storage.backends.memory import MemoryAutomationStore


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings from the environment for every test."""
    get_settings.cache_clear()
    get_features.cache_clear()
    yield
    get_settings.cache_clear()
    get_features.cache_clear()


@pytest.fixture
def id_factory():
    """Deterministic ids: node_1, branch_2, node_3, ..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}_{next(counter)}"


@pytest.fixture
def editor(id_factory):
    """Permissive editor with predictable ids."""
    return FlowEditor(id_factory=id_factory)


@pytest.fixture
def strict_editor(id_factory):
    return FlowEditor(id_factory=id_factory, strict=True)


@pytest.fixture
def empty_graph():
    return FlowGraph()


@pytest.fixture
def three_node_graph(editor, empty_graph):
    """trigger -> message -> delay"""
    graph = editor.insert(empty_graph, NodeKind.TRIGGER, 0)
    graph = editor.insert(graph, NodeKind.MESSAGE, 1)
    graph = editor.insert(graph, NodeKind.DELAY, 2)
    return graph


@pytest.fixture
def every_kind_graph(editor, empty_graph):
    """One node of each kind, with representative configs."""
    graph = empty_graph
    for index, kind in enumerate(NodeKind):
        graph = editor.insert(graph, kind, index)

    configs = {
        NodeKind.TRIGGER: {"triggerType": "keyword", "keywords": "order, status"},
        NodeKind.MESSAGE: {"messageType": "text", "content": "Hi {{name}}"},
        NodeKind.CONDITION: {"conditionType": "has_tag", "condition": "vip"},
        NodeKind.DELAY: {"duration": 2, "unit": "hours"},
        NodeKind.ACTION: {"actionType": "add_tag", "actionValue": "lead"},
        NodeKind.API_CALL: {
            "method": "POST",
            "url": "https://api.example.com/orders",
            "headers": {"Authorization": "Bearer x"},
            "body": "{\"id\": 1}",
            "responseVariable": "order",
        },
        NodeKind.WEBHOOK: {"webhookUrl": "https://hooks.example.com", "secret": "s", "includeContact": True},
        NodeKind.SPLIT: {"splitRatio": 30, "trackConversion": True},
    }
    for node in list(graph):
        graph = editor.update(graph, node.id, {"config": configs[node.kind]})
    return graph


@pytest.fixture
def memory_store():
    return MemoryAutomationStore()
