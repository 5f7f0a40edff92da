"""
Comprehensive test coverage for automation_flows.flow.editor.

Tests cover:
- insert / update / delete / duplicate / move / set_split_ratio
- position contiguity after every operation
- branch arity and id uniqueness
- permissive vs strict handling of unknown ids
- inputs are never mutated
"""

import copy
import random

import pytest

from automation_flows.config import Features, Settings, get_features, get_settings
from automation_flows.errors import FlowValidationError, NodeNotFoundError
from automation_flows.flow import editor as editor_module
from automation_flows.flow.editor import FlowEditor
from automation_flows.flow.graph import FlowBranch, FlowGraph, FlowNode, validate_graph
from automation_flows.flow.nodes import NodeKind


def positions(graph):
    return [node.position for node in graph]


def ids(graph):
    return [node.id for node in graph]


def assert_contiguous(graph):
    assert positions(graph) == list(range(len(graph)))


# ============================================================================
# INSERT
# ============================================================================

class TestInsert:

    def test_insert_trigger_into_empty_graph(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.TRIGGER, 0)

        assert len(graph) == 1
        node = graph.at(0)
        assert node.position == 0
        assert node.kind == NodeKind.TRIGGER
        assert node.title == "Trigger"
        assert node.config == {}
        assert node.branches is None

    def test_insert_at_front_shifts_existing(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.TRIGGER, 0)
        original = graph.at(0).id

        graph = editor.insert(graph, NodeKind.MESSAGE, 0)

        assert [n.kind for n in graph] == [NodeKind.MESSAGE, NodeKind.TRIGGER]
        assert graph.at(1).id == original
        assert_contiguous(graph)

    def test_insert_split_creates_branches(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.SPLIT, 0)
        node = graph.at(0)

        assert node.config["splitRatio"] == 50
        assert len(node.branches) == 2
        assert [b.label for b in node.branches] == ["Path A (50%)", "Path B (50%)"]
        assert [b.condition for b in node.branches] == ["true", "false"]
        assert all(len(b.nodes) == 0 for b in node.branches)

    def test_insert_split_uses_editor_default_ratio(self, id_factory, empty_graph):
        editor = FlowEditor(id_factory=id_factory, default_split_ratio=70)
        node = editor.insert(empty_graph, NodeKind.SPLIT, 0).at(0)

        assert node.config == {"splitRatio": 70}
        assert [b.label for b in node.branches] == ["Path A (70%)", "Path B (30%)"]

    def test_editor_default_ratio_is_clamped(self):
        assert FlowEditor(default_split_ratio=150).default_split_ratio == 99

    def test_insert_condition_creates_yes_no(self, editor, empty_graph):
        node = editor.insert(empty_graph, NodeKind.CONDITION, 0).at(0)
        assert [b.label for b in node.branches] == ["Yes", "No"]
        assert node.branches[0].id != node.branches[1].id

    @pytest.mark.parametrize("index,expected", [(-3, 0), (99, 3)])
    def test_insert_index_is_clamped(self, editor, three_node_graph, index, expected):
        graph = editor.insert(three_node_graph, NodeKind.ACTION, index)
        assert graph.at(expected).kind == NodeKind.ACTION
        assert_contiguous(graph)

    def test_insert_accepts_string_kind(self, editor, empty_graph):
        assert editor.insert(empty_graph, "webhook", 0).at(0).kind == NodeKind.WEBHOOK

    def test_default_ids_are_unique(self, empty_graph):
        default_editor = FlowEditor()
        graph = empty_graph
        for _ in range(20):
            graph = default_editor.insert(graph, NodeKind.CONDITION, 0)
        all_ids = graph.all_ids()
        assert len(all_ids) == len(set(all_ids)) == 60


# ============================================================================
# UPDATE
# ============================================================================

class TestUpdate:

    def test_update_title_and_config(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "node_2", {
            "title": "Welcome",
            "config": {"messageType": "text", "content": "Hello"},
        })
        node = graph.find("node_2")
        assert node.title == "Welcome"
        assert node.config == {"messageType": "text", "content": "Hello"}

    def test_update_config_replaces_whole_map(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "node_2", {"config": {"content": "a", "messageType": "text"}})
        graph = editor.update(graph, "node_2", {"config": {"content": "b"}})
        assert graph.find("node_2").config == {"content": "b"}

    def test_update_title_only_keeps_config(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "node_2", {"config": {"content": "a"}})
        graph = editor.update(graph, "node_2", {"title": "Renamed"})
        assert graph.find("node_2").config == {"content": "a"}

    def test_update_cannot_change_identity_fields(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "node_2", {
            "id": "hijack", "type": "trigger", "kind": "trigger", "position": 7, "title": "Ok",
        })
        node = graph.at(1)
        assert node.id == "node_2"
        assert node.kind == NodeKind.MESSAGE
        assert node.position == 1
        assert node.title == "Ok"

    def test_update_unknown_id_is_noop(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "missing", {"title": "x"})
        assert graph == three_node_graph

    def test_update_split_ratio_via_config_relabels(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.SPLIT, 0)
        graph = editor.update(graph, "node_1", {"config": {"splitRatio": 150, "trackConversion": True}})
        node = graph.at(0)
        assert node.config == {"splitRatio": 99, "trackConversion": True}
        assert [b.label for b in node.branches] == ["Path A (99%)", "Path B (1%)"]

    def test_update_split_without_ratio_restores_default(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.SPLIT, 0)
        graph = editor.update(graph, "node_1", {"config": {"trackConversion": False}})
        assert graph.at(0).config["splitRatio"] == 50
        assert validate_graph(graph) == []


# ============================================================================
# DELETE
# ============================================================================

class TestDelete:

    def test_delete_middle(self, editor, three_node_graph):
        graph = editor.delete(three_node_graph, "node_2")
        assert ids(graph) == ["node_1", "node_3"]
        assert positions(graph) == [0, 1]

    def test_delete_branch_bearing_node_removes_branches(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.CONDITION, 0)
        graph = editor.delete(graph, "node_1")
        assert len(graph) == 0
        assert graph.all_ids() == []

    def test_delete_unknown_id_is_noop(self, editor, three_node_graph):
        assert editor.delete(three_node_graph, "missing") == three_node_graph


# ============================================================================
# DUPLICATE
# ============================================================================

class TestDuplicate:

    def test_duplicate_placement(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "node_2", {"config": {"content": "hi"}})
        result = editor.duplicate(graph, "node_2")

        assert len(result) == 4
        clone = result.at(2)
        assert clone.id not in ids(graph)
        assert clone.title == "Send Message (Copy)"
        assert clone.kind == NodeKind.MESSAGE
        assert clone.config == {"content": "hi"}
        assert result.at(3).id == "node_3"
        assert result.at(3).position == graph.find("node_3").position + 1
        assert_contiguous(result)

    def test_duplicate_config_is_independent(self, editor, three_node_graph):
        graph = editor.update(three_node_graph, "node_2", {"config": {"tags": ["a"]}})
        result = editor.duplicate(graph, "node_2")
        result.at(2).config["tags"].append("b")
        assert result.at(1).config["tags"] == ["a"]

    def test_duplicate_split_gets_fresh_branch_ids(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.SPLIT, 0)
        graph = editor.set_split_ratio(graph, "node_1", 70)
        result = editor.duplicate(graph, "node_1")

        original, clone = result.at(0), result.at(1)
        assert [b.label for b in clone.branches] == ["Path A (70%)", "Path B (30%)"]
        assert {b.id for b in clone.branches}.isdisjoint({b.id for b in original.branches})
        assert validate_graph(result) == []

    def test_duplicate_unknown_id_is_noop(self, editor, three_node_graph):
        assert editor.duplicate(three_node_graph, "missing") == three_node_graph


# ============================================================================
# MOVE
# ============================================================================

class TestMove:

    def test_move_to_end(self, editor, three_node_graph):
        graph = editor.move(three_node_graph, "node_1", 2)
        assert ids(graph) == ["node_2", "node_3", "node_1"]
        assert_contiguous(graph)

    def test_move_to_front(self, editor, three_node_graph):
        graph = editor.move(three_node_graph, "node_3", 0)
        assert ids(graph) == ["node_3", "node_1", "node_2"]

    def test_move_to_current_index_is_noop(self, editor, three_node_graph):
        for index, node in enumerate(three_node_graph):
            assert editor.move(three_node_graph, node.id, index) == three_node_graph

    def test_move_index_is_clamped(self, editor, three_node_graph):
        assert ids(editor.move(three_node_graph, "node_1", 50)) == ["node_2", "node_3", "node_1"]
        assert ids(editor.move(three_node_graph, "node_3", -1)) == ["node_3", "node_1", "node_2"]

    def test_move_unknown_id_is_noop(self, editor, three_node_graph):
        assert editor.move(three_node_graph, "missing", 0) == three_node_graph


# ============================================================================
# SPLIT RATIO
# ============================================================================

class TestSetSplitRatio:

    def test_set_ratio(self, editor, empty_graph):
        graph = editor.insert(empty_graph, NodeKind.SPLIT, 0)
        branch_ids = [b.id for b in graph.at(0).branches]

        graph = editor.set_split_ratio(graph, "node_1", 70)
        node = graph.at(0)

        assert node.config["splitRatio"] == 70
        assert [b.label for b in node.branches] == ["Path A (70%)", "Path B (30%)"]
        assert [b.id for b in node.branches] == branch_ids

    @pytest.mark.parametrize("ratio,expected", [(0, 1), (100, 99), (-20, 1), (1000, 99)])
    def test_ratio_is_clamped(self, editor, empty_graph, ratio, expected):
        graph = editor.insert(empty_graph, NodeKind.SPLIT, 0)
        graph = editor.set_split_ratio(graph, "node_1", ratio)
        assert graph.at(0).config["splitRatio"] == expected
        assert validate_graph(graph) == []

    def test_missing_branches_get_stable_default_ids(self, editor):
        graph = FlowGraph(nodes=[
            FlowNode(id="s1", kind=NodeKind.SPLIT, title="A/B Split", config={"splitRatio": 50}),
        ])
        graph = editor.set_split_ratio(graph, "s1", 25)
        assert [b.id for b in graph.at(0).branches] == ["s1_path_a", "s1_path_b"]
        assert [b.label for b in graph.at(0).branches] == ["Path A (25%)", "Path B (75%)"]

    def test_existing_branch_sub_flows_are_kept(self, editor):
        inner = FlowGraph(nodes=[FlowNode(id="m", kind=NodeKind.MESSAGE, title="Send Message")])
        graph = FlowGraph(nodes=[
            FlowNode(id="s1", kind=NodeKind.SPLIT, title="A/B Split", config={"splitRatio": 50}, branches=[
                FlowBranch(id="a", label="Path A (50%)", condition="true", nodes=inner),
                FlowBranch(id="b", label="Path B (50%)", condition="false"),
            ]),
        ])
        graph = editor.set_split_ratio(graph, "s1", 60)
        assert graph.at(0).branches[0].nodes == inner

    def test_non_split_node_is_noop(self, editor, three_node_graph):
        assert editor.set_split_ratio(three_node_graph, "node_2", 30) == three_node_graph


# ============================================================================
# STRICT MODE
# ============================================================================

class TestStrictEditor:

    @pytest.mark.parametrize("operation,args", [
        ("update", ({"title": "x"},)),
        ("delete", ()),
        ("duplicate", ()),
        ("move", (0,)),
        ("set_split_ratio", (40,)),
    ])
    def test_unknown_id_raises(self, strict_editor, three_node_graph, operation, args):
        with pytest.raises(NodeNotFoundError) as exc_info:
            getattr(strict_editor, operation)(three_node_graph, "missing", *args)
        assert exc_info.value.node_id == "missing"

    def test_split_ratio_on_non_split_raises(self, strict_editor, three_node_graph):
        with pytest.raises(FlowValidationError):
            strict_editor.set_split_ratio(three_node_graph, "node_2", 40)


# ============================================================================
# SETTINGS
# ============================================================================

class TestFromFeatures:

    def test_reads_switches(self):
        features = Features(Settings(_env_file=None, strict_editing=True, default_split_ratio=70))
        editor = FlowEditor.from_features(features)
        assert editor.strict is True
        assert editor.default_split_ratio == 70

    def test_keyword_arguments_win(self):
        features = Features(Settings(_env_file=None, strict_editing=False))
        assert FlowEditor.from_features(features, strict=True).strict is True

    def test_reads_environment(self, monkeypatch, empty_graph):
        monkeypatch.setenv("AUTOMATION_DEFAULT_SPLIT_RATIO", "70")
        monkeypatch.setenv("AUTOMATION_STRICT_EDITING", "true")
        get_settings.cache_clear()
        get_features.cache_clear()

        editor = FlowEditor.from_features()

        assert editor.insert(empty_graph, NodeKind.SPLIT, 0).at(0).config == {"splitRatio": 70}
        with pytest.raises(NodeNotFoundError):
            editor.delete(empty_graph, "missing")


# ============================================================================
# PROPERTIES
# ============================================================================

class TestInvariants:

    def test_input_graph_is_never_mutated(self, editor, every_kind_graph):
        snapshot = copy.deepcopy(every_kind_graph)
        target = every_kind_graph.at(7).id

        editor.insert(every_kind_graph, NodeKind.MESSAGE, 0)
        editor.update(every_kind_graph, target, {"title": "changed", "config": {"splitRatio": 10}})
        editor.delete(every_kind_graph, target)
        editor.duplicate(every_kind_graph, target)
        editor.move(every_kind_graph, target, 0)
        editor.set_split_ratio(every_kind_graph, target, 90)

        assert every_kind_graph == snapshot

    def test_random_edit_sequence_keeps_invariants(self, editor, empty_graph):
        rng = random.Random(1234)
        graph = empty_graph
        kinds = list(NodeKind)

        for _ in range(200):
            operation = rng.choice(["insert", "insert", "delete", "duplicate", "move", "split"])
            if operation == "insert" or len(graph) == 0:
                graph = editor.insert(graph, rng.choice(kinds), rng.randint(-1, len(graph) + 1))
            else:
                node = graph.at(rng.randrange(len(graph)))
                if operation == "delete":
                    graph = editor.delete(graph, node.id)
                elif operation == "duplicate":
                    graph = editor.duplicate(graph, node.id)
                elif operation == "move":
                    graph = editor.move(graph, node.id, rng.randint(-1, len(graph)))
                else:
                    graph = editor.set_split_ratio(graph, node.id, rng.randint(-10, 110))

            assert_contiguous(graph)
            assert validate_graph(graph) == []


class TestModuleFunctions:
    """Module-level shortcuts use a shared permissive editor."""

    def test_shortcuts(self, empty_graph):
        graph = editor_module.insert(empty_graph, NodeKind.SPLIT, 0)
        node_id = graph.at(0).id
        graph = editor_module.set_split_ratio(graph, node_id, 20)
        graph = editor_module.duplicate(graph, node_id)
        graph = editor_module.move(graph, node_id, 1)
        graph = editor_module.update(graph, node_id, {"title": "Test"})
        graph = editor_module.delete(graph, node_id)

        assert len(graph) == 1
        assert graph.at(0).title == "A/B Split (Copy)"
        assert graph.at(0).config["splitRatio"] == 20
