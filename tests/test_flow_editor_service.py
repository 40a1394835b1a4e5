"""Tests for FlowEditorService graph edits"""

import random

import pytest

from exceptions.flow_exception import FlowBadRequestException
from factories import make_edge, make_graph, make_node
from models.flow_data import FlowNodePosition, FlowTemplate
from models.flow_graph import FlowGraph
from models.node_catalog import NodeType
from services.flow_editor_service import edge_id_for


def _assert_no_dangling_edges(graph: FlowGraph):
    node_ids = graph.node_ids()
    for edge in graph.edges:
        assert edge.source in node_ids
        assert edge.target in node_ids


def test_add_node_uses_counter(flow_editor_service):
    graph = FlowGraph()

    graph = flow_editor_service.add_node(graph, NodeType.GREETING, {"x": 10, "y": 20})
    graph = flow_editor_service.add_node(graph, "QUESTION", FlowNodePosition(x=10, y=170))

    assert [node.id for node in graph.nodes] == ["node-1", "node-2"]
    assert graph.nextNodeId == 3
    assert graph.nodes[0].position.y == 20


def test_add_node_on_graph_built_from_nodes_keeps_ids_unique(flow_editor_service):
    graph = FlowGraph(nodes=[make_node("node-1", "GREETING")])

    graph = flow_editor_service.add_node(graph, NodeType.QUESTION, {"x": 0, "y": 150})

    assert [node.id for node in graph.nodes] == ["node-1", "node-2"]
    assert len(graph.node_ids()) == 2


def test_add_node_uses_catalog_defaults(flow_editor_service):
    graph = flow_editor_service.add_node(FlowGraph(), NodeType.BILL_PHOTO, {"x": 0, "y": 0})

    node = graph.nodes[0]
    assert node.data.label == "Electricity Bill"
    assert node.data.autoAnalyze is True


def test_add_node_leaves_input_graph_untouched(flow_editor_service):
    original = FlowGraph()

    flow_editor_service.add_node(original, NodeType.MESSAGE, {"x": 0, "y": 0})

    assert original.nodes == []
    assert original.nextNodeId == 1


def test_node_ids_stay_unique_across_adds_and_deletes(flow_editor_service):
    """Test ids are never reused, even after deleting the newest node"""
    rng = random.Random(7)
    graph = FlowGraph()
    seen_ids = set()

    for _ in range(60):
        if graph.nodes and rng.random() < 0.3:
            graph = flow_editor_service.delete_node(graph, rng.choice(graph.nodes).id)
            continue
        graph = flow_editor_service.add_node(graph, rng.choice(list(NodeType)), {"x": 0, "y": 0})
        new_id = graph.nodes[-1].id
        assert new_id not in seen_ids
        seen_ids.add(new_id)

    ids = [node.id for node in graph.nodes]
    assert len(ids) == len(set(ids))


def test_edges_never_dangle(flow_editor_service):
    """Test random add/connect/delete sequences keep every edge endpoint present"""
    rng = random.Random(11)
    graph = FlowGraph()

    for _ in range(120):
        action = rng.random()
        if action < 0.4 or len(graph.nodes) < 2:
            graph = flow_editor_service.add_node(graph, rng.choice(list(NodeType)), {"x": 0, "y": 0})
        elif action < 0.8:
            graph = flow_editor_service.connect(
                graph,
                rng.choice(graph.nodes).id,
                rng.choice(graph.nodes).id,
            )
        else:
            graph = flow_editor_service.delete_node(graph, rng.choice(graph.nodes).id)
        _assert_no_dangling_edges(graph)


def test_connect_builds_edge_ids(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "CONDITION"), make_node("node-2", "MESSAGE")])

    graph = flow_editor_service.connect(graph, "node-1", "node-2", "true")
    graph = flow_editor_service.connect(graph, "node-2", "node-1")

    assert [edge.id for edge in graph.edges] == ["edge-node-1-node-2-true", "edge-node-2-node-1"]
    assert graph.edges[0].sourceHandle == "true"
    assert edge_id_for("a", "b") == "edge-a-b"


def test_connect_accepts_parallel_edges(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "GREETING"), make_node("node-2", "MESSAGE")])

    graph = flow_editor_service.connect(graph, "node-1", "node-2")
    graph = flow_editor_service.connect(graph, "node-1", "node-2")

    assert len(graph.edges) == 2


def test_connect_to_missing_node_is_a_no_op(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "GREETING")])

    assert flow_editor_service.connect(graph, "node-1", "node-9") is graph


def test_update_node_data_merges(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "QUESTION", question="Name?", targetField="name")])

    graph = flow_editor_service.update_node_data(graph, "node-1", {"question": "What is your name?"})

    data = graph.get_node("node-1").data
    assert data.question == "What is your name?"
    assert data.targetField == "name"


def test_update_node_data_keeps_extra_keys(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "MESSAGE")])

    graph = flow_editor_service.update_node_data(graph, "node-1", {"highlightColor": "#ff0000"})

    assert graph.get_node("node-1").model_dump()["data"]["highlightColor"] == "#ff0000"


def test_update_node_data_missing_node(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "MESSAGE")])

    assert flow_editor_service.update_node_data(graph, "node-2", {"message": "hi"}) is graph


def test_update_node_data_rejects_invalid_payload(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "QUESTION")])

    with pytest.raises(FlowBadRequestException):
        flow_editor_service.update_node_data(graph, "node-1", {"answerType": "dropdown"})


def test_reposition_node(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "GREETING")])

    moved = flow_editor_service.reposition_node(graph, "node-1", {"x": 300, "y": -40})

    assert moved.get_node("node-1").position == FlowNodePosition(x=300, y=-40)
    assert graph.get_node("node-1").position == FlowNodePosition(x=0, y=0)
    assert flow_editor_service.reposition_node(graph, "node-5", {"x": 1, "y": 1}) is graph


def test_delete_node_removes_touching_edges(flow_editor_service):
    graph = make_graph(
        nodes=[make_node("node-1", "GREETING"), make_node("node-2", "QUESTION"), make_node("node-3", "HANDOFF")],
        edges=[make_edge("node-1", "node-2"), make_edge("node-2", "node-3"), make_edge("node-1", "node-3")],
    )

    graph = flow_editor_service.delete_node(graph, "node-2")

    assert graph.node_ids() == {"node-1", "node-3"}
    assert [edge.id for edge in graph.edges] == ["edge-node-1-node-3"]


def test_delete_missing_node_is_a_no_op(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "GREETING")])

    assert flow_editor_service.delete_node(graph, "node-2") is graph


def test_delete_edge(flow_editor_service):
    graph = make_graph(
        nodes=[make_node("node-1", "GREETING"), make_node("node-2", "QUESTION")],
        edges=[make_edge("node-1", "node-2")],
    )

    graph = flow_editor_service.delete_edge(graph, "edge-node-1-node-2")

    assert graph.edges == []
    assert len(graph.nodes) == 2


def test_update_global_config_merges_sub_records(flow_editor_service):
    graph = FlowGraph()

    graph = flow_editor_service.update_global_config(graph, {"agent": {"name": "Sunny"}, "instructions": "Be brief"})

    assert graph.globalConfig.agent.name == "Sunny"
    assert graph.globalConfig.agent.personality == "consultative"
    assert graph.globalConfig.instructions == "Be brief"


def test_update_global_config_rejects_empty_business_hours(flow_editor_service):
    with pytest.raises(FlowBadRequestException):
        flow_editor_service.update_global_config(
            FlowGraph(),
            {"businessHours": {"startTime": "08:00", "endTime": "08:00"}},
        )


def test_update_global_config_accepts_overnight_business_hours(flow_editor_service):
    graph = flow_editor_service.update_global_config(
        FlowGraph(),
        {"businessHours": {"startTime": "22:00", "endTime": "06:00"}},
    )

    assert graph.globalConfig.businessHours.startTime == "22:00"
    assert graph.globalConfig.businessHours.endTime == "06:00"


def test_update_global_config_allows_any_window_when_disabled(flow_editor_service):
    graph = flow_editor_service.update_global_config(
        FlowGraph(),
        {"businessHours": {"enabled": False, "startTime": "18:00", "endTime": "08:00"}},
    )

    assert graph.globalConfig.businessHours.enabled is False


def test_load_template_replaces_graph_and_keeps_config(flow_editor_service):
    graph = make_graph(nodes=[make_node("node-1", "GREETING"), make_node("node-9", "MESSAGE")])
    graph = flow_editor_service.update_global_config(graph, {"agent": {"name": "Sunny"}})
    template = FlowTemplate.model_validate({
        "id": "two-steps",
        "name": "Two steps",
        "category": "custom",
        "description": "Greeting then handoff",
        "icon": "Rocket",
        "nodes": [make_node("node-1", "GREETING"), make_node("node-2", "HANDOFF")],
        "edges": [make_edge("node-1", "node-2")],
    })

    graph = flow_editor_service.load_template(graph, template)

    assert [node.type for node in graph.nodes] == ["GREETING", "HANDOFF"]
    assert graph.nextNodeId == 3
    assert graph.globalConfig.agent.name == "Sunny"
