"""Tests for template listing and instantiation"""

import logging

import pytest

from exceptions.flow_exception import FlowNotFoundException
from factories import make_edge, make_node
from models.flow_data import FlowEdge, FlowTemplate, GlobalConfig
from models.flow_templates import FLOW_TEMPLATES


def _template(nodes, edges) -> FlowTemplate:
    return FlowTemplate.model_validate({
        "id": "test",
        "name": "Test",
        "category": "custom",
        "description": "Test template",
        "icon": "Rocket",
        "nodes": nodes,
        "edges": edges,
    })


def test_list_templates(flow_template_service):
    assert [template.id for template in flow_template_service.list_templates()] == ["basic", "complete", "quick"]


def test_get_unknown_template(flow_template_service):
    with pytest.raises(FlowNotFoundException):
        flow_template_service.get_template("enterprise")


def test_instantiate_three_node_template_twice(flow_template_service):
    """Test instantiation is deterministic and resets the counter"""
    template = _template(
        nodes=[make_node("node-1", "GREETING"), make_node("node-2", "QUESTION"), make_node("node-3", "HANDOFF")],
        edges=[make_edge("node-1", "node-2"), make_edge("node-2", "node-3")],
    )

    first = flow_template_service.instantiate(template)
    second = flow_template_service.instantiate(template)

    assert [node.id for node in first.nodes] == ["node-1", "node-2", "node-3"]
    assert len(first.edges) == 2
    assert first.nextNodeId == 4
    assert first == second


def test_edges_are_remapped_by_position(flow_template_service):
    """Test placeholder suffixes index the node array, whatever the node ids say"""
    template = _template(
        nodes=[make_node("step-10", "GREETING"), make_node("step-20", "MESSAGE"), make_node("step-30", "HANDOFF")],
        edges=[make_edge("node-1", "node-3"), make_edge("x-3", "y-2")],
    )

    graph = flow_template_service.instantiate(template)

    assert [(edge.source, edge.target) for edge in graph.edges] == [("node-1", "node-3"), ("node-3", "node-2")]
    assert [edge.id for edge in graph.edges] == ["edge-1", "edge-2"]


def test_out_of_bounds_edges_are_dropped(flow_template_service, caplog):
    template = _template(
        nodes=[make_node("step-10", "GREETING"), make_node("step-20", "HANDOFF")],
        edges=[make_edge("step-10", "step-20"), make_edge("node-1", "node-2"), make_edge("start", "node-2")],
    )

    with caplog.at_level(logging.WARNING, logger="solar_flow_service"):
        graph = flow_template_service.instantiate(template)

    assert [(edge.source, edge.target) for edge in graph.edges] == [("node-1", "node-2")]
    assert "dropping edge" in caplog.text


def test_edge_handles_survive(flow_template_service):
    graph = flow_template_service.instantiate(flow_template_service.get_template("complete"))

    handles = {edge.sourceHandle for edge in graph.outgoing_edges("node-6")}
    assert handles == {"true", "false"}
    assert graph.nextNodeId == 13


def test_payloads_are_copied(flow_template_service):
    template = flow_template_service.get_template("basic")

    graph = flow_template_service.instantiate(template)
    graph.nodes[1].data.question = "Changed"

    assert template.nodes[1].data.question != "Changed"


def test_global_config_is_passed_through(flow_template_service):
    config = GlobalConfig.model_validate({"agent": {"name": "Sunny"}})

    graph = flow_template_service.instantiate(flow_template_service.get_template("quick"), config)

    assert graph.globalConfig.agent.name == "Sunny"


@pytest.mark.parametrize("template", FLOW_TEMPLATES, ids=lambda template: template.id)
def test_shipped_templates_are_valid(template, flow_template_service, flow_validation_service):
    graph = flow_template_service.instantiate(template)

    result = flow_validation_service.validate(graph)

    assert result.valid, result.errors
    assert all(isinstance(edge, FlowEdge) for edge in graph.edges)
