"""Tests for node card rendering"""

import pytest

from factories import make_graph, make_node
from models.flow_data import flow_node_adapter
from models.node_catalog import NodeType, get_default_node_data


def _node(node_type: str, **data):
    return flow_node_adapter.validate_python(make_node("node-1", node_type, **data))


def test_greeting_has_no_input(node_render_service):
    card = node_render_service.render_node(_node("GREETING", message="Hello!"))

    assert card.hasInput is False
    assert card.hasOutput is True
    assert card.summary == "Hello!"


def test_handoff_has_no_output(node_render_service):
    card = node_render_service.render_node(_node("HANDOFF", priority="high"))

    assert card.hasOutput is False
    assert "high" in card.badges


def test_condition_exposes_branches(node_render_service):
    card = node_render_service.render_node(
        _node("CONDITION", field="consumption_kwh", operator="greater_than", value=300)
    )

    assert card.branchHandles == ["true", "false"]
    assert card.summary == "If consumption_kwh > 300"


def test_condition_exists_has_no_value(node_render_service):
    card = node_render_service.render_node(_node("CONDITION", field="email", operator="exists"))

    assert card.summary == "If email exists"


def test_empty_label_falls_back_to_catalog(node_render_service):
    card = node_render_service.render_node(_node("ROOF_PHOTO", label=""))

    assert card.label == "Roof Photo"
    assert card.category == "media"


def test_question_badges(node_render_service):
    card = node_render_service.render_node(
        _node("QUESTION", question="Your city?", answerType="text", required=True, targetField="city")
    )

    assert card.badges == ["Text", "Required"]
    assert card.detail == "Saves to city"


def test_site_visit_weekdays(node_render_service):
    card = node_render_service.render_node(_node("SITE_VISIT", availableWeekdays=[1, 3, 5]))

    assert card.detail == "Mon, Wed, Fri"


@pytest.mark.parametrize("node_type", list(NodeType))
def test_every_type_renders(node_render_service, node_type):
    node = flow_node_adapter.validate_python(
        {"id": "node-1", "type": node_type.value, "data": get_default_node_data(node_type)}
    )

    card = node_render_service.render_node(node)

    assert card.type == node_type.value
    assert card.summary


def test_render_graph_keeps_order(node_render_service):
    graph = make_graph(nodes=[make_node("node-1", "GREETING"), make_node("node-2", "MESSAGE")])

    cards = node_render_service.render_graph(graph)

    assert [card.id for card in cards] == ["node-1", "node-2"]
