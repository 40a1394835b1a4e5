"""Tests for FlowEditorSession history, selection and save hand-off"""

import pytest

from factories import greeting_question_flow
from models.flow_data import CompanyFlow
from models.node_catalog import NodeType
from services.flow_editor_session import FlowEditorSession


@pytest.fixture
def session(flow_editor_service):
    flow = CompanyFlow.model_validate(greeting_question_flow(version=2))
    return FlowEditorSession(flow_editor_service, flow)


def test_new_session_is_clean(session):
    assert session.version == 2
    assert session.has_changes is False
    assert session.can_undo() is False
    assert session.graph.nextNodeId == 3


def test_add_node_returns_new_id(session):
    node_id = session.add_node(NodeType.HANDOFF, {"x": 0, "y": 300})

    assert node_id == "node-3"
    assert session.has_changes is True


def test_undo_and_redo(session):
    node_id = session.add_node(NodeType.HANDOFF, {"x": 0, "y": 300})
    session.connect("node-2", node_id)

    session.undo()
    assert session.graph.edges[-1].target == "node-2"
    session.undo()
    assert not session.graph.has_node(node_id)
    assert session.has_changes is False

    session.redo()
    assert session.graph.has_node(node_id)
    assert session.has_changes is True


def test_new_edit_clears_redo(session):
    session.add_node(NodeType.MESSAGE, {"x": 0, "y": 0})
    session.undo()

    session.reposition_node("node-1", {"x": 50, "y": 50})

    assert session.can_redo() is False


def test_no_op_edit_does_not_touch_history(session):
    session.connect("node-1", "node-404")

    assert session.can_undo() is False
    assert session.has_changes is False


def test_history_is_bounded(flow_editor_service):
    session = FlowEditorSession(flow_editor_service, CompanyFlow(companyId=42), history_limit=3)

    for _ in range(5):
        session.add_node(NodeType.MESSAGE, {"x": 0, "y": 0})

    undo_count = 0
    while session.can_undo():
        session.undo()
        undo_count += 1
    assert undo_count == 3
    assert len(session.graph.nodes) == 2


def test_deleting_selected_node_clears_selection(session):
    session.select_node("node-2")
    assert session.selected_node.id == "node-2"

    session.delete_node("node-2")

    assert session.selected_node_id is None
    assert session.graph.edges == []


def test_select_missing_node_is_ignored(session):
    session.select_node("node-99")

    assert session.selected_node is None


def test_config_panel_and_selection_are_exclusive(session):
    session.select_node("node-1")

    session.toggle_config_panel()
    assert session.config_panel_open is True
    assert session.selected_node_id is None

    session.select_node("node-1")
    assert session.config_panel_open is False


def test_undo_drops_selection_of_vanished_node(session):
    node_id = session.add_node(NodeType.MESSAGE, {"x": 0, "y": 0})
    session.select_node(node_id)

    session.undo()

    assert session.selected_node_id is None


def test_to_company_flow_carries_graph_not_ui_state(session):
    session.add_node(NodeType.HANDOFF, {"x": 0, "y": 300})
    session.select_node("node-3")
    session.toggle_config_panel()

    flow = session.to_company_flow(name="Renamed")
    dumped = flow.model_dump()

    assert flow.version == 2
    assert flow.name == "Renamed"
    assert flow.nextNodeId == 4
    assert len(flow.nodes) == 3
    assert "selected_node_id" not in dumped
    assert "config_panel_open" not in dumped


def test_mark_saved_adopts_new_baseline(session):
    session.add_node(NodeType.HANDOFF, {"x": 0, "y": 300})
    saved = session.to_company_flow().model_copy(update={"version": 3})

    session.mark_saved(saved)

    assert session.version == 3
    assert session.has_changes is False
    assert len(session.graph.nodes) == 3


def test_reset_discards_changes(session):
    session.add_node(NodeType.HANDOFF, {"x": 0, "y": 300})
    session.update_global_config({"agent": {"name": "Sunny"}})

    session.reset()

    assert len(session.graph.nodes) == 2
    assert session.graph.globalConfig.agent.name == "Solar Assistant"
    assert session.can_undo() is False


def test_load_template_is_undoable(session, flow_template_service):
    session.load_template(flow_template_service.get_template("basic"))
    assert len(session.graph.nodes) == 4

    session.undo()

    assert len(session.graph.nodes) == 2
