"""Tests for the node type catalog"""

import pytest

from models.flow_data import flow_node_adapter
from models.node_catalog import (
    NODE_CATEGORIES,
    NODE_DEFINITIONS,
    NodeType,
    get_category,
    get_default_node_data,
    get_node_definition,
    get_node_definitions_by_category,
)


def test_every_node_type_has_one_definition():
    """Test the catalog covers each node type exactly once"""
    defined_types = [definition.type for definition in NODE_DEFINITIONS]

    assert sorted(defined_types) == sorted(NodeType)
    assert len(defined_types) == len(set(defined_types))


def test_definitions_use_known_categories():
    category_ids = {category.id for category in NODE_CATEGORIES}

    for definition in NODE_DEFINITIONS:
        assert definition.category in category_ids


@pytest.mark.parametrize("node_type", list(NodeType))
def test_default_data_is_a_valid_payload(node_type):
    """Test a node built from catalog defaults passes its own schema"""
    node = flow_node_adapter.validate_python({
        "id": "node-1",
        "type": node_type.value,
        "data": get_default_node_data(node_type),
    })

    assert node.type == node_type.value
    assert node.data.label == get_node_definition(node_type).label


def test_default_data_is_a_fresh_copy():
    """Test mutating returned defaults never leaks into the catalog"""
    first = get_default_node_data(NodeType.INSTALLATION_TYPE)
    first["options"].clear()

    second = get_default_node_data(NodeType.INSTALLATION_TYPE)

    assert second["options"]


def test_get_node_definition_accepts_strings():
    assert get_node_definition("CONDITION").type is NodeType.CONDITION


def test_get_node_definition_unknown_type():
    with pytest.raises(ValueError):
        get_node_definition("TRIGGER_KEYWORD")


def test_definitions_by_category():
    decision_types = [definition.type for definition in get_node_definitions_by_category("decision")]

    assert NodeType.CONDITION in decision_types
    assert get_node_definitions_by_category("unknown") == []


def test_get_category():
    assert get_category("media").id == "media"
    assert get_category("trigger") is None
