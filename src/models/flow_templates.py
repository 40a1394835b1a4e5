from typing import Optional, List, Dict, Any

# Models
from models.flow_data import FlowTemplate
from models.node_catalog import NodeType, CONDITION_TRUE_HANDLE, CONDITION_FALSE_HANDLE, get_default_node_data

def _node(index: int, node_type: NodeType, x: float, y: float, **overrides) -> Dict[str, Any]:
    data = get_default_node_data(node_type)
    data.update(overrides)
    return {
        "id": f"node-{index}",
        "type": node_type.value,
        "position": {"x": x, "y": y},
        "data": data,
    }

def _edge(source: int, target: int, handle: Optional[str] = None) -> Dict[str, Any]:
    edge = {
        "id": f"edge-{source}-{target}",
        "source": f"node-{source}",
        "target": f"node-{target}",
        "animated": True,
    }
    if handle is not None:
        edge["sourceHandle"] = handle
    return edge

BASIC_TEMPLATE = FlowTemplate.model_validate({
    "id": "basic",
    "name": "Basic Flow",
    "category": "basic",
    "description": "Simple flow for fast lead qualification",
    "icon": "Rocket",
    "nodes": [
        _node(1, NodeType.GREETING, 250, 0),
        _node(2, NodeType.CONSUMPTION_CAPTURE, 250, 150),
        _node(3, NodeType.INSTALLATION_TYPE, 250, 300),
        _node(4, NodeType.HANDOFF, 250, 450, reason="Lead qualified by the basic flow"),
    ],
    "edges": [
        _edge(1, 2),
        _edge(2, 3),
        _edge(3, 4),
    ],
})

COMPLETE_TEMPLATE = FlowTemplate.model_validate({
    "id": "complete",
    "name": "Complete Flow",
    "category": "complete",
    "description": "Full flow with bill and roof analysis, proposal and site visit",
    "icon": "Stars",
    "nodes": [
        _node(1, NodeType.GREETING, 250, 0),
        _node(2, NodeType.CONSUMPTION_CAPTURE, 250, 150),
        _node(3, NodeType.BILL_PHOTO, 250, 300),
        _node(4, NodeType.ROOF_PHOTO, 250, 450),
        _node(5, NodeType.INSTALLATION_TYPE, 250, 600),
        _node(6, NodeType.CONDITION, 250, 750, label="Consumption above 300 kWh?"),
        _node(7, NodeType.PAYMENT_METHOD, 100, 900),
        _node(8, NodeType.PROPOSAL, 100, 1050),
        _node(9, NodeType.SITE_VISIT, 100, 1200),
        _node(10, NodeType.FOLLOWUP, 100, 1350),
        _node(11, NodeType.MESSAGE, 450, 900, message="For lower consumption we have compact kits. A specialist will show you the options."),
        _node(12, NodeType.HANDOFF, 450, 1050, reason="Low consumption lead", priority="low"),
    ],
    "edges": [
        _edge(1, 2),
        _edge(2, 3),
        _edge(3, 4),
        _edge(4, 5),
        _edge(5, 6),
        _edge(6, 7, CONDITION_TRUE_HANDLE),
        _edge(7, 8),
        _edge(8, 9),
        _edge(9, 10),
        _edge(6, 11, CONDITION_FALSE_HANDLE),
        _edge(11, 12),
    ],
})

QUICK_TEMPLATE = FlowTemplate.model_validate({
    "id": "quick",
    "name": "Quick Flow",
    "category": "quick",
    "description": "Only consumption and site visit scheduling",
    "icon": "Zap",
    "nodes": [
        _node(1, NodeType.GREETING, 250, 0),
        _node(2, NodeType.CONSUMPTION_CAPTURE, 250, 150),
        _node(3, NodeType.SITE_VISIT, 250, 300),
        _node(4, NodeType.HANDOFF, 250, 450, reason="Site visit requested", priority="high"),
    ],
    "edges": [
        _edge(1, 2),
        _edge(2, 3),
        _edge(3, 4),
    ],
})

FLOW_TEMPLATES: List[FlowTemplate] = [BASIC_TEMPLATE, COMPLETE_TEMPLATE, QUICK_TEMPLATE]
