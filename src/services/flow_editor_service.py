"""
Flow Editor Service
Graph editing operations used by the flow builder canvas.

Every operation takes a graph and returns a new one, the input graph is never changed.
Operations that name a node that no longer exists are no-ops, the editor can race a
delete against an edit still in flight.
"""
from typing import Optional, Dict, Any, Union

from pydantic import ValidationError

# Utils
from utils.log_utils import LogUtil

# Services
from services.flow_template_service import FlowTemplateService

# Models
from models.flow_data import FlowEdge, FlowNodePosition, FlowTemplate, GlobalConfig, flow_node_adapter
from models.flow_graph import FlowGraph, NODE_ID_PREFIX
from models.node_catalog import NodeType, get_default_node_data

# Exceptions
from exceptions.flow_exception import FlowBadRequestException

PositionInput = Union[FlowNodePosition, Dict[str, float]]


def edge_id_for(source_id: str, target_id: str, source_handle: Optional[str] = None) -> str:
    edge_id = f"edge-{source_id}-{target_id}"
    if source_handle:
        edge_id = f"{edge_id}-{source_handle}"
    return edge_id


class FlowEditorService:
    def __init__(self, log_util: LogUtil, flow_template_service: FlowTemplateService):
        self.log_util = log_util
        self.flow_template_service = flow_template_service

    def add_node(self, graph: FlowGraph, node_type: NodeType | str, position: PositionInput) -> FlowGraph:
        """
        Append a node of the given type with the catalog's default payload.
        The id comes from the graph counter, which then moves forward.
        """
        node_type = NodeType(node_type)
        node = flow_node_adapter.validate_python({
            "id": f"{NODE_ID_PREFIX}{graph.nextNodeId}",
            "type": node_type.value,
            "position": self._position_dict(position),
            "data": get_default_node_data(node_type),
        })
        return graph.model_copy(update={
            "nodes": [*graph.nodes, node],
            "nextNodeId": graph.nextNodeId + 1,
        })

    def connect(self, graph: FlowGraph, source_id: str, target_id: str, source_handle: Optional[str] = None) -> FlowGraph:
        """
        Append an edge. Repeated calls with the same endpoints produce parallel edges.
        """
        if not graph.has_node(source_id) or not graph.has_node(target_id):
            self.log_util.warning(
                service_name="FlowEditorService",
                message=f"Ignoring connection {source_id} -> {target_id}: node not found"
            )
            return graph

        edge = FlowEdge(
            id=edge_id_for(source_id, target_id, source_handle),
            source=source_id,
            target=target_id,
            sourceHandle=source_handle,
        )
        return graph.model_copy(update={"edges": [*graph.edges, edge]})

    def update_node_data(self, graph: FlowGraph, node_id: str, partial_data: Dict[str, Any]) -> FlowGraph:
        """
        Merge partial_data into a node's payload.
        A merged payload that does not fit the node type raises FlowBadRequestException.
        """
        node = graph.get_node(node_id)
        if node is None:
            return graph

        node_dict = node.model_dump(mode="json")
        node_dict["data"] = {**node_dict["data"], **partial_data}
        try:
            updated_node = flow_node_adapter.validate_python(node_dict)
        except ValidationError as e:
            raise FlowBadRequestException(message=f"Invalid data for node {node_id}: {e}")

        return graph.model_copy(update={
            "nodes": [updated_node if existing.id == node_id else existing for existing in graph.nodes]
        })

    def reposition_node(self, graph: FlowGraph, node_id: str, position: PositionInput) -> FlowGraph:
        node = graph.get_node(node_id)
        if node is None:
            return graph

        moved_node = node.model_copy(update={"position": FlowNodePosition(**self._position_dict(position))})
        return graph.model_copy(update={
            "nodes": [moved_node if existing.id == node_id else existing for existing in graph.nodes]
        })

    def delete_node(self, graph: FlowGraph, node_id: str) -> FlowGraph:
        """
        Remove a node together with every edge that starts or ends at it.
        """
        if not graph.has_node(node_id):
            return graph

        return graph.model_copy(update={
            "nodes": [node for node in graph.nodes if node.id != node_id],
            "edges": [edge for edge in graph.edges if edge.source != node_id and edge.target != node_id],
        })

    def delete_edge(self, graph: FlowGraph, edge_id: str) -> FlowGraph:
        return graph.model_copy(update={"edges": [edge for edge in graph.edges if edge.id != edge_id]})

    def update_global_config(self, graph: FlowGraph, partial_config: Dict[str, Any]) -> FlowGraph:
        """
        Merge partial_config into the global configuration.
        Sub-records (agent, businessHours, followup, integrations) are merged key by key.
        """
        config_dict = graph.globalConfig.model_dump(mode="json")
        for key, value in partial_config.items():
            if isinstance(value, dict) and isinstance(config_dict.get(key), dict):
                config_dict[key] = {**config_dict[key], **value}
            else:
                config_dict[key] = value
        try:
            global_config = GlobalConfig.model_validate(config_dict)
        except ValidationError as e:
            raise FlowBadRequestException(message=f"Invalid global configuration: {e}")

        return graph.model_copy(update={"globalConfig": global_config})

    def load_template(self, graph: FlowGraph, template: FlowTemplate) -> FlowGraph:
        """
        Replace the whole graph with a fresh copy of the template.
        The global configuration is kept.
        """
        return self.flow_template_service.instantiate(template, global_config=graph.globalConfig)

    def _position_dict(self, position: PositionInput) -> Dict[str, float]:
        if isinstance(position, FlowNodePosition):
            return position.model_dump()
        return {"x": float(position.get("x", 0)), "y": float(position.get("y", 0))}
