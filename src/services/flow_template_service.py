"""
Flow Template Service
Lists the seed templates and turns one into a fresh graph.
"""
from typing import Optional, List

# Utils
from utils.log_utils import LogUtil

# Models
from models.flow_data import FlowTemplate, FlowEdge, GlobalConfig, flow_node_adapter
from models.flow_graph import FlowGraph, NODE_ID_PREFIX, node_id_suffix
from models.flow_templates import FLOW_TEMPLATES

# Exceptions
from exceptions.flow_exception import FlowNotFoundException


class FlowTemplateService:
    def __init__(self, log_util: LogUtil, templates: Optional[List[FlowTemplate]] = None):
        self.log_util = log_util
        self.templates = list(FLOW_TEMPLATES if templates is None else templates)

    def list_templates(self) -> List[FlowTemplate]:
        return list(self.templates)

    def get_template(self, template_id: str) -> FlowTemplate:
        for template in self.templates:
            if template.id == template_id:
                return template
        raise FlowNotFoundException(message=f"Template '{template_id}' not found")

    def instantiate(self, template: FlowTemplate, global_config: Optional[GlobalConfig] = None) -> FlowGraph:
        """
        Build a complete new graph from a template.

        Node ids are re-sequenced to node-1 ... node-N in template order. Edges are
        remapped by position: the numeric suffix of a placeholder is a 1-based index
        into the template node array, so node-2 always means "the second template
        node" whatever the placeholder strings look like. Edges whose placeholder
        has no suffix or points outside the node array are dropped.

        The result replaces the current graph, it is never merged into it.
        """
        new_nodes = []
        for index, template_node in enumerate(template.nodes):
            node_dict = template_node.model_dump(mode="json")
            node_dict["id"] = f"{NODE_ID_PREFIX}{index + 1}"
            new_nodes.append(flow_node_adapter.validate_python(node_dict))

        new_edges: List[FlowEdge] = []
        for template_edge in template.edges:
            source_index = self._resolve_index(template_edge.source, len(new_nodes))
            target_index = self._resolve_index(template_edge.target, len(new_nodes))
            if source_index is None or target_index is None:
                self.log_util.warning(
                    service_name="FlowTemplateService",
                    message=f"Template '{template.id}': dropping edge {template_edge.id} "
                            f"({template_edge.source} -> {template_edge.target}), placeholder out of bounds"
                )
                continue

            edge_dict = template_edge.model_dump(mode="json")
            edge_dict.update({
                "id": f"edge-{len(new_edges) + 1}",
                "source": new_nodes[source_index].id,
                "target": new_nodes[target_index].id,
            })
            new_edges.append(FlowEdge.model_validate(edge_dict))

        self.log_util.info(
            service_name="FlowTemplateService",
            message=f"Template '{template.id}' instantiated with {len(new_nodes)} node(s) and {len(new_edges)} edge(s)"
        )

        return FlowGraph(
            nodes=new_nodes,
            edges=new_edges,
            globalConfig=global_config if global_config is not None else GlobalConfig(),
            nextNodeId=len(new_nodes) + 1,
        )

    def _resolve_index(self, placeholder: str, node_count: int) -> Optional[int]:
        suffix = node_id_suffix(placeholder)
        if suffix is None or suffix < 1 or suffix > node_count:
            return None
        return suffix - 1
