"""
Flow Validation Service
Checks whether a flow graph is sound enough to become a company's active flow.
"""
from typing import List, Set, assert_never

# Utils
from utils.log_utils import LogUtil

# Models
from models.flow_data import (
    FlowNode, GreetingNode, QuestionNode, ConsumptionCaptureNode, BillPhotoNode, RoofPhotoNode,
    InstallationTypeNode, PaymentMethodNode, ConditionNode, ProposalNode, SiteVisitNode,
    FollowupNode, HandoffNode, MessageNode
)
from models.flow_graph import FlowGraph
from models.node_catalog import NodeType, CONDITION_HANDLES
from models.validation_data import FlowValidationResult

EMPTY_FLOW_ERROR = "The flow is empty: it needs at least one node"
NO_ENTRY_POINT_ERROR = "The flow has no entry point: add a Greeting (GREETING) node"


class FlowValidationService:
    """
    Structural checker run before a non-draft save.

    Errors:
      1. the graph has at least one node
      2. at least one GREETING node exists (the entry point)
      3. every node is touched by at least one edge, the entry point excepted

    Rule 3 only asks for an edge, not for a path from the entry point, so a node
    wired into a dead branch passes. Forward reachability from the entry point is
    reported as a warning only, stricter validation would reject flows that are
    accepted today.
    """

    def __init__(self, log_util: LogUtil):
        self.log_util = log_util

    def validate(self, graph: FlowGraph) -> FlowValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        if not graph.nodes:
            errors.append(EMPTY_FLOW_ERROR)

        entry_node = graph.entry_node()
        if entry_node is None:
            errors.append(NO_ENTRY_POINT_ERROR)

        if graph.nodes:
            connected_node_ids: Set[str] = set()
            for edge in graph.edges:
                connected_node_ids.add(edge.source)
                connected_node_ids.add(edge.target)

            # The entry point does not need an incoming edge
            if entry_node is not None:
                connected_node_ids.add(entry_node.id)

            orphan_ids = [node.id for node in graph.nodes if node.id not in connected_node_ids]
            if orphan_ids:
                errors.append(
                    f"There are {len(orphan_ids)} node(s) without connections: {', '.join(orphan_ids)}"
                )

        warnings.extend(self._self_loop_warnings(graph))
        if entry_node is not None:
            warnings.extend(self._reachability_warnings(graph, entry_node.id))
        if len(graph.nodes_of_type(NodeType.GREETING)) > 1:
            warnings.append("The flow has more than one Greeting node, only the first one starts conversations")
        for node in graph.nodes:
            warnings.extend(self._node_warnings(graph, node))

        result = FlowValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)
        if not result.valid:
            self.log_util.info(
                service_name="FlowValidationService",
                message=f"Flow validation failed with {len(errors)} error(s): {errors}"
            )
        return result

    def _self_loop_warnings(self, graph: FlowGraph) -> List[str]:
        return [
            f"Edge {edge.id} connects node {edge.source} to itself"
            for edge in graph.edges
            if edge.source == edge.target
        ]

    def _reachability_warnings(self, graph: FlowGraph, entry_node_id: str) -> List[str]:
        reachable = graph.reachable_from(entry_node_id)
        unreachable = [node.id for node in graph.nodes if node.id not in reachable]
        if not unreachable:
            return []
        return [f"{len(unreachable)} node(s) cannot be reached from the Greeting node: {', '.join(unreachable)}"]

    def _node_warnings(self, graph: FlowGraph, node: FlowNode) -> List[str]:
        """
        Per-type structural hints. Every node type must be listed here.
        """
        match node:
            case ConditionNode():
                warnings = []
                outgoing = graph.outgoing_edges(node.id)
                unknown_handles = sorted({
                    str(edge.sourceHandle) for edge in outgoing if edge.sourceHandle not in CONDITION_HANDLES
                })
                if unknown_handles:
                    warnings.append(
                        f"Condition node {node.id} has edges on unknown outputs: {', '.join(unknown_handles)}"
                    )
                missing = [handle for handle in CONDITION_HANDLES if not graph.outgoing_edges(node.id, handle)]
                for handle in missing:
                    warnings.append(f"Condition node {node.id} has no '{handle}' branch")
                return warnings
            case HandoffNode():
                if graph.outgoing_edges(node.id):
                    return [f"Transfer node {node.id} ends the conversation, its outgoing edges are ignored"]
                return []
            case GreetingNode():
                if graph.incoming_edges(node.id):
                    return [f"Greeting node {node.id} has incoming edges"]
                return []
            case QuestionNode():
                if node.data.answerType == "options" and not node.data.options:
                    return [f"Question node {node.id} expects options but has none"]
                return []
            case ConsumptionCaptureNode():
                if (node.data.minValue is not None and node.data.maxValue is not None
                        and node.data.minValue > node.data.maxValue):
                    return [f"Consumption node {node.id} has a minimum above its maximum"]
                return []
            case InstallationTypeNode() | PaymentMethodNode():
                if not node.data.options:
                    return [f"Node {node.id} has no options to choose from"]
                return []
            case FollowupNode():
                if node.data.enabled and len(node.data.messages) < len(node.data.intervalsHours):
                    return [f"Follow-up node {node.id} has fewer messages than intervals"]
                return []
            case BillPhotoNode() | RoofPhotoNode() | ProposalNode() | SiteVisitNode() | MessageNode():
                return []
            case _:
                assert_never(node)
