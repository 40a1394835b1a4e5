import re
from collections import deque
from typing import Optional, List, Set, Iterable, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Models
from models.flow_data import CompanyFlow, FlowNode, FlowEdge, GlobalConfig
from models.node_catalog import NodeType

NODE_ID_PREFIX = "node-"
_NODE_ID_SUFFIX = re.compile(r"(\d+)$")

def node_id_suffix(node_id: str) -> Optional[int]:
    """
    Numeric suffix of a node id ("node-12" -> 12), None when there is none.
    """
    match = _NODE_ID_SUFFIX.search(node_id or "")
    if match is None:
        return None
    return int(match.group(1))

def seed_next_node_id(nodes: Iterable[Any]) -> int:
    """
    First free sequential id for a node set that carries no counter,
    so imported graphs with gaps never collide. Accepts nodes or raw node dicts.
    """
    highest = 0
    for node in nodes:
        node_id = node.get("id") if isinstance(node, dict) else getattr(node, "id", None)
        suffix = node_id_suffix(node_id)
        if suffix is not None and suffix > highest:
            highest = suffix
    return highest + 1

class FlowGraph(BaseModel):
    """
    In-memory graph of one company's flow.

    Instances are treated as values: editing operations build a new graph
    instead of changing this one, which keeps undo/redo and dirty tracking trivial.
    """
    model_config = ConfigDict(frozen=True)

    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []
    globalConfig: GlobalConfig = Field(default_factory=GlobalConfig)
    nextNodeId: int = 1

    @model_validator(mode="before")
    @classmethod
    def seed_counter(cls, data: Any) -> Any:
        # The counter never points at an id the node set already uses
        if isinstance(data, dict) and data.get("nodes"):
            seeded = seed_next_node_id(data["nodes"])
            current = data.get("nextNodeId")
            if not isinstance(current, int) or current < seeded:
                data = {**data, "nextNodeId": seeded}
        return data

    @classmethod
    def from_company_flow(cls, flow: CompanyFlow) -> "FlowGraph":
        return cls(
            nodes=list(flow.nodes),
            edges=list(flow.edges),
            globalConfig=flow.globalConfig,
            nextNodeId=flow.nextNodeId or 1,
        )

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def edges_touching(self, node_id: str) -> List[FlowEdge]:
        return [edge for edge in self.edges if edge.source == node_id or edge.target == node_id]

    def outgoing_edges(self, node_id: str, handle: Optional[str] = None) -> List[FlowEdge]:
        """
        Edges leaving a node. With a handle, only the edges of that branch.
        """
        return [
            edge for edge in self.edges
            if edge.source == node_id and (handle is None or edge.sourceHandle == handle)
        ]

    def incoming_edges(self, node_id: str) -> List[FlowEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    def nodes_of_type(self, node_type: NodeType) -> List[FlowNode]:
        return [node for node in self.nodes if node.type == node_type.value]

    def entry_node(self) -> Optional[FlowNode]:
        """
        The conversation starts at the first GREETING node.
        """
        greetings = self.nodes_of_type(NodeType.GREETING)
        return greetings[0] if greetings else None

    def reachable_from(self, start_node_id: str) -> Set[str]:
        """
        Ids of every node reachable from start_node_id following edge direction,
        the start node included. Empty when the start node does not exist.
        """
        if not self.has_node(start_node_id):
            return set()
        present = self.node_ids()
        visited = {start_node_id}
        queue = deque([start_node_id])
        while queue:
            current = queue.popleft()
            for edge in self.outgoing_edges(current):
                if edge.target in present and edge.target not in visited:
                    visited.add(edge.target)
                    queue.append(edge.target)
        return visited

    def to_company_flow(self, base: CompanyFlow) -> CompanyFlow:
        """
        Copy of the base document carrying this graph's content.
        """
        return base.model_copy(update={
            "nodes": list(self.nodes),
            "edges": list(self.edges),
            "globalConfig": self.globalConfig,
            "nextNodeId": self.nextNodeId,
        })
