"""
Flow Editor Session
Editor-side state for one company's flow: the current graph, undo/redo history,
the selected node and the panel flags.

None of this state is ever written into the persisted document, to_company_flow()
only carries the graph and the version the session was opened with.
"""
from typing import Optional, List, Dict, Any

# Services
from services.flow_editor_service import FlowEditorService, PositionInput

# Models
from models.flow_data import CompanyFlow, FlowTemplate
from models.flow_graph import FlowGraph
from models.node_catalog import NodeType


class FlowEditorSession:
    def __init__(self, flow_editor_service: FlowEditorService, flow: CompanyFlow, history_limit: int = 100):
        self.flow_editor_service = flow_editor_service
        self.history_limit = history_limit

        self._base_flow = flow
        self._initial_graph = FlowGraph.from_company_flow(flow)
        self.graph = self._initial_graph

        self._undo_stack: List[FlowGraph] = []
        self._redo_stack: List[FlowGraph] = []

        self.selected_node_id: Optional[str] = None
        self.config_panel_open = False
        self.has_changes = False

    @property
    def version(self) -> int:
        """
        Version of the document this session was loaded from (or last saved as)
        """
        return self._base_flow.version

    @property
    def selected_node(self):
        if self.selected_node_id is None:
            return None
        return self.graph.get_node(self.selected_node_id)

    # Graph edits

    def add_node(self, node_type: NodeType | str, position: PositionInput) -> str:
        self._apply(self.flow_editor_service.add_node(self.graph, node_type, position))
        return self.graph.nodes[-1].id

    def connect(self, source_id: str, target_id: str, source_handle: Optional[str] = None):
        self._apply(self.flow_editor_service.connect(self.graph, source_id, target_id, source_handle))

    def update_node_data(self, node_id: str, partial_data: Dict[str, Any]):
        self._apply(self.flow_editor_service.update_node_data(self.graph, node_id, partial_data))

    def reposition_node(self, node_id: str, position: PositionInput):
        self._apply(self.flow_editor_service.reposition_node(self.graph, node_id, position))

    def delete_node(self, node_id: str):
        self._apply(self.flow_editor_service.delete_node(self.graph, node_id))
        if self.selected_node_id == node_id:
            self.selected_node_id = None

    def delete_edge(self, edge_id: str):
        self._apply(self.flow_editor_service.delete_edge(self.graph, edge_id))

    def update_global_config(self, partial_config: Dict[str, Any]):
        self._apply(self.flow_editor_service.update_global_config(self.graph, partial_config))

    def load_template(self, template: FlowTemplate):
        self._apply(self.flow_editor_service.load_template(self.graph, template))
        self.selected_node_id = None

    # Selection and panels

    def select_node(self, node_id: str):
        if not self.graph.has_node(node_id):
            return
        self.selected_node_id = node_id
        self.config_panel_open = False

    def clear_selection(self):
        self.selected_node_id = None

    def toggle_config_panel(self):
        self.config_panel_open = not self.config_panel_open
        if self.config_panel_open:
            self.selected_node_id = None

    # History

    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    def undo(self):
        if not self._undo_stack:
            return
        self._redo_stack.append(self.graph)
        self.graph = self._undo_stack.pop()
        self._after_history_move()

    def redo(self):
        if not self._redo_stack:
            return
        self._undo_stack.append(self.graph)
        self.graph = self._redo_stack.pop()
        self._after_history_move()

    def reset(self):
        """
        Drop every unsaved change and go back to the graph the session was opened with
        """
        self.graph = self._initial_graph
        self._undo_stack.clear()
        self._redo_stack.clear()
        self.selected_node_id = None
        self.has_changes = False

    # Persistence hand-off

    def to_company_flow(self, name: Optional[str] = None) -> CompanyFlow:
        flow = self.graph.to_company_flow(self._base_flow)
        if name is not None:
            flow = flow.model_copy(update={"name": name})
        return flow

    def mark_saved(self, saved_flow: CompanyFlow):
        """
        Adopt the document returned by a successful save as the new baseline
        """
        self._base_flow = saved_flow
        self._initial_graph = FlowGraph.from_company_flow(saved_flow)
        self.graph = self._initial_graph
        self.has_changes = False

    def _apply(self, new_graph: FlowGraph):
        if new_graph is self.graph:
            return
        self._undo_stack.append(self.graph)
        if len(self._undo_stack) > self.history_limit:
            self._undo_stack.pop(0)
        self._redo_stack.clear()
        self.graph = new_graph
        self.has_changes = True

    def _after_history_move(self):
        self.has_changes = self.graph != self._initial_graph
        if self.selected_node_id is not None and not self.graph.has_node(self.selected_node_id):
            self.selected_node_id = None
