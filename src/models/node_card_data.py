from pydantic import BaseModel, Field
from typing import Optional, List


class NodeCard(BaseModel):
    """
    Display projection of a node for the canvas and the flow preview
    """
    id: str
    type: str
    label: str
    icon: str
    color: str
    category: str
    summary: str = Field(..., description="Main text shown in the node body")
    badges: List[str] = Field(default_factory=list, description="Short feature tags (Vision, PDF, Required...)")
    hasInput: bool = True
    hasOutput: bool = True
    branchHandles: List[str] = Field(default_factory=list, description="Named output handles, only for branching nodes")
    detail: Optional[str] = None
