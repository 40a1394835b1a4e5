from pydantic import BaseModel, Field
from typing import List


class FlowValidationResult(BaseModel):
    """
    Outcome of a structural check of a flow graph.
    Errors block a non-draft save, warnings never do.
    """
    valid: bool = Field(default=True, description="Whether the graph can be saved as the active flow")
    errors: List[str] = Field(default_factory=list, description="Blocking structural defects")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal findings such as self-loops")
