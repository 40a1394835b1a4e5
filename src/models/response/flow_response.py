from pydantic import BaseModel
from typing import Optional, List

from models.flow_data import CompanyFlow
from models.node_card_data import NodeCard

class FlowResponse(BaseModel):
    success: bool
    flow: Optional[CompanyFlow] = None
    message: Optional[str] = None
    error: Optional[str] = None
    validationErrors: Optional[List[str]] = None
    storedVersion: Optional[int] = None

class FlowValidationResponse(BaseModel):
    success: bool = True
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []

class FlowPreviewResponse(BaseModel):
    success: bool = True
    companyId: int
    version: int
    nodes: List[NodeCard] = []
