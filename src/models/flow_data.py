from pydantic import BaseModel, Field, Discriminator, ConfigDict, TypeAdapter, model_validator
from typing import Optional, List, Union, Literal, Annotated
from datetime import datetime

class FlowNodePosition(BaseModel):
    x: float = 0
    y: float = 0

# ============================================
# Node payloads
# ============================================

class BaseNodeData(BaseModel):
    model_config = ConfigDict(extra='allow')  # The editor may attach extra keys

    label: str = ""
    description: Optional[str] = None

class GreetingNodeData(BaseNodeData):
    message: str = ""
    customizeByTimeOfDay: bool = False
    morningMessage: Optional[str] = None
    afternoonMessage: Optional[str] = None
    eveningMessage: Optional[str] = None

class QuestionNodeData(BaseNodeData):
    question: str = ""
    answerType: Literal["text", "number", "options", "yes_no"] = "text"
    options: Optional[List[str]] = None
    targetField: Optional[str] = None  # Lead field that receives the answer
    required: bool = True
    errorMessage: Optional[str] = None
    maxAttempts: Optional[int] = None

class ConsumptionCaptureNodeData(BaseNodeData):
    question: str = ""
    unit: Literal["kWh", "currency"] = "kWh"
    minValue: Optional[float] = None
    maxValue: Optional[float] = None
    targetField: Literal["consumption_kwh", "bill_amount"] = "consumption_kwh"

class BillPhotoNodeData(BaseNodeData):
    requestMessage: str = ""
    autoAnalyze: bool = True  # Vision analysis of the photo
    extractConsumption: bool = True
    extractAmount: bool = True
    timeoutSeconds: int = 300
    fallbackMessage: Optional[str] = None  # Sent when no photo arrives

class RoofPhotoNodeData(BaseNodeData):
    requestMessage: str = ""
    autoAnalyze: bool = True
    assessFeasibility: bool = True
    timeoutSeconds: int = 300
    fallbackMessage: Optional[str] = None

class InstallationOption(BaseModel):
    label: str
    value: Literal["RESIDENTIAL", "COMMERCIAL", "RURAL", "INVESTMENT"]
    description: Optional[str] = None

class InstallationTypeNodeData(BaseNodeData):
    question: str = ""
    options: List[InstallationOption] = []
    allowOther: bool = False

class PaymentOption(BaseModel):
    label: str
    value: str
    description: Optional[str] = None
    highlight: bool = False

class PaymentMethodNodeData(BaseNodeData):
    question: str = ""
    options: List[PaymentOption] = []
    showFinancing: bool = True
    financingPartners: Optional[List[str]] = None

class ConditionNodeData(BaseNodeData):
    field: str = ""  # Lead field to check
    operator: Literal["equals", "not_equals", "greater_than", "less_than", "contains", "exists"] = "equals"
    value: Union[bool, int, float, str, None] = None
    outputTrue: Optional[str] = None
    outputFalse: Optional[str] = None

class ProposalNodeData(BaseNodeData):
    autoGenerate: bool = True
    includeFields: List[str] = []
    pdfFormat: bool = True
    sendViaWhatsApp: bool = True
    sendMessage: Optional[str] = None
    templateId: Optional[str] = None

class SiteVisitNodeData(BaseNodeData):
    question: str = ""
    showAvailability: bool = True
    availableWeekdays: List[int] = []  # 0-6, Sunday first
    availableTimes: List[str] = []
    calendarIntegration: bool = False
    confirmAddress: bool = True

class HandoffNodeData(BaseNodeData):
    reason: str = ""
    customerMessage: str = ""
    notifyTeam: bool = True
    notificationChannel: Literal["whatsapp", "email", "system"] = "whatsapp"
    assignTo: Optional[str] = None
    priority: Literal["low", "medium", "high", "urgent"] = "medium"

class FollowupNodeData(BaseNodeData):
    enabled: bool = True
    intervalsHours: List[int] = []
    messages: List[str] = []
    maxAttempts: int = 3
    stopOnReply: bool = True

class MessageButton(BaseModel):
    label: str
    value: str

class MessageNodeData(BaseNodeData):
    message: str = ""
    includeButtons: bool = False
    buttons: Optional[List[MessageButton]] = None
    waitForReply: bool = False
    timeoutSeconds: Optional[int] = None

# ============================================
# Nodes
# ============================================

# Base FlowNode with common fields
class BaseFlowNode(BaseModel):
    model_config = ConfigDict(extra='allow')  # Keep UI keys like 'selected', 'measured'

    id: str
    type: str
    position: FlowNodePosition = Field(default_factory=FlowNodePosition)

class GreetingNode(BaseFlowNode):
    type: Literal["GREETING"]
    data: GreetingNodeData = Field(default_factory=GreetingNodeData)

class QuestionNode(BaseFlowNode):
    type: Literal["QUESTION"]
    data: QuestionNodeData = Field(default_factory=QuestionNodeData)

class ConsumptionCaptureNode(BaseFlowNode):
    type: Literal["CONSUMPTION_CAPTURE"]
    data: ConsumptionCaptureNodeData = Field(default_factory=ConsumptionCaptureNodeData)

class BillPhotoNode(BaseFlowNode):
    type: Literal["BILL_PHOTO"]
    data: BillPhotoNodeData = Field(default_factory=BillPhotoNodeData)

class RoofPhotoNode(BaseFlowNode):
    type: Literal["ROOF_PHOTO"]
    data: RoofPhotoNodeData = Field(default_factory=RoofPhotoNodeData)

class InstallationTypeNode(BaseFlowNode):
    type: Literal["INSTALLATION_TYPE"]
    data: InstallationTypeNodeData = Field(default_factory=InstallationTypeNodeData)

class PaymentMethodNode(BaseFlowNode):
    type: Literal["PAYMENT_METHOD"]
    data: PaymentMethodNodeData = Field(default_factory=PaymentMethodNodeData)

class ConditionNode(BaseFlowNode):
    type: Literal["CONDITION"]
    data: ConditionNodeData = Field(default_factory=ConditionNodeData)

class ProposalNode(BaseFlowNode):
    type: Literal["PROPOSAL"]
    data: ProposalNodeData = Field(default_factory=ProposalNodeData)

class SiteVisitNode(BaseFlowNode):
    type: Literal["SITE_VISIT"]
    data: SiteVisitNodeData = Field(default_factory=SiteVisitNodeData)

class FollowupNode(BaseFlowNode):
    type: Literal["FOLLOWUP"]
    data: FollowupNodeData = Field(default_factory=FollowupNodeData)

class HandoffNode(BaseFlowNode):
    type: Literal["HANDOFF"]
    data: HandoffNodeData = Field(default_factory=HandoffNodeData)

class MessageNode(BaseFlowNode):
    type: Literal["MESSAGE"]
    data: MessageNodeData = Field(default_factory=MessageNodeData)

# Union of all node types with discriminator
FlowNode = Annotated[
    Union[
        GreetingNode,
        QuestionNode,
        ConsumptionCaptureNode,
        BillPhotoNode,
        RoofPhotoNode,
        InstallationTypeNode,
        PaymentMethodNode,
        ConditionNode,
        ProposalNode,
        SiteVisitNode,
        FollowupNode,
        HandoffNode,
        MessageNode
    ],
    Discriminator("type")
]

flow_node_adapter: TypeAdapter[FlowNode] = TypeAdapter(FlowNode)

class FlowEdge(BaseModel):
    model_config = ConfigDict(extra='allow')  # label, animated, style...

    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None

# ============================================
# Global configuration
# ============================================

class AgentConfig(BaseModel):
    name: str = "Solar Assistant"
    personality: Literal["professional", "friendly", "technical", "consultative"] = "consultative"
    tone: Literal["formal", "informal", "neutral"] = "neutral"
    useEmojis: bool = True
    typingSpeed: Literal["fast", "normal", "slow"] = "normal"
    instructions: Optional[str] = None

class BusinessHoursConfig(BaseModel):
    enabled: bool = True
    timezone: str = "America/Sao_Paulo"
    weekdays: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    startTime: str = "08:00"
    endTime: str = "18:00"
    outOfHoursMessage: Optional[str] = "Hi! We are outside business hours right now. We will get back to you soon!"
    replyOutOfHours: bool = True

    @model_validator(mode="after")
    def check_window(self) -> "BusinessHoursConfig":
        # The window only matters when business hours are enabled
        if not self.enabled:
            return self
        start = _parse_clock(self.startTime)
        end = _parse_clock(self.endTime)
        # start > end is a window that crosses midnight (22:00 - 06:00)
        if start == end:
            raise ValueError(f"Business hours start and end cannot both be {self.startTime}")
        if any(day < 0 or day > 6 for day in self.weekdays):
            raise ValueError("Business hours weekdays must be between 0 (Sunday) and 6 (Saturday)")
        return self

class FollowupConfig(BaseModel):
    enabled: bool = True
    firstIntervalHours: int = 24
    secondIntervalHours: int = 48
    thirdIntervalHours: int = 72
    maxAttempts: int = 3
    stopOnReply: bool = True
    defaultMessage: Optional[str] = None

    @model_validator(mode="after")
    def check_intervals(self) -> "FollowupConfig":
        if not self.enabled:
            return self
        intervals = [self.firstIntervalHours, self.secondIntervalHours, self.thirdIntervalHours]
        if intervals[0] <= 0:
            raise ValueError("Follow-up intervals must be positive")
        if not intervals[0] < intervals[1] < intervals[2]:
            raise ValueError("Follow-up intervals must be strictly increasing")
        return self

class IntegrationConfig(BaseModel):
    visionEnabled: bool = True  # Photo analysis
    speechToTextEnabled: bool = True  # Voice notes
    calendarEnabled: bool = False
    crmEnabled: bool = True

class GlobalConfig(BaseModel):
    agent: AgentConfig = Field(default_factory=AgentConfig)
    businessHours: BusinessHoursConfig = Field(default_factory=BusinessHoursConfig)
    followup: FollowupConfig = Field(default_factory=FollowupConfig)
    integrations: IntegrationConfig = Field(default_factory=IntegrationConfig)
    instructions: str = ""

def _parse_clock(value: str) -> int:
    try:
        hours, minutes = value.split(":")
        hours, minutes = int(hours), int(minutes)
    except ValueError:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return hours * 60 + minutes

# ============================================
# Documents
# ============================================

DEFAULT_FLOW_NAME = "Main Flow"

class CompanyFlow(BaseModel):
    """
    The persisted flow document, one per company.
    The whole graph is stored as a single value in the company's record.
    """
    id: Optional[str] = None
    companyId: int
    name: str = DEFAULT_FLOW_NAME
    description: Optional[str] = None
    version: int = Field(default=0, ge=0)
    active: bool = True
    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []
    globalConfig: GlobalConfig = Field(default_factory=GlobalConfig)
    nextNodeId: Optional[int] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class FlowTemplate(BaseModel):
    """
    Read-only seed graph. Node ids are placeholders (node-1, node-2, ...)
    that edges refer to by position, see FlowTemplateService.instantiate.
    """
    id: str
    name: str
    category: Literal["basic", "complete", "quick", "custom"]
    description: str
    icon: str
    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []
