import copy
from enum import Enum
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field

class NodeType(str, Enum):
    GREETING = "GREETING"
    QUESTION = "QUESTION"
    CONSUMPTION_CAPTURE = "CONSUMPTION_CAPTURE"
    BILL_PHOTO = "BILL_PHOTO"
    ROOF_PHOTO = "ROOF_PHOTO"
    INSTALLATION_TYPE = "INSTALLATION_TYPE"
    PAYMENT_METHOD = "PAYMENT_METHOD"
    CONDITION = "CONDITION"
    PROPOSAL = "PROPOSAL"
    SITE_VISIT = "SITE_VISIT"
    FOLLOWUP = "FOLLOWUP"
    HANDOFF = "HANDOFF"
    MESSAGE = "MESSAGE"

NodeCategoryId = Literal["start", "capture", "media", "decision", "action", "end"]

# Output handles exposed by CONDITION nodes
CONDITION_TRUE_HANDLE = "true"
CONDITION_FALSE_HANDLE = "false"
CONDITION_HANDLES = (CONDITION_TRUE_HANDLE, CONDITION_FALSE_HANDLE)

class NodeCategory(BaseModel):
    id: NodeCategoryId
    label: str
    description: str

class NodeDefinition(BaseModel):
    """
    Static definition of a node type, used by the sidebar palette,
    the editor when adding nodes and the renderer for colors.
    """
    type: NodeType
    label: str
    description: str
    icon: str
    color: str
    category: NodeCategoryId
    defaultData: Dict[str, Any] = Field(default_factory=dict)

NODE_CATEGORIES: List[NodeCategory] = [
    NodeCategory(id="start", label="Start", description="Nodes that open the conversation"),
    NodeCategory(id="capture", label="Data Capture", description="Nodes that collect lead information"),
    NodeCategory(id="media", label="Media", description="Nodes that receive photos and files"),
    NodeCategory(id="decision", label="Decision", description="Condition and branching nodes"),
    NodeCategory(id="action", label="Actions", description="Nodes that perform actions"),
    NodeCategory(id="end", label="Finish", description="Nodes that close or transfer the conversation"),
]

NODE_DEFINITIONS: List[NodeDefinition] = [
    NodeDefinition(
        type=NodeType.GREETING,
        label="Greeting",
        description="Opening welcome message",
        icon="HandWaving",
        color="#22c55e",
        category="start",
        defaultData={
            "label": "Greeting",
            "message": "Hi! Welcome to our solar energy company. How can I help you today?",
        },
    ),
    NodeDefinition(
        type=NodeType.QUESTION,
        label="Question",
        description="Asks the lead a question",
        icon="HelpCircle",
        color="#3b82f6",
        category="capture",
        defaultData={
            "label": "Question",
            "question": "",
            "answerType": "text",
            "required": True,
        },
    ),
    NodeDefinition(
        type=NodeType.CONSUMPTION_CAPTURE,
        label="Consumption kWh",
        description="Asks about monthly energy consumption",
        icon="Zap",
        color="#f59e0b",
        category="capture",
        defaultData={
            "label": "Consumption kWh",
            "question": "What is your average monthly energy consumption in kWh?",
            "unit": "kWh",
            "targetField": "consumption_kwh",
        },
    ),
    NodeDefinition(
        type=NodeType.BILL_PHOTO,
        label="Electricity Bill",
        description="Requests a photo of the electricity bill",
        icon="FileImage",
        color="#8b5cf6",
        category="media",
        defaultData={
            "label": "Electricity Bill",
            "requestMessage": "Could you send me a photo of your electricity bill? That way I can calculate your savings precisely.",
            "autoAnalyze": True,
            "extractConsumption": True,
            "extractAmount": True,
            "timeoutSeconds": 300,
        },
    ),
    NodeDefinition(
        type=NodeType.ROOF_PHOTO,
        label="Roof Photo",
        description="Requests a photo of the roof",
        icon="Home",
        color="#ec4899",
        category="media",
        defaultData={
            "label": "Roof Photo",
            "requestMessage": "Could you send me a photo of your roof? I will check whether the installation is feasible.",
            "autoAnalyze": True,
            "assessFeasibility": True,
            "timeoutSeconds": 300,
        },
    ),
    NodeDefinition(
        type=NodeType.INSTALLATION_TYPE,
        label="Installation Type",
        description="Asks for the installation type",
        icon="Building2",
        color="#06b6d4",
        category="capture",
        defaultData={
            "label": "Installation Type",
            "question": "What type of installation is it?",
            "options": [
                {"label": "Residential", "value": "RESIDENTIAL", "description": "House or apartment"},
                {"label": "Commercial", "value": "COMMERCIAL", "description": "Business or shop"},
                {"label": "Rural", "value": "RURAL", "description": "Farm or ranch"},
                {"label": "Investment", "value": "INVESTMENT", "description": "To generate energy credits"},
            ],
            "allowOther": False,
        },
    ),
    NodeDefinition(
        type=NodeType.PAYMENT_METHOD,
        label="Payment Method",
        description="Asks for the payment method",
        icon="CreditCard",
        color="#10b981",
        category="capture",
        defaultData={
            "label": "Payment Method",
            "question": "How do you plan to pay?",
            "options": [
                {"label": "Financing", "value": "financing", "description": "Installments with a bank", "highlight": True},
                {"label": "Upfront", "value": "upfront", "description": "Single payment"},
                {"label": "Undecided", "value": "undecided", "description": "I want to see the options"},
            ],
            "showFinancing": True,
        },
    ),
    NodeDefinition(
        type=NodeType.CONDITION,
        label="Condition",
        description="Branches on lead data",
        icon="GitBranch",
        color="#f97316",
        category="decision",
        defaultData={
            "label": "Condition",
            "field": "consumption_kwh",
            "operator": "greater_than",
            "value": 300,
        },
    ),
    NodeDefinition(
        type=NodeType.PROPOSAL,
        label="Generate Proposal",
        description="Generates a commercial proposal",
        icon="FileText",
        color="#6366f1",
        category="action",
        defaultData={
            "label": "Generate Proposal",
            "autoGenerate": True,
            "includeFields": ["consumption_kwh", "installation_type", "payment_method"],
            "pdfFormat": True,
            "sendViaWhatsApp": True,
            "sendMessage": "I prepared a personalized proposal for you! Take a look:",
        },
    ),
    NodeDefinition(
        type=NodeType.SITE_VISIT,
        label="Site Visit",
        description="Schedules a technical site visit",
        icon="Calendar",
        color="#0ea5e9",
        category="action",
        defaultData={
            "label": "Site Visit",
            "question": "Would you like to schedule a free technical visit?",
            "showAvailability": True,
            "availableWeekdays": [1, 2, 3, 4, 5],
            "availableTimes": ["09:00", "10:00", "14:00", "15:00", "16:00"],
            "confirmAddress": True,
        },
    ),
    NodeDefinition(
        type=NodeType.FOLLOWUP,
        label="Follow-up",
        description="Configures follow-up messages",
        icon="Clock",
        color="#a855f7",
        category="action",
        defaultData={
            "label": "Follow-up",
            "enabled": True,
            "intervalsHours": [24, 48, 72],
            "messages": [
                "Hi! I noticed we did not finish our conversation. Can I help with anything else?",
                "Hi! Just a reminder that your proposal is still available. Want me to explain anything?",
                "Last message! If you want to save on your electricity bill, just call me. I am here to help!",
            ],
            "maxAttempts": 3,
            "stopOnReply": True,
        },
    ),
    NodeDefinition(
        type=NodeType.HANDOFF,
        label="Transfer",
        description="Transfers to a human agent",
        icon="UserCheck",
        color="#ef4444",
        category="end",
        defaultData={
            "label": "Transfer",
            "reason": "Customer asked for a human agent",
            "customerMessage": "I am transferring you to one of our specialists. Please wait a moment.",
            "notifyTeam": True,
            "notificationChannel": "whatsapp",
            "priority": "medium",
        },
    ),
    NodeDefinition(
        type=NodeType.MESSAGE,
        label="Message",
        description="Sends a plain message",
        icon="MessageCircle",
        color="#64748b",
        category="action",
        defaultData={
            "label": "Message",
            "message": "",
            "waitForReply": False,
        },
    ),
]

_DEFINITIONS_BY_TYPE: Dict[NodeType, NodeDefinition] = {definition.type: definition for definition in NODE_DEFINITIONS}

DEFAULT_NODE_COLOR = "#64748b"

def get_node_definition(node_type: NodeType | str) -> NodeDefinition:
    """
    Look up the definition of a node type. Raises ValueError for unknown types.
    """
    return _DEFINITIONS_BY_TYPE[NodeType(node_type)]

def get_node_definitions_by_category(category: str) -> List[NodeDefinition]:
    return [definition for definition in NODE_DEFINITIONS if definition.category == category]

def get_default_node_data(node_type: NodeType | str) -> Dict[str, Any]:
    """
    Fresh copy of the default payload of a node type, label included.
    """
    definition = get_node_definition(node_type)
    data = {"label": definition.label}
    data.update(copy.deepcopy(definition.defaultData))
    return data

def get_category(category_id: str) -> Optional[NodeCategory]:
    for category in NODE_CATEGORIES:
        if category.id == category_id:
            return category
    return None
