"""
Node Render Service
Projects flow nodes into display cards for the canvas and the flow preview.
"""
from typing import List, assert_never

# Utils
from utils.log_utils import LogUtil

# Models
from models.flow_data import (
    FlowNode, GreetingNode, QuestionNode, ConsumptionCaptureNode, BillPhotoNode, RoofPhotoNode,
    InstallationTypeNode, PaymentMethodNode, ConditionNode, ProposalNode, SiteVisitNode,
    FollowupNode, HandoffNode, MessageNode
)
from models.flow_graph import FlowGraph
from models.node_card_data import NodeCard
from models.node_catalog import CONDITION_HANDLES, get_node_definition

ANSWER_TYPE_LABELS = {
    "text": "Text",
    "number": "Number",
    "options": "Options",
    "yes_no": "Yes/No",
}

OPERATOR_LABELS = {
    "equals": "=",
    "not_equals": "!=",
    "greater_than": ">",
    "less_than": "<",
    "contains": "contains",
    "exists": "exists",
}

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class NodeRenderService:
    def __init__(self, log_util: LogUtil):
        self.log_util = log_util

    def render_graph(self, graph: FlowGraph) -> List[NodeCard]:
        return [self.render_node(node) for node in graph.nodes]

    def render_node(self, node: FlowNode) -> NodeCard:
        definition = get_node_definition(node.type)
        card = NodeCard(
            id=node.id,
            type=node.type,
            label=node.data.label or definition.label,
            icon=definition.icon,
            color=definition.color,
            category=definition.category,
            summary="",
        )

        match node:
            case GreetingNode():
                card.summary = node.data.message or "Configure the welcome message"
                card.hasInput = False
                if node.data.customizeByTimeOfDay:
                    card.badges.append("By time of day")
            case QuestionNode():
                card.summary = node.data.question or "Configure the question"
                card.badges.append(ANSWER_TYPE_LABELS.get(node.data.answerType, node.data.answerType))
                if node.data.required:
                    card.badges.append("Required")
                if node.data.targetField:
                    card.detail = f"Saves to {node.data.targetField}"
            case ConsumptionCaptureNode():
                card.summary = node.data.question or "Asks about energy consumption"
                card.badges.append("Consumption kWh" if node.data.unit == "kWh" else "Bill amount")
                if node.data.minValue is not None:
                    card.badges.append(f"Min: {node.data.minValue:g}")
                if node.data.maxValue is not None:
                    card.badges.append(f"Max: {node.data.maxValue:g}")
            case BillPhotoNode():
                card.summary = node.data.requestMessage or "Requests a photo of the electricity bill"
                if node.data.autoAnalyze:
                    card.badges.append("Vision")
                if node.data.extractConsumption:
                    card.badges.append("kWh")
                if node.data.extractAmount:
                    card.badges.append("Amount")
            case RoofPhotoNode():
                card.summary = node.data.requestMessage or "Requests a photo of the roof"
                if node.data.autoAnalyze:
                    card.badges.append("Vision")
                if node.data.assessFeasibility:
                    card.badges.append("Feasibility")
            case InstallationTypeNode():
                card.summary = node.data.question or "Asks for the installation type"
                card.detail = ", ".join(option.label for option in node.data.options) or None
                if node.data.allowOther:
                    card.badges.append("Other allowed")
            case PaymentMethodNode():
                card.summary = node.data.question or "Asks for the payment method"
                card.detail = ", ".join(option.label for option in node.data.options) or None
                if node.data.showFinancing:
                    card.badges.append("Financing")
            case ConditionNode():
                operator = OPERATOR_LABELS.get(node.data.operator, node.data.operator)
                if node.data.operator == "exists":
                    card.summary = f"If {node.data.field} {operator}"
                else:
                    card.summary = f"If {node.data.field} {operator} {_format_value(node.data.value)}"
                card.branchHandles = list(CONDITION_HANDLES)
            case ProposalNode():
                card.summary = node.data.sendMessage or "Generates and sends a commercial proposal"
                if node.data.autoGenerate:
                    card.badges.append("Automatic")
                if node.data.pdfFormat:
                    card.badges.append("PDF")
                if node.data.sendViaWhatsApp:
                    card.badges.append("WhatsApp")
            case SiteVisitNode():
                card.summary = node.data.question or "Schedules a technical site visit"
                if node.data.showAvailability:
                    card.badges.append("Availability")
                if node.data.confirmAddress:
                    card.badges.append("Confirms address")
                days = [WEEKDAY_LABELS[day] for day in node.data.availableWeekdays if 0 <= day <= 6]
                if days:
                    card.detail = ", ".join(days)
            case FollowupNode():
                if node.data.enabled and node.data.intervalsHours:
                    hours = ", ".join(f"{interval}h" for interval in node.data.intervalsHours)
                    card.summary = f"Follow-ups after {hours}"
                else:
                    card.summary = "Follow-up disabled"
                if node.data.stopOnReply:
                    card.badges.append("Stops on reply")
            case HandoffNode():
                card.summary = node.data.reason or "Transfers to a human agent"
                card.hasOutput = False
                card.badges.append(node.data.priority)
                if node.data.notifyTeam:
                    card.badges.append(f"Notifies via {node.data.notificationChannel}")
            case MessageNode():
                card.summary = node.data.message or "Configure the message"
                if node.data.waitForReply:
                    card.badges.append("Waits for reply")
                if node.data.includeButtons and node.data.buttons:
                    card.badges.append(f"{len(node.data.buttons)} buttons")
            case _:
                assert_never(node)

        return card


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "(empty)"
    return str(value)
