# automation_flows/flow/nodes.py
"""Node library for the automation builder."""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Tuple, Type, Union
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(str, Enum):
    """The closed set of node kinds a flow can contain."""
    TRIGGER = "trigger"
    MESSAGE = "message"
    CONDITION = "condition"
    DELAY = "delay"
    ACTION = "action"
    API_CALL = "api_call"
    WEBHOOK = "webhook"
    SPLIT = "split"


class NodeCategory(Enum):
    """Node categories for organization."""
    TRIGGER = "trigger"
    MESSAGING = "messaging"
    LOGIC = "logic"
    TIMING = "timing"
    ACTIONS = "actions"
    INTEGRATIONS = "integrations"


BRANCHING_KINDS = frozenset({NodeKind.CONDITION, NodeKind.SPLIT})

MIN_SPLIT_RATIO = 1
MAX_SPLIT_RATIO = 99
DEFAULT_SPLIT_RATIO = 50

TRIGGER_OPTIONS = [
    ("keyword", "Keyword Match"),
    ("new_contact", "New Contact Created"),
    ("cart_abandoned", "Cart Abandoned"),
    ("appointment", "Appointment Reminder"),
    ("manual", "Manual Trigger"),
]

MESSAGE_TYPE_OPTIONS = [
    ("text", "Text Message"),
    ("template", "Template"),
    ("image", "Image"),
]

CONDITION_OPTIONS = [
    ("keyword_match", "Keyword Match"),
    ("has_tag", "Has Tag"),
    ("time_based", "Time Based"),
]

DELAY_UNIT_OPTIONS = [
    ("minutes", "Minutes"),
    ("hours", "Hours"),
    ("days", "Days"),
]

ACTION_OPTIONS = [
    ("add_tag", "Add Tag to Contact"),
    ("remove_tag", "Remove Tag"),
    ("assign_agent", "Assign to Agent"),
    ("update_contact", "Update Contact"),
    ("webhook", "Call Webhook"),
]

HTTP_METHOD_OPTIONS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


# Typed views over a node's config map. Unknown keys are kept but ignored.

class NodeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")


class TriggerConfig(NodeConfig):
    triggerType: Optional[str] = None
    keywords: Optional[Union[str, List[str]]] = None


class MessageConfig(NodeConfig):
    messageType: Optional[str] = None
    content: Optional[str] = None


class ConditionConfig(NodeConfig):
    conditionType: Optional[str] = None
    condition: Optional[str] = None


class DelayConfig(NodeConfig):
    duration: Optional[float] = None
    unit: Optional[str] = None


class ActionConfig(NodeConfig):
    actionType: Optional[str] = None
    actionValue: Optional[str] = None


class ApiCallConfig(NodeConfig):
    method: Optional[str] = None
    url: Optional[str] = None
    headers: Optional[Union[str, Dict[str, Any]]] = None
    body: Optional[str] = None
    responseVariable: Optional[str] = None


class WebhookConfig(NodeConfig):
    webhookUrl: Optional[str] = None
    secret: Optional[str] = None
    includeContact: Optional[bool] = None


class SplitConfig(NodeConfig):
    splitRatio: int = Field(default=DEFAULT_SPLIT_RATIO, ge=MIN_SPLIT_RATIO, le=MAX_SPLIT_RATIO)
    trackConversion: Optional[bool] = None


def clamp_split_ratio(ratio: Any) -> int:
    """Coerce a ratio to an int inside [1, 99]."""
    try:
        value = int(round(float(ratio)))
    except (TypeError, ValueError):
        value = DEFAULT_SPLIT_RATIO
    return max(MIN_SPLIT_RATIO, min(MAX_SPLIT_RATIO, value))


def split_branch_labels(ratio: int) -> Tuple[str, str]:
    return f"Path A ({ratio}%)", f"Path B ({100 - ratio}%)"


@dataclass
class NodeType:
    """Node type definition."""
    kind: NodeKind
    label: str
    category: NodeCategory
    description: str
    icon: str = "⚡"
    color: str = "#3b82f6"
    has_branches: bool = False
    config_model: Type[NodeConfig] = NodeConfig

    def default_config(self, split_ratio: int = DEFAULT_SPLIT_RATIO) -> Dict[str, Any]:
        """Create default node config."""
        if self.kind == NodeKind.SPLIT:
            return {"splitRatio": clamp_split_ratio(split_ratio)}
        return {}

    def branch_labels(self, config: Optional[Dict[str, Any]] = None) -> Optional[Tuple[str, str]]:
        """Labels for the two branches, or None for kinds without branches."""
        if self.kind == NodeKind.CONDITION:
            return "Yes", "No"
        if self.kind == NodeKind.SPLIT:
            ratio = clamp_split_ratio((config or {}).get("splitRatio", DEFAULT_SPLIT_RATIO))
            return split_branch_labels(ratio)
        return None

    def parse_config(self, config: Dict[str, Any]) -> NodeConfig:
        """Validate a raw config map against this kind's typed model."""
        return self.config_model.model_validate(config)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "label": self.label,
            "category": self.category.value,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "hasBranches": self.has_branches,
            "defaultConfig": self.default_config(),
        }


class NodeLibrary:
    """Library of available node types."""

    def __init__(self):
        self._node_types: Dict[NodeKind, NodeType] = {}
        self._register_builtin_nodes()

    def _register_builtin_nodes(self):
        """Register the built-in node types."""

        self.register_node_type(NodeType(
            kind=NodeKind.TRIGGER,
            label="Trigger",
            category=NodeCategory.TRIGGER,
            description="Start the automation",
            icon="⚡",
            color="#f59e0b",
            config_model=TriggerConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.MESSAGE,
            label="Send Message",
            category=NodeCategory.MESSAGING,
            description="Send a WhatsApp message",
            icon="💬",
            color="#22c55e",
            config_model=MessageConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.CONDITION,
            label="Condition",
            category=NodeCategory.LOGIC,
            description="Branch based on conditions",
            icon="🔀",
            color="#3b82f6",
            has_branches=True,
            config_model=ConditionConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.DELAY,
            label="Wait/Delay",
            category=NodeCategory.TIMING,
            description="Wait before continuing",
            icon="⏰",
            color="#8b5cf6",
            config_model=DelayConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.ACTION,
            label="Action",
            category=NodeCategory.ACTIONS,
            description="Perform an action",
            icon="✅",
            color="#16a34a",
            config_model=ActionConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.API_CALL,
            label="API Call",
            category=NodeCategory.INTEGRATIONS,
            description="Call an external HTTP API",
            icon="🌐",
            color="#059669",
            config_model=ApiCallConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.WEBHOOK,
            label="Webhook",
            category=NodeCategory.INTEGRATIONS,
            description="Notify a webhook endpoint",
            icon="🔗",
            color="#0ea5e9",
            config_model=WebhookConfig,
        ))

        self.register_node_type(NodeType(
            kind=NodeKind.SPLIT,
            label="A/B Split",
            category=NodeCategory.LOGIC,
            description="Split contacts between two paths",
            icon="🧪",
            color="#ec4899",
            has_branches=True,
            config_model=SplitConfig,
        ))

    def register_node_type(self, node_type: NodeType):
        """Register a node type."""
        self._node_types[node_type.kind] = node_type

    def describe(self, kind: Union[NodeKind, str]) -> NodeType:
        """Look up a kind. Unknown kinds are a programming error."""
        return self._node_types[NodeKind(kind)]

    def get_node_type(self, kind: Union[NodeKind, str]) -> Optional[NodeType]:
        """Get node type by kind, or None for unknown kinds."""
        try:
            return self._node_types.get(NodeKind(kind))
        except ValueError:
            return None

    def get_node_types_by_category(self, category: NodeCategory) -> List[NodeType]:
        """Get all node types in a category."""
        return [
            node_type for node_type in self._node_types.values()
            if node_type.category == category
        ]

    def get_all_node_types(self) -> Dict[NodeKind, NodeType]:
        """Get all registered node types."""
        return self._node_types.copy()

    def search_node_types(self, query: str) -> List[NodeType]:
        """Search node types by label or description."""
        query_lower = query.lower()
        results = []

        for node_type in self._node_types.values():
            if (query_lower in node_type.label.lower() or
                    query_lower in node_type.description.lower()):
                results.append(node_type)

        return results


_library: Optional[NodeLibrary] = None


def get_node_library() -> NodeLibrary:
    """Shared node library."""
    global _library
    if _library is None:
        _library = NodeLibrary()
    return _library


def describe(kind: Union[NodeKind, str]) -> NodeType:
    return get_node_library().describe(kind)
