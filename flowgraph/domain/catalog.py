"""Static registry of node kinds.

Every node kind the builder understands is declared here once: its palette
category, display label, icon name, required configuration and default
configuration. Anything that is not persisted with a node (icons, categories,
shape hints) is resolved through this registry at read time.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from flowgraph.domain.graph import Node, ShapeKind

# Rendered node height used when stacking manually added nodes
NODE_HEIGHT = 120
DEFAULT_ICON = "zap"

ENTITY_TYPES: Dict[str, str] = {
    "offer": "offer",
    "sale": "sale",
    "service-order": "service_order",
    "dispatch": "dispatch",
}

ENTITY_STATUSES: Dict[str, List[str]] = {
    "offer": ["draft", "sent", "accepted", "rejected", "expired"],
    "sale": ["pending", "confirmed", "processing", "completed", "cancelled"],
    "service-order": ["created", "scheduled", "in_progress", "completed", "cancelled"],
    "dispatch": ["pending", "assigned", "en_route", "arrived", "completed"],
}

CATEGORIES = (
    "triggers",
    "entities",
    "actions",
    "conditions",
    "communication",
    "ai",
    "integration",
)

CONDITION_KINDS = frozenset({"if-else", "switch", "loop", "parallel", "try-catch"})
BRANCHING_KINDS = frozenset({"if-else", "switch"})


@dataclass(frozen=True)
class NodeTemplate:
    """Palette entry for one node kind."""
    kind: str
    category: str
    label: str
    description: str
    icon: str = DEFAULT_ICON
    entity_type: Optional[str] = None
    required_fields: Tuple[str, ...] = ()
    default_config: Dict[str, Any] = field(default_factory=dict)
    branches: Tuple[str, ...] = ()

    @property
    def is_trigger(self) -> bool:
        return self.category == "triggers"

    @property
    def is_action(self) -> bool:
        return self.category == "actions"

    @property
    def shape(self) -> ShapeKind:
        if self.is_trigger:
            return ShapeKind.TRIGGER
        if self.is_action:
            return ShapeKind.ACTION
        if self.kind in BRANCHING_KINDS:
            return ShapeKind.CONDITION
        return ShapeKind.GENERIC


_ENTITY_ICONS = {
    "offer": "file-text",
    "sale": "dollar-sign",
    "service-order": "shopping-cart",
    "dispatch": "truck",
}


def _entity_templates() -> List[NodeTemplate]:
    templates: List[NodeTemplate] = []
    for entity, icon in _ENTITY_ICONS.items():
        title = entity.replace("-", " ").title()
        entity_type = ENTITY_TYPES[entity]
        templates.append(NodeTemplate(
            kind=f"{entity}-status-trigger",
            category="triggers",
            label=f"{title} Status Changed",
            description=f"Fires when a {title.lower()} moves between statuses",
            icon=icon,
            entity_type=entity_type,
        ))
        templates.append(NodeTemplate(
            kind=entity,
            category="entities",
            label=title,
            description=f"{title} record",
            icon=icon,
            entity_type=entity_type,
        ))
        create_defaults = {"createPerService": True} if entity == "dispatch" else {"autoCreate": True}
        templates.append(NodeTemplate(
            kind=f"create-{entity}",
            category="actions",
            label=f"Create {title}",
            description=f"Create a new {title.lower()}",
            icon=icon,
            entity_type=entity_type,
            default_config=create_defaults,
        ))
        templates.append(NodeTemplate(
            kind=f"update-{entity}-status",
            category="actions",
            label=f"Update {title} Status",
            description=f"Move a {title.lower()} to a new status",
            icon=icon,
            entity_type=entity_type,
        ))
    return templates


_TEMPLATES: List[NodeTemplate] = _entity_templates() + [
    NodeTemplate("webhook-trigger", "triggers", "Webhook", "Fires on an incoming HTTP call", icon="webhook"),
    NodeTemplate("scheduled-trigger", "triggers", "Schedule", "Fires on a cron schedule",
                 icon="calendar", required_fields=("cronExpression",)),
    NodeTemplate("contact", "entities", "Contact", "Contact record", icon="users"),
    NodeTemplate("if-else", "conditions", "If / Else", "Branch on a field comparison",
                 icon="git-branch", required_fields=("field", "operator", "value"), branches=("yes", "no")),
    NodeTemplate("switch", "conditions", "Switch", "Branch on one of several values",
                 icon="git-branch", required_fields=("field",)),
    NodeTemplate("loop", "conditions", "Loop", "Repeat the downstream steps", icon="repeat"),
    NodeTemplate("parallel", "conditions", "Parallel", "Run branches side by side", icon="split"),
    NodeTemplate("try-catch", "conditions", "Try / Catch", "Route failures to a recovery branch",
                 icon="shield", branches=("try", "catch")),
    NodeTemplate("send-notification", "communication", "Send Notification", "Notify users in the app",
                 icon="bell", required_fields=("title", "message")),
    NodeTemplate("send-email", "communication", "Send Email", "Send an email",
                 icon="mail", required_fields=("to", "subject")),
    NodeTemplate("request-approval", "communication", "Request Approval", "Wait for a user to approve",
                 icon="check", required_fields=("approverRole",)),
    NodeTemplate("delay", "communication", "Delay", "Pause before continuing",
                 icon="clock", required_fields=("delayValue",)),
    NodeTemplate("human-input-form", "communication", "Human Input", "Collect input from a user", icon="users"),
    NodeTemplate("wait-for-event", "communication", "Wait for Event", "Pause until an event arrives", icon="clock"),
    NodeTemplate("ai-email-writer", "ai", "AI Email Writer", "Draft an email with a language model", icon="sparkles"),
    NodeTemplate("ai-analyzer", "ai", "AI Analyzer", "Classify or score data with a language model",
                 icon="bot", required_fields=("prompt",)),
    NodeTemplate("ai-agent", "ai", "AI Agent", "Autonomous agent step",
                 icon="brain", required_fields=("prompt",)),
    NodeTemplate("custom-llm", "ai", "Custom LLM", "Call a specific model with a prompt",
                 icon="brain", required_fields=("prompt",)),
    NodeTemplate("dynamic-form", "integration", "Dynamic Form", "Render a configurable form", icon="file-text"),
    NodeTemplate("data-transfer", "integration", "Data Transfer", "Read or write module records",
                 icon="arrow-left-right", required_fields=("sourceModule", "operation")),
    NodeTemplate("http-request", "integration", "HTTP Request", "Call an external API",
                 icon="globe", required_fields=("url",)),
    NodeTemplate("code", "integration", "Code", "Run a script", icon="code"),
    NodeTemplate("database", "integration", "Database", "Query a table",
                 icon="database", required_fields=("operation", "table")),
]

CATALOG: Dict[str, NodeTemplate] = {template.kind: template for template in _TEMPLATES}

TRIGGER_KINDS = frozenset(kind for kind, template in CATALOG.items() if template.is_trigger)

ENTITY_ACTION_KINDS = frozenset(
    kind for kind, template in CATALOG.items()
    if template.category in ("actions", "entities")
)


def get_template(kind: str) -> Optional[NodeTemplate]:
    return CATALOG.get(kind)


def is_trigger_kind(kind: str) -> bool:
    return kind in TRIGGER_KINDS


def icon_for(kind: str) -> str:
    """Icons are never persisted; resolve them from the kind on every read."""
    template = CATALOG.get(kind)
    return template.icon if template else DEFAULT_ICON


def category_for(kind: str) -> str:
    template = CATALOG.get(kind)
    if template:
        return template.category
    if "trigger" in kind:
        return "triggers"
    if kind.startswith("ai-"):
        return "ai"
    return "integration"


def looks_like_trigger(kind: str) -> bool:
    """Catalog trigger kinds, plus unknown kinds named like triggers."""
    return category_for(kind) == "triggers"


def entity_for_trigger(kind: str) -> Optional[str]:
    """Engine entity type watched by a status trigger kind, if any."""
    for entity, entity_type in ENTITY_TYPES.items():
        if kind.startswith(f"{entity}-"):
            return entity_type
    return None


def default_shape(kind: str) -> ShapeKind:
    template = CATALOG.get(kind)
    return template.shape if template else ShapeKind.GENERIC


def templates_by_category() -> Dict[str, List[NodeTemplate]]:
    grouped: Dict[str, List[NodeTemplate]] = {category: [] for category in CATEGORIES}
    for template in _TEMPLATES:
        grouped[template.category].append(template)
    return grouped


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def missing_required_fields(node: Node) -> List[str]:
    """Required configuration fields of ``node`` that are absent or blank."""
    template = CATALOG.get(node.kind)
    if template is None:
        return []
    return [name for name in template.required_fields if _is_empty(node.config.get(name))]


def new_node(kind: str, node_id: str, label: Optional[str] = None, config: Optional[Dict[str, Any]] = None) -> Node:
    """Build a node pre-filled with the kind's default configuration."""
    template = CATALOG.get(kind)
    merged: Dict[str, Any] = dict(template.default_config) if template else {}
    merged.update(config or {})
    return Node(
        id=node_id,
        kind=kind,
        label=label or (template.label if template else kind.replace("-", " ").title()),
        description=template.description if template else None,
        config=merged,
        shape=default_shape(kind),
    )
