"""
Projection of a node's nested config onto the flat fields the engine reads.

The engine's interpreter reads well-known fields (``field``, ``subject``,
``url``...) straight off a node's data bag, while the builder keeps each
kind's configuration under ``config`` with editor-specific names. Instead of
storing both copies by hand, ``flatten`` regenerates the flat view from
``config`` at every boundary.
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

# (flat field, candidate config paths in priority order)
FIELD_SOURCES: List[Tuple[str, Tuple[str, ...]]] = [
    ("field", ("field", "conditionField", "condition.field")),
    ("operator", ("operator", "condition.operator")),
    ("value", ("value", "expectedValue", "condition.value")),
    ("fromStatus", ("fromStatus",)),
    ("toStatus", ("toStatus",)),
    ("triggerType", ("triggerType",)),
    ("newStatus", ("newStatus",)),
    ("autoCreate", ("autoCreate",)),
    ("createPerService", ("createPerService",)),
    ("subject", ("subject", "emailSubject")),
    ("template", ("template", "emailTemplate")),
    ("to", ("to", "recipientType")),
    ("approverRole", ("approverRole",)),
    ("timeoutHours", ("timeoutHours",)),
    ("requiresApproval", ("requiresApproval",)),
    ("title", ("title", "notificationTitle", "approvalTitle")),
    ("message", ("message", "notificationMessage", "approvalMessage")),
    ("notificationType", ("notificationType",)),
    ("recipientType", ("recipientType",)),
    ("model", ("model",)),
    ("prompt", ("prompt",)),
    ("maxTokens", ("maxTokens",)),
    ("loopType", ("loopType",)),
    ("iterations", ("iterations",)),
    ("delayMs", ("delayMs",)),
    ("url", ("url",)),
    ("method", ("method", "httpMethod")),
    ("headers", ("headers",)),
    ("body", ("body", "requestBody")),
    ("cronExpression", ("cronExpression",)),
    ("timezone", ("timezone",)),
    ("operation", ("operation",)),
    ("table", ("table",)),
]

FLAT_FIELDS = tuple(name for name, _ in FIELD_SOURCES)


def _lookup(config: Dict[str, Any], path: str) -> Any:
    current: Any = config
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def flatten(config: Dict[str, Any] | None) -> Dict[str, Any]:
    """Flat field view of ``config``; fields with no value are omitted."""
    if not config:
        return {}
    flat: Dict[str, Any] = {}
    for name, paths in FIELD_SOURCES:
        for path in paths:
            value = _lookup(config, path)
            if value is not None and value != "":
                flat[name] = value
                break
    return flat
