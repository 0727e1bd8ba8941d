"""Built-in workflow used when neither the engine nor the local store has one."""
from __future__ import annotations

from flowgraph.domain.catalog import new_node
from flowgraph.domain.graph import Edge, Graph
from flowgraph.domain.layout import apply_layout

DEFAULT_WORKFLOW_NAME = "Default Business Workflow"


def default_graph() -> Graph:
    """Offer accepted -> create sale -> notify sales team."""
    nodes = [
        new_node(
            "offer-status-trigger",
            "trigger-offer-accepted",
            label="Offer Accepted",
            config={"fromStatus": None, "toStatus": "accepted"},
        ),
        new_node(
            "create-sale",
            "action-create-sale",
            label="Create Sale",
            config={"copyFromOffer": True},
        ),
        new_node(
            "send-notification",
            "notify-sales",
            label="Notify Sales Team",
            config={"title": "New sale", "message": "A sale was created from an accepted offer"},
        ),
    ]
    edges = [
        Edge(id="e-offer-sale", source="trigger-offer-accepted", target="action-create-sale"),
        Edge(id="e-sale-notify", source="action-create-sale", target="notify-sales"),
    ]
    return Graph(
        name=DEFAULT_WORKFLOW_NAME,
        description="Offer to sale pipeline",
        nodes=apply_layout(nodes, edges),
        edges=edges,
    )
