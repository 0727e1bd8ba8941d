"""Pre-built candidate workflows and the synthesis system prompt."""
from __future__ import annotations

from typing import Dict, List

from flowgraph.domain.catalog import CATALOG, ENTITY_STATUSES
from flowgraph.services.ai.parser import GeneratedWorkflow

_TEMPLATE_DATA: Dict[str, dict] = {
    "crm-integration": {
        "name": "Sale → CRM Integration Pipeline",
        "description": "Triggers on sale status change, waits 5 minutes, syncs to external CRM via HTTP, "
                       "updates contacts, and sends notification.",
        "nodes": [
            {"id": "node-1", "type": "sale-status-trigger", "label": "Sale Status Changed",
             "config": {"entityType": "sale", "toStatus": "confirmed"}},
            {"id": "node-2", "type": "delay", "label": "Wait 5 Minutes",
             "config": {"delayValue": 5, "delayUnit": "minutes", "delayMode": "relative"}},
            {"id": "node-3", "type": "http-request", "label": "Sync to CRM API",
             "config": {
                 "url": "https://api.example-crm.com/v1/deals",
                 "httpMethod": "POST",
                 "contentType": "json",
                 "requestBody": '{"dealName": "{{node-1.entityId}}", "status": "won", '
                                '"amount": "{{node-1.amount}}", "source": "FlowService"}',
                 "authType": "bearer",
                 "bearerToken": "{{secrets.CRM_API_KEY}}",
                 "timeout": 30,
                 "retryOnFailure": True,
                 "retryCount": 3,
                 "responseMapping": "crmDealId: $.data.id\ncrmStatus: $.data.status",
             }},
            {"id": "node-4", "type": "data-transfer", "label": "Update Contact Record",
             "config": {
                 "sourceModule": "contacts",
                 "operation": "update",
                 "filter": "contactId: {{node-1.contactId}}",
                 "dataMapping": "crmSynced: true\ncrmDealId: {{node-3.crmDealId}}",
             }},
            {"id": "node-5", "type": "send-notification", "label": "Notify Sales Team",
             "config": {
                 "title": "CRM Sync Complete",
                 "message": "Sale #{{node-1.entityId}} has been synced to CRM. Deal ID: {{node-3.crmDealId}}",
                 "recipients": "sales_team",
                 "notificationType": "info",
             }},
        ],
        "edges": [
            {"source": "node-1", "target": "node-2"},
            {"source": "node-2", "target": "node-3"},
            {"source": "node-3", "target": "node-4"},
            {"source": "node-4", "target": "node-5"},
        ],
    },
    "approval-chain": {
        "name": "Offer Approval Chain",
        "description": "When an offer is created, check amount; above 1000 require approval, "
                       "otherwise auto-approve and notify.",
        "nodes": [
            {"id": "node-1", "type": "offer-status-trigger", "label": "Offer Created",
             "config": {"toStatus": "draft"}},
            {"id": "node-2", "type": "if-else", "label": "Amount > 1000?",
             "config": {"field": "amount", "operator": "greater_than", "value": "1000"}},
            {"id": "node-3", "type": "request-approval", "label": "Request Manager Approval",
             "config": {"approverRole": "manager"}},
            {"id": "node-4", "type": "update-offer-status", "label": "Auto-Approve Offer",
             "config": {"newStatus": "sent"}},
            {"id": "node-5", "type": "send-email", "label": "Send Offer to Client",
             "config": {"to": "{{node-1.clientEmail}}", "subject": "Your offer is ready",
                        "template": "offer-confirmation"}},
        ],
        "edges": [
            {"source": "node-1", "target": "node-2"},
            {"source": "node-2", "target": "node-3", "sourceHandle": "yes"},
            {"source": "node-2", "target": "node-4", "sourceHandle": "no"},
            {"source": "node-3", "target": "node-5"},
            {"source": "node-4", "target": "node-5"},
        ],
    },
    "dispatch-automation": {
        "name": "Dispatch Scheduling Pipeline",
        "description": "On new service order, auto-create dispatch, wait for assignment, then notify technician.",
        "nodes": [
            {"id": "node-1", "type": "service-order-status-trigger", "label": "Service Order Created",
             "config": {"toStatus": "created"}},
            {"id": "node-2", "type": "create-dispatch", "label": "Create Dispatch",
             "config": {"createPerService": True}},
            {"id": "node-3", "type": "delay", "label": "Wait 10 Minutes",
             "config": {"delayValue": 10, "delayUnit": "minutes"}},
            {"id": "node-4", "type": "send-notification", "label": "Alert Dispatcher",
             "config": {"title": "New dispatch pending",
                        "message": "Service order {{node-1.entityId}} needs assignment",
                        "recipients": "dispatchers"}},
        ],
        "edges": [
            {"source": "node-1", "target": "node-2"},
            {"source": "node-2", "target": "node-3"},
            {"source": "node-3", "target": "node-4"},
        ],
    },
    "lead-nurturing": {
        "name": "Lead Nurturing",
        "description": "Webhook receives a new lead, AI analyzes their profile, then conditionally sends "
                       "a personalized or generic welcome email.",
        "nodes": [
            {"id": "node-1", "type": "webhook-trigger", "label": "New Lead Webhook",
             "config": {"method": "POST"}},
            {"id": "node-2", "type": "ai-analyzer", "label": "Analyze Lead Profile",
             "config": {"prompt": "Classify this lead as hot, warm, or cold: {{node-1.body}}",
                        "model": "default", "outputField": "leadScore"}},
            {"id": "node-3", "type": "if-else", "label": "Is Hot Lead?",
             "config": {"field": "leadScore", "operator": "equals", "value": "hot"}},
            {"id": "node-4", "type": "send-email", "label": "Send Personalized Email",
             "config": {"to": "{{node-1.email}}", "subject": "Welcome, let's schedule a call!",
                        "template": "hot-lead-welcome"}},
            {"id": "node-5", "type": "send-email", "label": "Send Generic Welcome",
             "config": {"to": "{{node-1.email}}", "subject": "Welcome to our platform!",
                        "template": "generic-welcome"}},
            {"id": "node-6", "type": "data-transfer", "label": "Save Lead to Contacts",
             "config": {"sourceModule": "contacts", "operation": "create",
                        "dataMapping": "name: {{node-1.name}}\nemail: {{node-1.email}}\nscore: {{node-2.leadScore}}"}},
        ],
        "edges": [
            {"source": "node-1", "target": "node-2"},
            {"source": "node-2", "target": "node-3"},
            {"source": "node-3", "target": "node-4", "sourceHandle": "yes"},
            {"source": "node-3", "target": "node-5", "sourceHandle": "no"},
            {"source": "node-4", "target": "node-6"},
            {"source": "node-5", "target": "node-6"},
        ],
    },
    "inventory-alert": {
        "name": "Inventory Alert",
        "description": "Scheduled daily check reads stock levels, checks if any item is below threshold, "
                       "and sends an alert notification.",
        "nodes": [
            {"id": "node-1", "type": "scheduled-trigger", "label": "Daily at 8:00 AM",
             "config": {"cronExpression": "0 8 * * *", "timezone": "UTC"}},
            {"id": "node-2", "type": "data-transfer", "label": "Read Stock Levels",
             "config": {"sourceModule": "stock", "operation": "read", "filter": "status: active"}},
            {"id": "node-3", "type": "if-else", "label": "Any Item Below Threshold?",
             "config": {"field": "lowStockCount", "operator": "greater_than", "value": "0"}},
            {"id": "node-4", "type": "send-notification", "label": "Send Low Stock Alert",
             "config": {"title": "Low Stock Alert",
                        "message": "{{node-2.lowStockCount}} items are below minimum stock level.",
                        "recipients": "inventory_team", "notificationType": "warning"}},
            {"id": "node-5", "type": "send-email", "label": "Email Stock Report",
             "config": {"to": "inventory@company.com",
                        "subject": "Daily Stock Report: {{node-2.lowStockCount}} items low",
                        "template": "stock-report"}},
        ],
        "edges": [
            {"source": "node-1", "target": "node-2"},
            {"source": "node-2", "target": "node-3"},
            {"source": "node-3", "target": "node-4", "sourceHandle": "yes"},
            {"source": "node-4", "target": "node-5"},
        ],
    },
}

WORKFLOW_TEMPLATES: Dict[str, GeneratedWorkflow] = {
    key: GeneratedWorkflow.model_validate(data) for key, data in _TEMPLATE_DATA.items()
}


def template_keys() -> List[str]:
    return list(WORKFLOW_TEMPLATES)


def get_workflow_template(key: str) -> GeneratedWorkflow | None:
    template = WORKFLOW_TEMPLATES.get(key)
    return template.model_copy(deep=True) if template else None


def build_system_prompt() -> str:
    """Instructions sent ahead of the conversation; node kinds come from the catalog."""
    kinds = ", ".join(CATALOG)
    statuses = "\n".join(
        f"- {entity.replace('-', ' ').title()}: {', '.join(values)}"
        for entity, values in ENTITY_STATUSES.items()
    )
    return f"""You are a workflow builder AI. Given a user's description, you generate a workflow as a JSON object with "nodes" and "edges" arrays.

AVAILABLE NODE TYPES:
{kinds}

RULES:
1. Return ONLY valid JSON with this structure: {{ "nodes": [...], "edges": [...], "name": "Workflow Name", "description": "Brief description" }}
2. Each node: {{ "id": "node-1", "type": "<node-type>", "label": "Human Label", "config": {{}} }}
3. Each edge: {{ "source": "node-1", "target": "node-2" }}; edges leaving an if-else node carry "sourceHandle": "yes" or "no"
4. Every workflow MUST start with exactly one trigger node (types ending in -trigger)
5. Use meaningful labels that describe what the node does
6. For condition nodes (if-else), config should include: {{ "field": "...", "operator": "equals|contains|greater_than", "value": "..." }}
7. For delay nodes, config: {{ "delayValue": 5, "delayUnit": "minutes" }}
8. For email nodes, config: {{ "to": "{{{{trigger.email}}}}", "subject": "...", "template": "..." }}
9. For http-request nodes, config: {{ "url": "...", "httpMethod": "GET|POST", "requestBody": "..." }}
10. For data-transfer nodes, config: {{ "sourceModule": "contacts|sales|offers|dispatches", "operation": "read|create|update|delete" }}
11. For AI nodes, config: {{ "prompt": "...", "model": "..." }}
12. Use {{{{variable}}}} syntax for dynamic values: {{{{trigger.contactName}}}}, {{{{node-2.output}}}}, etc.
13. Do NOT wrap JSON in markdown code blocks and do NOT include any text before or after the JSON.
14. Keep workflows practical and realistic; never create cycles.

ENTITY STATUS VALUES:
{statuses}"""
