"""
Event hooks — build canonical events from host application entities.

Domain code calls these right after its own write succeeds and hands the
result to ``AutomationOrchestrator.process_event``. Each payload carries the
nested entity (so rules can address ``inquiry.priority``) and a set of
flattened convenience fields matching TRIGGER_FIELDS.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from automation_kernel.models.event import Event, TriggerKind


def _get(entity: Optional[Dict[str, Any]], *path: str) -> Any:
    current: Any = entity
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _event(trigger: TriggerKind, payload: Dict[str, Any], occurred_at: Optional[datetime]) -> Event:
    return Event(type=trigger, occurred_at=occurred_at or datetime.now(timezone.utc), payload=payload)


def inquiry_created(
    inquiry_id: str,
    inquiry: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.INQUIRY_CREATED, {
        "inquiryId": inquiry_id,
        "inquiry": inquiry,
        "inquiryTitle": inquiry.get("title"),
        "customerId": inquiry.get("customerId"),
        "customerName": _get(inquiry, "customer", "name"),
        "priority": inquiry.get("priority"),
        "deadline": inquiry.get("deadline"),
        "createdById": inquiry.get("createdById"),
        "creatorName": _get(inquiry, "createdBy", "name"),
    }, occurred_at)


def inquiry_status_changed(
    inquiry_id: str,
    old_status: str,
    new_status: str,
    inquiry: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.INQUIRY_STATUS_CHANGED, {
        "inquiryId": inquiry_id,
        "inquiry": inquiry,
        "oldStatus": old_status,
        "newStatus": new_status,
        "inquiryTitle": inquiry.get("title"),
        "customerId": inquiry.get("customerId"),
        "customerName": _get(inquiry, "customer", "name"),
        "assignedToId": inquiry.get("assignedToId"),
        "assigneeName": _get(inquiry, "assignedTo", "name"),
    }, occurred_at)


def item_assigned(
    item_id: str,
    assigned_to_id: str,
    item: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.ITEM_ASSIGNED, {
        "inquiryItemId": item_id,
        "assignedToId": assigned_to_id,
        "item": item,
        "itemName": item.get("name"),
        "inquiryId": item.get("inquiryId"),
        "inquiry": item.get("inquiry"),
        "inquiryTitle": _get(item, "inquiry", "title"),
        "assignedTo": item.get("assignedTo"),
        "assigneeName": _get(item, "assignedTo", "name"),
        "assigneeEmail": _get(item, "assignedTo", "email"),
    }, occurred_at)


def cost_calculated(
    calculation_id: str,
    calculation: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.COST_CALCULATED, {
        "costCalculationId": calculation_id,
        "calculation": calculation,
        "totalCost": calculation.get("totalCost"),
        "inquiryItemId": calculation.get("inquiryItemId"),
        "itemName": _get(calculation, "inquiryItem", "name"),
        "calculatedById": calculation.get("calculatedById"),
        "calculatedByName": _get(calculation, "calculatedBy", "name"),
    }, occurred_at)


def approval_required(
    approval_id: str,
    approval: Dict[str, Any],
    entity_type: str,
    entity: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.APPROVAL_REQUIRED, {
        "approvalId": approval_id,
        "approval": approval,
        "entityType": entity_type,
        "entity": entity,
        "approverId": approval.get("approverId"),
        "approverName": _get(approval, "approver", "name"),
        "approverEmail": _get(approval, "approver", "email"),
    }, occurred_at)


def quote_created(
    quote_id: str,
    quote: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.QUOTE_CREATED, {
        "quoteId": quote_id,
        "quote": quote,
        "quoteNumber": quote.get("quoteNumber"),
        "quoteTitle": quote.get("title"),
        "totalValue": quote.get("total"),
        "inquiryId": quote.get("inquiryId"),
        "inquiryTitle": _get(quote, "inquiry", "title"),
        "customerId": _get(quote, "inquiry", "customerId"),
        "customerName": _get(quote, "inquiry", "customer", "name"),
        "createdById": quote.get("createdById"),
        "creatorName": _get(quote, "createdBy", "name"),
    }, occurred_at)


def production_order_created(
    order_id: str,
    order: Dict[str, Any],
    occurred_at: Optional[datetime] = None,
) -> Event:
    return _event(TriggerKind.PRODUCTION_ORDER_CREATED, {
        "productionOrderId": order_id,
        "order": order,
        "orderNumber": order.get("orderNumber"),
        "orderTitle": order.get("title"),
        "totalValue": order.get("totalValue"),
        "quoteId": order.get("quoteId"),
        "customerId": _get(order, "quote", "inquiry", "customerId"),
        "customerName": _get(order, "quote", "inquiry", "customer", "name"),
    }, occurred_at)


def workload_threshold(role: str, occurred_at: Optional[datetime] = None) -> Event:
    occurred_at = occurred_at or datetime.now(timezone.utc)
    return _event(TriggerKind.WORKLOAD_THRESHOLD, {
        "role": role,
        "checkTime": occurred_at.isoformat(),
    }, occurred_at)


def deadline_approaching(
    deadline_id: str,
    entity_type: str,
    entity_id: str,
    flags: Dict[str, Any],
    context: Optional[Dict[str, Any]] = None,
    occurred_at: Optional[datetime] = None,
) -> Event:
    """``flags`` carries isOverdue/isEscalation/isWarning and the day counts."""
    return _event(TriggerKind.DEADLINE_APPROACHING, {
        "deadlineId": deadline_id,
        "entityType": entity_type,
        "entityId": entity_id,
        **(context or {}),
        **flags,
    }, occurred_at)
