"""Event — a domain occurrence and the payload rules are evaluated against."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class TriggerKind(str, Enum):
    INQUIRY_CREATED = "INQUIRY_CREATED"
    INQUIRY_STATUS_CHANGED = "INQUIRY_STATUS_CHANGED"
    ITEM_ASSIGNED = "ITEM_ASSIGNED"
    COST_CALCULATED = "COST_CALCULATED"
    APPROVAL_REQUIRED = "APPROVAL_REQUIRED"
    QUOTE_CREATED = "QUOTE_CREATED"
    DEADLINE_APPROACHING = "DEADLINE_APPROACHING"
    WORKLOAD_THRESHOLD = "WORKLOAD_THRESHOLD"
    PRODUCTION_ORDER_CREATED = "PRODUCTION_ORDER_CREATED"


# Field paths each trigger's payload is guaranteed to carry. Nested entity
# objects are listed by their root key; conditions may address anything
# beneath them. Used by rule validation only.
TRIGGER_FIELDS: Dict[TriggerKind, FrozenSet[str]] = {
    TriggerKind.INQUIRY_CREATED: frozenset({
        "inquiryId", "inquiry", "inquiryTitle", "customerId", "customerName",
        "priority", "deadline", "createdById", "creatorName",
    }),
    TriggerKind.INQUIRY_STATUS_CHANGED: frozenset({
        "inquiryId", "inquiry", "oldStatus", "newStatus", "inquiryTitle",
        "customerId", "customerName", "assignedToId", "assigneeName",
    }),
    TriggerKind.ITEM_ASSIGNED: frozenset({
        "inquiryItemId", "assignedToId", "item", "itemName", "inquiryId",
        "inquiry", "inquiryTitle", "assignedTo", "assigneeName", "assigneeEmail",
    }),
    TriggerKind.COST_CALCULATED: frozenset({
        "costCalculationId", "calculation", "totalCost", "inquiryItemId",
        "itemName", "calculatedById", "calculatedByName",
    }),
    TriggerKind.APPROVAL_REQUIRED: frozenset({
        "approvalId", "approval", "entityType", "entity", "approverId",
        "approverName", "approverEmail",
    }),
    TriggerKind.QUOTE_CREATED: frozenset({
        "quoteId", "quote", "quoteNumber", "quoteTitle", "totalValue",
        "inquiryId", "inquiryTitle", "customerId", "customerName",
        "createdById", "creatorName",
    }),
    TriggerKind.DEADLINE_APPROACHING: frozenset({
        "deadlineId", "entityType", "entityId", "isOverdue", "isEscalation",
        "isWarning", "daysOverdue", "daysUntilDue", "assignedToId",
        "assigneeName", "assigneeEmail", "customerName",
    }),
    TriggerKind.WORKLOAD_THRESHOLD: frozenset({"role", "checkTime"}),
    TriggerKind.PRODUCTION_ORDER_CREATED: frozenset({
        "productionOrderId", "order", "orderNumber", "orderTitle",
        "totalValue", "quoteId", "customerId", "customerName",
    }),
}


class _Missing:
    """Marker for a payload path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class FrozenDict(dict):
    """A dict that refuses mutation. Event payload trees are built from these."""

    def _readonly(self, *args, **kwargs):
        raise TypeError("event payload is read-only")

    __setitem__ = __delitem__ = __ior__ = _readonly
    clear = pop = popitem = setdefault = update = _readonly

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (FrozenDict, (dict(self),))


def freeze(value: Any) -> Any:
    """Read-only copy of a payload tree: dicts become FrozenDicts, lists tuples."""
    if isinstance(value, dict):
        return FrozenDict((key, freeze(item)) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Plain, mutable copy of a frozen payload tree."""
    if isinstance(value, dict):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def resolve_path(payload: Any, path: str) -> Any:
    """
    Resolve a dotted path against a payload tree.

    A literal key containing dots wins over walking the tree, at every level,
    so both ``{"inquiry.priority": ...}`` and ``{"inquiry": {"priority": ...}}``
    resolve ``inquiry.priority``. Numeric segments index into lists.
    Returns MISSING when any step fails.
    """
    if not path:
        return MISSING
    if isinstance(payload, dict):
        if path in payload:
            return payload[path]
        segments = path.split(".")
        for split in range(len(segments) - 1, 0, -1):
            head = ".".join(segments[:split])
            if head in payload:
                found = resolve_path(payload[head], ".".join(segments[split:]))
                if found is not MISSING:
                    return found
        return MISSING
    if isinstance(payload, (list, tuple)):
        head, _, rest = path.partition(".")
        if not head.isdigit():
            return MISSING
        index = int(head)
        if index >= len(payload):
            return MISSING
        if not rest:
            return payload[index]
        return resolve_path(payload[index], rest)
    return MISSING


class Event(BaseModel):
    """
    A domain occurrence. Immutable once constructed: the model is frozen and
    the payload is a read-only copy (FrozenDict, lists as tuples), so neither
    the emitter nor a gateway handed the payload can change what rules see.
    """

    model_config = ConfigDict(frozen=True)

    type: TriggerKind
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    payload: Dict[str, Any] = Field(default_factory=FrozenDict)

    @field_validator("payload", mode="before")
    @classmethod
    def _default_payload(cls, value: Any) -> Any:
        if value is None:
            return {}
        return value

    @field_validator("payload")
    @classmethod
    def _freeze_payload(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return freeze(value)

    @field_serializer("payload")
    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return thaw(payload)

    def resolve(self, path: str) -> Any:
        """Value at a dotted path, or MISSING."""
        return resolve_path(self.payload, path)
