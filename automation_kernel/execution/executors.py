"""
Action executors — one per ActionKind.

Each executor performs its side effect through a gateway and returns a small
data dict on success. Failures are raised as AutomationError subclasses; the
dispatcher converts them into ActionOutcome errors. Executors never see
other actions of the rule and hold no state between calls.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Protocol

from pydantic_core import to_jsonable_python

from automation_kernel.balancing.balancer import WorkloadBalancer
from automation_kernel.conditions.values import as_boolean, as_number
from automation_kernel.errors import (
    NoEligibleUserError,
    PermanentError,
    TransientError,
    classify_exception,
)
from automation_kernel.gateways.base import GatewayResult, Gateways
from automation_kernel.models.event import MISSING, Event, thaw
from automation_kernel.models.rule import ActionKind

if TYPE_CHECKING:
    from automation_kernel.execution.registry import ExecutorRegistry


class ExecutionContext:
    """What executors may touch: gateways, the balancer and call settings."""

    def __init__(
        self,
        gateways: Gateways,
        balancer: WorkloadBalancer,
        registry: "ExecutorRegistry",
        call: Optional[Callable] = None,
        webhook_timeout_seconds: float = 10.0,
        escalation_role: str = "MANAGER",
    ):
        self.gateways = gateways
        self.balancer = balancer
        self.registry = registry
        self.call = call or (lambda fn, *args, **kwargs: fn(*args, **kwargs))
        self.webhook_timeout_seconds = webhook_timeout_seconds
        self.escalation_role = escalation_role


class ActionExecutor(Protocol):
    kind: ActionKind

    def execute(
        self, params: Dict[str, Any], event: Event, context: ExecutionContext
    ) -> Dict[str, Any]: ...


# --- Helpers ---

def _require(params: Dict[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None or value == "":
        raise PermanentError(f"Missing required parameter: {key}", {"param": key})
    return value


def _check(result: Optional[GatewayResult], what: str) -> Dict[str, Any]:
    """Turn a failed GatewayResult into the matching error."""
    if result is None:
        return {}
    if result.ok:
        return dict(result.data)
    message = f"{what} failed: {result.error or 'unknown error'}"
    if result.retryable:
        raise TransientError(message)
    raise PermanentError(message)


def _entity_key(entity_type: str) -> str:
    """'INQUIRY_ITEM' / 'inquiry_item' / 'inquiryItem' -> 'inquiryItem'."""
    if "_" not in entity_type and not entity_type.isupper():
        return entity_type[:1].lower() + entity_type[1:]
    head, *rest = entity_type.lower().split("_")
    return head + "".join(part.capitalize() for part in rest)


def _resolve_entity_id(params: Dict[str, Any], event: Event, entity_type: str) -> str:
    """Explicit entityId, else ``<entityType>Id`` or ``entityId`` from the payload."""
    entity_id = params.get("entityId")
    if entity_id:
        return str(entity_id)
    for path in (f"{_entity_key(entity_type)}Id", "entityId"):
        found = event.resolve(path)
        if found is not MISSING and found not in (None, ""):
            return str(found)
    raise PermanentError(
        f"Cannot resolve {entity_type} id from params or event",
        {"entity_type": entity_type},
    )


def _payload_user(params: Dict[str, Any], event: Event) -> Optional[str]:
    user_id = params.get("userId")
    if user_id:
        return str(user_id)
    found = event.resolve("assignedToId")
    if found is MISSING or not found:
        return None
    return str(found)


def _role_holders(context: ExecutionContext, role: str) -> List[str]:
    counts = context.call(context.gateways.assignments.open_item_counts_by_role, role)
    return sorted(counts or {})


# --- Executors ---

class AssignToUserExecutor:
    kind = ActionKind.ASSIGN_TO_USER

    def execute(self, params, event, context):
        user_id = str(_require(params, "userId"))
        entity_type = str(_require(params, "entityType"))
        entity_id = _resolve_entity_id(params, event, entity_type)
        result = context.call(
            context.gateways.assignments.assign, entity_type, entity_id, user_id
        )
        data = _check(result, "Assignment")
        data.update({"user_id": user_id, "entity_type": entity_type, "entity_id": entity_id})
        return data


class AssignToRoleExecutor:
    """
    Picks a user holding the role, then delegates to ASSIGN_TO_USER.
    With balanceWorkload the least-loaded user wins; without it the first
    role holder by user id, so the choice is always reproducible.
    """

    kind = ActionKind.ASSIGN_TO_ROLE

    def execute(self, params, event, context):
        role = str(_require(params, "role"))
        entity_type = str(_require(params, "entityType"))
        balance = as_boolean(params.get("balanceWorkload", False)) is True

        if balance:
            user_id = context.balancer.pick_assignee(role, entity_type)
        else:
            holders = _role_holders(context, role)
            if not holders:
                raise NoEligibleUserError(role, {"entity_type": entity_type})
            user_id = holders[0]

        delegate = context.registry.get(ActionKind.ASSIGN_TO_USER)
        if delegate is None:
            raise PermanentError("No executor registered for ASSIGN_TO_USER")
        data = delegate.execute({**params, "userId": user_id}, event, context)
        data.update({"role": role, "balanced": balance})
        return data


class SendEmailExecutor:
    kind = ActionKind.SEND_EMAIL

    def execute(self, params, event, context):
        template = str(_require(params, "templateName"))
        recipients = self._resolve_recipients(_require(params, "to"), event, context)
        if not recipients:
            raise PermanentError(
                "No email recipients could be resolved",
                {"to": params.get("to")},
            )
        variables = {**event.payload, **(params.get("variables") or {})}
        result = context.call(context.gateways.email.send, template, recipients, variables)
        data = _check(result, "Email")
        data.update({"template": template, "recipients": recipients})
        return data

    def _resolve_recipients(self, to: Any, event: Event, context: ExecutionContext) -> List[str]:
        if isinstance(to, (list, tuple)):
            return [str(address) for address in to if address]
        if isinstance(to, str):
            if "@" in to:
                return [to]
            if to == "assignee":
                for path in ("assigneeEmail", "assignedTo.email"):
                    found = event.resolve(path)
                    if found is not MISSING and found:
                        return [str(found)]
            if to == "managers":
                emails = context.call(
                    context.gateways.assignments.emails_by_role, context.escalation_role
                )
                return [emails[user_id] for user_id in sorted(emails or {})]
        return []


class CreateNotificationExecutor:
    kind = ActionKind.CREATE_NOTIFICATION

    def execute(self, params, event, context):
        title = str(_require(params, "title"))
        message = str(_require(params, "message"))
        user_id = _payload_user(params, event)
        if user_id is None:
            raise PermanentError("Notification has no userId and event has no assignee")
        data = {
            "type": params.get("type", "SYSTEM"),
            "trigger": event.type.value,
            "context": event.payload,
        }
        result = context.call(
            context.gateways.notifications.notify, user_id, title, message, data
        )
        out = _check(result, "Notification")
        out["user_id"] = user_id
        return out


class UpdateStatusExecutor:
    kind = ActionKind.UPDATE_STATUS

    def execute(self, params, event, context):
        entity_type = str(_require(params, "entityType"))
        status = str(_require(params, "status"))
        entity_id = _resolve_entity_id(params, event, entity_type)
        result = context.call(
            context.gateways.status.update_status, entity_type, entity_id, status
        )
        data = _check(result, "Status update")
        data.update({"entity_type": entity_type, "entity_id": entity_id, "status": status})
        return data


class CreateDeadlineExecutor:
    kind = ActionKind.CREATE_DEADLINE

    def execute(self, params, event, context):
        entity_type = str(_require(params, "entityType"))
        days = as_number(_require(params, "daysFromNow"))
        if days is None or days < 0:
            raise PermanentError(
                "daysFromNow must be a non-negative number",
                {"daysFromNow": params.get("daysFromNow")},
            )
        warning_days = None
        if params.get("warningDays") is not None:
            warning = as_number(params["warningDays"])
            if warning is None or warning < 0:
                raise PermanentError(
                    "warningDays must be a non-negative number",
                    {"warningDays": params.get("warningDays")},
                )
            warning_days = int(warning)
        entity_id = _resolve_entity_id(params, event, entity_type)
        result = context.call(
            context.gateways.deadlines.create_deadline,
            entity_type, entity_id, int(days), warning_days,
        )
        data = _check(result, "Deadline creation")
        data.update({"entity_type": entity_type, "entity_id": entity_id, "days_from_now": int(days)})
        return data


class EscalateExecutor:
    """
    Notifies every active holder of the escalation role. With nobody in the
    role there is no one to notify, and the action succeeds with an empty list.
    """

    kind = ActionKind.ESCALATE

    def execute(self, params, event, context):
        role = str(params.get("role") or context.escalation_role)
        title = str(params.get("title") or "Escalation Required")
        message = str(params.get("message") or "An item requires your attention")

        holders = _role_holders(context, role)
        if not holders:
            return {"role": role, "notified": []}

        data = {"type": "ESCALATION", "trigger": event.type.value, "context": event.payload}
        failures = {}
        for user_id in holders:
            try:
                result = context.call(
                    context.gateways.notifications.notify, user_id, title, message, data
                )
                _check(result, "Escalation notification")
            except Exception as exc:
                failures[user_id] = classify_exception(exc)

        if failures:
            details = {"failed_users": sorted(failures), "notified": len(holders) - len(failures)}
            if any(isinstance(e, TransientError) for e in failures.values()):
                raise TransientError("Escalation partially failed", details)
            raise PermanentError("Escalation partially failed", details)

        return {"role": role, "notified": holders}


class CreateTaskExecutor:
    """Tasks are delivered as TASK notifications to the assignee."""

    kind = ActionKind.CREATE_TASK

    def execute(self, params, event, context):
        title = str(_require(params, "title"))
        description = str(params.get("description") or "")
        user_id = _payload_user(params, event)
        if user_id is None:
            raise PermanentError("Task has no userId and event has no assignee")
        data = {"type": "TASK", "trigger": event.type.value, "context": event.payload}
        result = context.call(
            context.gateways.notifications.notify, user_id, title, description, data
        )
        out = _check(result, "Task creation")
        out.update({"user_id": user_id, "title": title})
        return out


class TriggerWebhookExecutor:
    kind = ActionKind.TRIGGER_WEBHOOK

    def execute(self, params, event, context):
        url = str(_require(params, "url"))
        method = str(params.get("method") or "POST").upper()
        headers = {str(k): str(v) for k, v in (params.get("headers") or {}).items()}
        body = params.get("body")
        if body is None:
            body = {
                "trigger": event.type.value,
                "occurredAt": event.occurred_at.isoformat(),
                "payload": thaw(event.payload),
            }
        body = to_jsonable_python(body, fallback=str)
        result = context.call(
            context.gateways.webhooks.post,
            url, method, headers, body, context.webhook_timeout_seconds,
        )
        data = _check(result, "Webhook")
        data.update({"url": url, "method": method})
        return data


DEFAULT_EXECUTORS = (
    AssignToUserExecutor,
    AssignToRoleExecutor,
    SendEmailExecutor,
    CreateNotificationExecutor,
    UpdateStatusExecutor,
    CreateDeadlineExecutor,
    EscalateExecutor,
    CreateTaskExecutor,
    TriggerWebhookExecutor,
)
