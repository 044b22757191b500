"""
In-memory gateways.

Used by the test-suite and by the default API application. They record every
call so side effects can be asserted, and they report unknown users or
entities the way a database-backed gateway would (non-retryable failure).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from automation_kernel.deadlines.monitor import Deadline, plan_deadline
from automation_kernel.gateways.base import GatewayResult, Gateways
from automation_kernel.settings import AutomationSettings


class InMemoryAssignmentGateway:
    """
    Users and their open item counts. Successful assignments bump the
    assignee's open count, so consecutive balanced assignments spread out.
    """

    def __init__(self, users: Optional[Iterable[Dict[str, Any]]] = None):
        self._users: Dict[str, Dict[str, Any]] = {}
        self.assignments: List[Dict[str, str]] = []
        for user in users or []:
            self.add_user(**user)

    def add_user(
        self,
        id: str,
        role: str,
        open_items: int = 0,
        active: bool = True,
        email: Optional[str] = None,
    ) -> None:
        self._users[id] = {
            "id": id,
            "role": role,
            "open_items": open_items,
            "active": active,
            "email": email,
        }

    def assign(self, entity_type: str, entity_id: str, user_id: str) -> GatewayResult:
        user = self._users.get(user_id)
        if user is None or not user["active"]:
            return GatewayResult.failure(f"Unknown or inactive user: {user_id}")
        user["open_items"] += 1
        record = {"entity_type": entity_type, "entity_id": entity_id, "user_id": user_id}
        self.assignments.append(record)
        return GatewayResult.success(**record)

    def open_item_counts_by_role(self, role: str) -> Dict[str, int]:
        return {
            u["id"]: u["open_items"]
            for u in self._users.values()
            if u["role"] == role and u["active"]
        }

    def emails_by_role(self, role: str) -> Dict[str, str]:
        return {
            u["id"]: u["email"]
            for u in self._users.values()
            if u["role"] == role and u["active"] and u["email"]
        }


class InMemoryNotificationGateway:
    def __init__(self):
        self.notifications: List[Dict[str, Any]] = []

    def notify(
        self, user_id: str, title: str, message: str, data: Dict[str, Any]
    ) -> GatewayResult:
        if not user_id:
            return GatewayResult.failure("Notification has no recipient")
        self.notifications.append({
            "user_id": user_id,
            "title": title,
            "message": message,
            "data": data,
        })
        return GatewayResult.success(user_id=user_id)


class InMemoryEmailGateway:
    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    def send(
        self, template: str, recipients: List[str], variables: Dict[str, Any]
    ) -> GatewayResult:
        self.sent.append({
            "template": template,
            "recipients": list(recipients),
            "variables": variables,
        })
        return GatewayResult.success(recipients=len(recipients))


class InMemoryStatusGateway:
    """
    Entity statuses keyed by (entity_type, entity_id). When ``known_entities``
    is given, updates to anything else fail as an unknown reference.
    """

    def __init__(self, known_entities: Optional[Iterable[Tuple[str, str]]] = None):
        self._known = set(known_entities) if known_entities is not None else None
        self.statuses: Dict[Tuple[str, str], str] = {}

    def update_status(self, entity_type: str, entity_id: str, status: str) -> GatewayResult:
        key = (entity_type, entity_id)
        if self._known is not None and key not in self._known:
            return GatewayResult.failure(f"Unknown {entity_type}: {entity_id}")
        self.statuses[key] = status
        return GatewayResult.success(status=status)


class InMemoryWebhookGateway:
    def __init__(self):
        self.requests: List[Dict[str, Any]] = []

    def post(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Any,
        timeout: float,
    ) -> GatewayResult:
        self.requests.append({
            "url": url,
            "method": method,
            "headers": headers,
            "body": body,
            "timeout": timeout,
        })
        return GatewayResult.success(status_code=200)


class InMemoryDeadlineGateway:
    """
    One deadline per (entity_type, entity_id); creating again replaces it.
    Also serves as the deadline source of a DeadlineSweeper.
    """

    def __init__(self, warning_days: int = 3, escalation_days: int = 1):
        self.warning_days = warning_days
        self.escalation_days = escalation_days
        self.deadlines: Dict[Tuple[str, str], Deadline] = {}

    def create_deadline(
        self,
        entity_type: str,
        entity_id: str,
        days_from_now: int,
        warning_days: Optional[int],
    ) -> GatewayResult:
        due_date = datetime.now(timezone.utc) + timedelta(days=days_from_now)
        deadline = plan_deadline(
            entity_type=entity_type,
            entity_id=entity_id,
            due_date=due_date,
            warning_days=self.warning_days if warning_days is None else warning_days,
            escalation_days=self.escalation_days,
        )
        self.deadlines[(entity_type, entity_id)] = deadline
        return GatewayResult.success(deadline_id=deadline.id)

    def list_deadlines(self) -> List[Deadline]:
        return list(self.deadlines.values())

    def save_deadline(self, deadline: Deadline) -> None:
        self.deadlines[(deadline.entity_type, deadline.entity_id)] = deadline


def in_memory_gateways(
    users: Optional[Iterable[Dict[str, Any]]] = None,
    settings: Optional[AutomationSettings] = None,
) -> Gateways:
    """A full set of in-memory gateways. Deadline defaults come from settings."""
    settings = settings or AutomationSettings()
    return Gateways(
        assignments=InMemoryAssignmentGateway(users),
        notifications=InMemoryNotificationGateway(),
        email=InMemoryEmailGateway(),
        status=InMemoryStatusGateway(),
        webhooks=InMemoryWebhookGateway(),
        deadlines=InMemoryDeadlineGateway(
            warning_days=settings.deadline_warning_days,
            escalation_days=settings.deadline_escalation_days,
        ),
    )
