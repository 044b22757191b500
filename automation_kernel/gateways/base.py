"""
Gateway contracts — the only way the kernel reaches the outside world.

The host application implements these against its database, mailer and
notification transports. Each call returns a GatewayResult; a gateway may
also raise, in which case the dispatcher classifies the exception.
"""

from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel

from automation_kernel.models.event import TriggerKind
from automation_kernel.models.rule import Rule


class GatewayResult(BaseModel):
    """Outcome of one collaborator call."""

    ok: bool = True
    error: Optional[str] = None
    retryable: bool = False
    data: Dict[str, Any] = {}

    @classmethod
    def success(cls, **data: Any) -> "GatewayResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str, retryable: bool = False) -> "GatewayResult":
        return cls(ok=False, error=error, retryable=retryable)


class RuleStore(Protocol):
    def get_active_rules_for_trigger(self, trigger: TriggerKind) -> List[Rule]:
        """Active rules for a trigger, in a stable order."""
        ...


class AssignmentGateway(Protocol):
    def assign(self, entity_type: str, entity_id: str, user_id: str) -> GatewayResult: ...

    def open_item_counts_by_role(self, role: str) -> Dict[str, int]:
        """Open item count per active user holding the role."""
        ...

    def emails_by_role(self, role: str) -> Dict[str, str]:
        """Email address per active user holding the role; users without one are left out."""
        ...


class NotificationGateway(Protocol):
    def notify(
        self, user_id: str, title: str, message: str, data: Dict[str, Any]
    ) -> GatewayResult: ...


class EmailGateway(Protocol):
    def send(
        self, template: str, recipients: List[str], variables: Dict[str, Any]
    ) -> GatewayResult: ...


class StatusGateway(Protocol):
    def update_status(self, entity_type: str, entity_id: str, status: str) -> GatewayResult: ...


class WebhookGateway(Protocol):
    def post(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Any,
        timeout: float,
    ) -> GatewayResult: ...


class DeadlineGateway(Protocol):
    def create_deadline(
        self,
        entity_type: str,
        entity_id: str,
        days_from_now: int,
        warning_days: Optional[int],
    ) -> GatewayResult: ...


class Gateways:
    """The set of collaborators an orchestrator is wired with."""

    def __init__(
        self,
        assignments: AssignmentGateway,
        notifications: NotificationGateway,
        email: EmailGateway,
        status: StatusGateway,
        webhooks: WebhookGateway,
        deadlines: DeadlineGateway,
    ):
        self.assignments = assignments
        self.notifications = notifications
        self.email = email
        self.status = status
        self.webhooks = webhooks
        self.deadlines = deadlines
