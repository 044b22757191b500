"""Outcome records for one processed event."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from automation_kernel.models.event import Event
from automation_kernel.models.rule import Action, Rule


class ErrorKind(str, Enum):
    TRANSIENT = "transient"                        # network / timeout, may be retried
    PERMANENT = "permanent"                        # bad reference or params, never retried
    NO_ELIGIBLE_USER = "no_eligible_user"          # nobody holds the role
    RULE_STORE_UNAVAILABLE = "rule_store_unavailable"  # fatal for the event

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.TRANSIENT


class OrchestrationState(str, Enum):
    RECEIVED = "received"
    MATCHING = "matching"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"


class RuleStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED_CANCELLED = "skipped_cancelled"


class ActionOutcome(BaseModel):
    """Result of executing one action."""

    action: Action
    succeeded: bool
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    data: Dict[str, Any] = {}


class RuleOutcome(BaseModel):
    """All action outcomes of one matched rule."""

    rule: Rule
    status: RuleStatus = RuleStatus.COMPLETED
    action_outcomes: List[ActionOutcome] = []
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == RuleStatus.COMPLETED and all(
            o.succeeded for o in self.action_outcomes
        )


class EventOutcome(BaseModel):
    """
    Aggregate result of one ``process_event`` call, returned to the caller
    for logging, alerting and retry decisions.
    """

    event: Event
    state: OrchestrationState = OrchestrationState.COMPLETED
    rule_outcomes: List[RuleOutcome] = []
    fatal_error: Optional[ErrorKind] = None
    fatal_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.fatal_error is None and all(r.succeeded for r in self.rule_outcomes)

    @property
    def matched_rule_ids(self) -> List[str]:
        return [r.rule.id for r in self.rule_outcomes]

    @property
    def skipped_rule_ids(self) -> List[str]:
        return [
            r.rule.id for r in self.rule_outcomes
            if r.status == RuleStatus.SKIPPED_CANCELLED
        ]

    def failed_actions(self) -> List[ActionOutcome]:
        return [
            o for r in self.rule_outcomes for o in r.action_outcomes
            if not o.succeeded
        ]

    def retryable_actions(self) -> List[ActionOutcome]:
        """Failed actions whose error kind allows an automatic retry."""
        return [o for o in self.failed_actions() if o.error and o.error.retryable]
