"""Automation Rule — trigger, condition chain and ordered actions."""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from automation_kernel.models.event import TriggerKind


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"


class Logic(str, Enum):
    AND = "AND"
    OR = "OR"


class ActionKind(str, Enum):
    ASSIGN_TO_USER = "ASSIGN_TO_USER"
    ASSIGN_TO_ROLE = "ASSIGN_TO_ROLE"
    SEND_EMAIL = "SEND_EMAIL"
    CREATE_NOTIFICATION = "CREATE_NOTIFICATION"
    UPDATE_STATUS = "UPDATE_STATUS"
    CREATE_DEADLINE = "CREATE_DEADLINE"
    ESCALATE = "ESCALATE"
    CREATE_TASK = "CREATE_TASK"
    TRIGGER_WEBHOOK = "TRIGGER_WEBHOOK"


REQUIRED_PARAMS: Dict[ActionKind, FrozenSet[str]] = {
    ActionKind.ASSIGN_TO_USER: frozenset({"userId", "entityType"}),
    ActionKind.ASSIGN_TO_ROLE: frozenset({"role", "entityType"}),
    ActionKind.SEND_EMAIL: frozenset({"templateName", "to"}),
    ActionKind.CREATE_NOTIFICATION: frozenset({"title", "message"}),
    ActionKind.UPDATE_STATUS: frozenset({"entityType", "status"}),
    ActionKind.CREATE_DEADLINE: frozenset({"entityType", "daysFromNow"}),
    ActionKind.ESCALATE: frozenset(),
    ActionKind.CREATE_TASK: frozenset({"title"}),
    ActionKind.TRIGGER_WEBHOOK: frozenset({"url"}),
}


class Condition(BaseModel):
    """
    A single predicate over an event payload field.

    ``logic`` joins this condition to the *next* one in the rule's chain.
    """

    field: str
    operator: Operator
    value: Any = None
    logic: Logic = Logic.AND


class Action(BaseModel):
    """A side-effecting step executed when a rule matches."""

    type: ActionKind
    params: Dict[str, Any] = {}

    def missing_params(self) -> List[str]:
        """Required parameter keys absent (or None) in params."""
        required = REQUIRED_PARAMS.get(self.type, frozenset())
        return sorted(k for k in required if self.params.get(k) is None)


class Rule(BaseModel):
    """An admin-authored automation rule. Read-only for the engine."""

    id: str
    name: str
    description: Optional[str] = None
    trigger: TriggerKind
    priority: int = Field(ge=0, le=999, default=0)  # lower runs first
    is_active: bool = True
    conditions: List[Condition] = []
    actions: List[Action] = []
