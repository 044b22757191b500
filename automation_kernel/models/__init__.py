"""Automation Kernel data models."""

from automation_kernel.models.event import (
    MISSING,
    TRIGGER_FIELDS,
    Event,
    TriggerKind,
    resolve_path,
)
from automation_kernel.models.outcome import (
    ActionOutcome,
    ErrorKind,
    EventOutcome,
    OrchestrationState,
    RuleOutcome,
    RuleStatus,
)
from automation_kernel.models.rule import (
    REQUIRED_PARAMS,
    Action,
    ActionKind,
    Condition,
    Logic,
    Operator,
    Rule,
)

__all__ = [
    "MISSING",
    "REQUIRED_PARAMS",
    "TRIGGER_FIELDS",
    "Action",
    "ActionKind",
    "ActionOutcome",
    "Condition",
    "ErrorKind",
    "Event",
    "EventOutcome",
    "Logic",
    "Operator",
    "OrchestrationState",
    "Rule",
    "RuleOutcome",
    "RuleStatus",
    "TriggerKind",
    "resolve_path",
]
