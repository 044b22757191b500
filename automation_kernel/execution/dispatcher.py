"""
Action Dispatcher — runs a matched rule's actions.

Behavioral Contract:
- Actions run strictly in declared order; action i+1 starts only after
  action i has finished, successfully or not. Later actions may rely on
  earlier side effects (assign, then notify the assignee).
- The executor is looked up by ActionKind in the registry.
- A failing action never stops the rest of the rule. Every failure becomes
  an ActionOutcome with an ErrorKind; nothing is dropped.
- No retries here. Retrying is the caller's decision, per ErrorKind.
"""

from typing import List

from automation_kernel.errors import PermanentError, classify_exception
from automation_kernel.execution.executors import ExecutionContext
from automation_kernel.execution.registry import ExecutorRegistry
from automation_kernel.execution.templating import render_params
from automation_kernel.log import get_logger
from automation_kernel.models.event import Event
from automation_kernel.models.outcome import ActionOutcome
from automation_kernel.models.rule import Action, Rule

logger = get_logger(__name__)


class ActionDispatcher:
    def __init__(self, registry: ExecutorRegistry, context: ExecutionContext):
        self.registry = registry
        self.context = context

    def dispatch(self, rule: Rule, event: Event) -> List[ActionOutcome]:
        """Execute every action of the rule and report each outcome."""
        return [self._dispatch_action(rule, action, event) for action in rule.actions]

    def _dispatch_action(self, rule: Rule, action: Action, event: Event) -> ActionOutcome:
        """Dispatch a single action to its registered executor."""
        executor = self.registry.get(action.type)
        if executor is None:
            return self._failed(
                rule, action,
                PermanentError(f"No executor registered for action type: {action.type.value}"),
            )

        missing = action.missing_params()
        if missing:
            return self._failed(
                rule, action,
                PermanentError(
                    f"Missing required parameters: {', '.join(missing)}",
                    {"missing": missing},
                ),
            )

        params = render_params(action.params, event.payload)
        try:
            data = executor.execute(params, event, self.context)
        except Exception as exc:
            return self._failed(rule, action, classify_exception(exc))

        return ActionOutcome(action=action, succeeded=True, data=data or {})

    def _failed(self, rule: Rule, action: Action, error) -> ActionOutcome:
        logger.warning(
            "Automation action failed",
            rule_id=rule.id,
            action=action.type.value,
            error_kind=error.kind.value,
            error=error.message,
        )
        return ActionOutcome(
            action=action,
            succeeded=False,
            error=error.kind,
            message=error.message,
            data=error.details,
        )
