"""
Rule Matcher — selects the rules that fire for an event.

Behavioral Contract:
- Only active rules whose trigger equals the event type are considered,
  whatever the store returned.
- Survivors are those whose condition chain evaluates True.
- Result is ordered by priority ascending (lower number first); equal
  priorities keep the order the store returned them in.
- Pure. Store failures are the orchestrator's concern.
"""

from typing import List, Sequence

from automation_kernel.conditions.evaluator import evaluate
from automation_kernel.log import get_logger
from automation_kernel.models.event import Event
from automation_kernel.models.rule import Rule

logger = get_logger(__name__)


class RuleMatcher:
    def match(self, event: Event, rules: Sequence[Rule]) -> List[Rule]:
        candidates = [
            rule for rule in rules
            if rule.is_active and rule.trigger == event.type
        ]
        matched = [
            rule for rule in candidates
            if evaluate(rule.conditions, event.payload)
        ]
        # sorted() is stable, so store order breaks priority ties
        matched = sorted(matched, key=lambda r: r.priority)

        logger.debug(
            "Rules matched",
            event_type=event.type.value,
            candidates=len(candidates),
            matched=[r.id for r in matched],
        )
        return matched
