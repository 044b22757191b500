"""
Rule Store — read access to automation rules for the orchestrator.

Updated by: rule administration (API)
Queried by: Automation Orchestrator, once per event
"""

from typing import Dict, List, Optional

from automation_kernel.models.event import TriggerKind
from automation_kernel.models.rule import Rule


class InMemoryRuleStore:
    """
    In-memory rule store. Rules are kept in insertion order, which is the
    stable tie-break order for equal priorities. Production would read the
    host application's database.
    """

    def __init__(self, rules: Optional[List[Rule]] = None):
        self._rules: Dict[str, Rule] = {}
        for rule in rules or []:
            self.add(rule)

    def add(self, rule: Rule) -> Rule:
        """Insert a rule. Raises KeyError if the id is taken."""
        if rule.id in self._rules:
            raise KeyError(f"Rule already exists: {rule.id}")
        self._rules[rule.id] = rule
        return rule

    def update(self, rule: Rule) -> Optional[Rule]:
        """Replace a rule in place, keeping its position."""
        if rule.id not in self._rules:
            return None
        self._rules[rule.id] = rule
        return rule

    def remove(self, rule_id: str) -> bool:
        if rule_id in self._rules:
            del self._rules[rule_id]
            return True
        return False

    def get(self, rule_id: str) -> Optional[Rule]:
        rule = self._rules.get(rule_id)
        return rule.model_copy(deep=True) if rule else None

    def list_rules(self) -> List[Rule]:
        return [r.model_copy(deep=True) for r in self._rules.values()]

    def get_active_rules_for_trigger(self, trigger: TriggerKind) -> List[Rule]:
        """Snapshot of the active rules for a trigger, in insertion order."""
        return [
            r.model_copy(deep=True)
            for r in self._rules.values()
            if r.is_active and r.trigger == trigger
        ]
