"""Tests for the Rule Matcher."""

from automation_kernel.matching.matcher import RuleMatcher
from automation_kernel.models.event import Event, TriggerKind
from automation_kernel.models.rule import Action, ActionKind, Condition, Operator, Rule


def _make_rule(
    rule_id: str,
    priority: int = 0,
    trigger: TriggerKind = TriggerKind.INQUIRY_CREATED,
    is_active: bool = True,
    conditions=None,
) -> Rule:
    return Rule(
        id=rule_id,
        name=rule_id,
        trigger=trigger,
        priority=priority,
        is_active=is_active,
        conditions=conditions or [],
        actions=[Action(type=ActionKind.ESCALATE)],
    )


def _event(**payload) -> Event:
    return Event(type=TriggerKind.INQUIRY_CREATED, payload=payload)


class TestRuleMatcher:
    def test_orders_by_priority_ascending(self):
        rules = [_make_rule("a", 5), _make_rule("b", 1), _make_rule("c", 3)]
        matched = RuleMatcher().match(_event(), rules)
        assert [r.priority for r in matched] == [1, 3, 5]
        assert [r.id for r in matched] == ["b", "c", "a"]

    def test_ties_keep_store_order(self):
        rules = [_make_rule("z", 2), _make_rule("a", 2), _make_rule("m", 1)]
        matched = RuleMatcher().match(_event(), rules)
        assert [r.id for r in matched] == ["m", "z", "a"]

    def test_inactive_and_other_triggers_never_match(self):
        rules = [
            _make_rule("inactive", is_active=False),
            _make_rule("quote", trigger=TriggerKind.QUOTE_CREATED),
            _make_rule("ok"),
        ]
        matched = RuleMatcher().match(_event(), rules)
        assert [r.id for r in matched] == ["ok"]

    def test_conditions_filter(self):
        high = Condition(field="priority", operator=Operator.EQUALS, value="HIGH")
        rules = [
            _make_rule("high_only", conditions=[high]),
            _make_rule("always"),
        ]
        assert [r.id for r in RuleMatcher().match(_event(priority="LOW"), rules)] == ["always"]
        assert len(RuleMatcher().match(_event(priority="HIGH"), rules)) == 2

    def test_no_rules(self):
        assert RuleMatcher().match(_event(), []) == []
